# tests/integration/storage/test_int_sqlite_shared.py — v1
"""Two gateways sharing one sqlite file behave as one deployment."""

from __future__ import annotations

import pytest

from scamguard.api import facade
from scamguard.config.settings import Settings
from scamguard.core.errors import RateLimited


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_path=tmp_path / "shared.db",
        store_backend="sqlite",
        cache_backend="sqlite",
        rate_limit_backend="sqlite",
        rate_limit_min_interval_ms=0,
        rate_limit_max_requests=2,
        retry_wait_on_rate_limit=False,
    )


class TestSharedSqlite:
    @pytest.mark.asyncio
    async def test_budget_and_cache_shared(self, settings):
        a = facade.build_gateway(settings)
        b = facade.build_gateway(settings)
        try:
            await facade.analyze({"content": "first text", "ipAddress": "10.0.0.9"}, a)
            cached = await facade.analyze({"content": "first text", "ipAddress": "10.0.0.9"}, b)
            assert cached.source == "cache"

            await facade.analyze({"content": "second text", "ipAddress": "10.0.0.9"}, b)
            with pytest.raises(RateLimited):
                await facade.analyze({"content": "third text", "ipAddress": "10.0.0.9"}, a)
        finally:
            await a.close()
            await b.close()
