# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a controllable clock, a recording sleep, scripted scorers and an
in-memory gateway builder. No external dependencies; all I/O is local.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from scamguard.cache.analysis_cache import AnalysisCache
from scamguard.cache.frequency import ContentFrequencyCounter
from scamguard.cache.memory_store import MemoryCacheStore
from scamguard.config.settings import Settings
from scamguard.core.models import Verdict
from scamguard.gateway.gateway import AnalysisGateway
from scamguard.ratelimit.limiter import RateLimiter
from scamguard.ratelimit.retry import RetryPolicy
from scamguard.scoring.base_scorer import BaseScorer
from scamguard.scoring.heuristic import HeuristicScorer
from scamguard.scoring.scorer_factory import ScorerSet
from scamguard.storage.memory_store import MemoryReportStore
from scamguard.tracking.metrics_recorder import MetricsRecorder

START = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


# === Helpers ===


class FakeClock:
    """Manually advanced clock usable as epoch-seconds or datetime source."""

    def __init__(self, start: datetime = START) -> None:
        self._now = start

    def __call__(self) -> float:
        return self._now.timestamp()

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)


class RecordingSleep:
    """Async sleep that returns immediately, records delays, advances the clock."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.delays: list[float] = []
        self._clock = clock

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self._clock is not None:
            self._clock.advance(delay)


class ScriptedScorer(BaseScorer):
    """Scorer replaying scripted replies; exceptions in the script are raised."""

    def __init__(self, *replies: Any, repeat_last: bool = True) -> None:
        self._replies = list(replies)
        self._repeat_last = repeat_last
        self.calls: list[tuple[str, str | None]] = []

    async def analyze(self, content: str, category: str | None = None) -> Any:
        self.calls.append((content, category))
        if len(self._replies) > 1 or not self._repeat_last:
            reply = self._replies.pop(0)
        else:
            reply = self._replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply

    @property
    def name(self) -> str:
        return "scripted"


# === FIXTURES ===


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep(fake_clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(fake_clock)


@pytest.fixture
def sample_verdict() -> Verdict:
    return Verdict(
        is_safe=False,
        confidence=88,
        category="Phishing",
        threats=("Phishing", "Impersonation"),
        analysis="Impersonates a bank.",
        timestamp=START,
    )


@pytest.fixture
def isolated_settings(tmp_path) -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, database_path=tmp_path / "scamguard.db")


@pytest.fixture
def make_scorer():
    """Factory for ScriptedScorer instances."""
    return ScriptedScorer


@pytest.fixture
def build_gateway(fake_clock: FakeClock, recording_sleep: RecordingSleep):
    """Factory building an all-in-memory gateway with fake time.

    Keyword args override the defaults; ``scorer`` sets both routes.
    Returns the gateway; its collaborators are reachable via properties.
    """

    def _build(
        scorer: BaseScorer | None = None,
        url_scorer: BaseScorer | None = None,
        max_requests: int = 100,
        policy: RetryPolicy | None = None,
        min_cache_frequency: int = 1,
        cache_enabled: bool = True,
        store: MemoryReportStore | None = None,
        scorer_timeout_s: float = 10.0,
        max_content_length: int = 10_000,
    ) -> AnalysisGateway:
        text_scorer = scorer or HeuristicScorer()
        limiter = RateLimiter(
            max_requests=max_requests,
            window_ms=60 * 60 * 1000,
            policy=policy or RetryPolicy(min_interval_s=0.0),
            clock=fake_clock,
            sleep=recording_sleep,
        )
        cache = (
            AnalysisCache(MemoryCacheStore(), ttl_seconds=24 * 3600, clock=fake_clock.now)
            if cache_enabled
            else None
        )
        return AnalysisGateway(
            cache=cache,
            frequency=ContentFrequencyCounter(),
            store=store or MemoryReportStore(),
            scorers=ScorerSet(text=text_scorer, url=url_scorer or text_scorer),
            rate_limiter=limiter,
            metrics=MetricsRecorder(clock=fake_clock.now),
            max_content_length=max_content_length,
            min_cache_frequency=min_cache_frequency,
            scorer_timeout_s=scorer_timeout_s,
        )

    return _build
