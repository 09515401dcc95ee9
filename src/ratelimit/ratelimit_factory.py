# src/ratelimit/ratelimit_factory.py — v1
"""Factory for the rate limiter and its window store."""

from __future__ import annotations

from scamguard.config.settings import Settings
from scamguard.ratelimit.limiter import RateLimiter
from scamguard.ratelimit.retry import RetryPolicy
from scamguard.ratelimit.window_store import BaseWindowStore


def create_window_store(settings: Settings | None = None) -> BaseWindowStore:
    """Instantiate the configured rate-limit counter backend."""
    backend = "memory" if settings is None else settings.rate_limit_backend

    if backend == "memory":
        from scamguard.ratelimit.window_store import InMemoryWindowStore
        return InMemoryWindowStore()

    if backend == "sqlite":
        from scamguard.ratelimit.window_store import SqliteWindowStore
        return SqliteWindowStore(db_path=settings.database_path)

    raise ValueError(f"Unsupported rate limit backend: {backend!r}")


def create_rate_limiter(settings: Settings) -> RateLimiter:
    """Build a RateLimiter from settings."""
    return RateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_ms=settings.rate_limit_window_ms,
        store=create_window_store(settings),
        policy=RetryPolicy.from_settings(settings),
    )
