# src/cache/cache_factory.py — v1
"""Factory for cache store instantiation."""

from __future__ import annotations

from scamguard.cache.base_cache_store import BaseCacheStore
from scamguard.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from scamguard.cache.memory_store import MemoryCacheStore
        return MemoryCacheStore()

    if backend == "sqlite":
        from scamguard.cache.sqlite_store import SqliteCacheStore
        return SqliteCacheStore(db_path=settings.database_path)

    if backend == "redis":
        from scamguard.cache.redis_store import RedisCacheStore
        if not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(
            redis_url=settings.cache_redis_url,
            ttl_seconds=int(settings.cache_ttl_seconds),
        )

    raise ValueError(f"Unsupported cache backend: {backend!r}")
