# src/cache/base_cache_store.py — v1
"""Abstract cache store interface.

Stores are dumb key/value backends with upsert semantics; TTL policy is
applied by AnalysisCache on read.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from scamguard.cache.models import CacheEntry


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by fingerprint key."""

    @abstractmethod
    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store cache entry (upsert, last write wins)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove cache entry."""

    @abstractmethod
    async def list_entries(self) -> list[CacheEntry]:
        """List all stored entries, expired ones included."""

    async def purge(self, created_before: datetime) -> int:
        """Delete entries created before the cutoff. Returns count removed."""
        removed = 0
        for entry in await self.list_entries():
            if entry.created_at < created_before:
                await self.delete(entry.fingerprint)
                removed += 1
        return removed

    def close(self) -> None:
        """Release backend resources."""
