# src/cache/analysis_cache.py — v1
"""TTL-aware analysis cache over a pluggable store.

Expiry is lazy: an entry older than the TTL is reported as a miss even if
the backend still holds it. ``purge_expired`` removes such entries for
storage hygiene. The cache is a pure optimization; nothing relies on an
entry being present.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from scamguard.cache.base_cache_store import BaseCacheStore
from scamguard.cache.models import CacheEntry, CacheLookupResult, CacheStats
from scamguard.core.models import Verdict, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 3600


class AnalysisCache:
    """Fingerprint -> Verdict cache with a fixed TTL."""

    def __init__(
        self,
        store: BaseCacheStore,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def get(self, fingerprint: str) -> CacheLookupResult:
        """Look up a fingerprint. A hit requires ``now - created_at <= TTL``."""
        entry = await self._store.get(fingerprint)
        if entry is None:
            return CacheLookupResult()

        age = self._clock() - entry.created_at
        if age > self._ttl:
            logger.debug("Cache entry %s expired (age=%s)", fingerprint[:12], age)
            return CacheLookupResult(expired=True, age_seconds=age.total_seconds())

        return CacheLookupResult(
            hit=True, entry=entry, age_seconds=age.total_seconds()
        )

    async def put(self, fingerprint: str, verdict: Verdict) -> CacheEntry:
        """Upsert a verdict for a fingerprint; last write wins."""
        entry = CacheEntry(
            fingerprint=fingerprint, verdict=verdict, created_at=self._clock()
        )
        await self._store.put(fingerprint, entry)
        return entry

    async def purge_expired(self) -> int:
        """Physically remove expired entries. Returns count removed."""
        removed = await self._store.purge(self._clock() - self._ttl)
        if removed:
            logger.info("Purged %d expired cache entries", removed)
        return removed

    async def stats(self) -> CacheStats:
        entries = await self._store.list_entries()
        now = self._clock()
        expired = sum(1 for e in entries if now - e.created_at > self._ttl)
        return CacheStats(
            total_entries=len(entries),
            live_entries=len(entries) - expired,
            expired_entries=expired,
            ttl_hours=self._ttl.total_seconds() / 3600,
        )

    def close(self) -> None:
        self._store.close()
