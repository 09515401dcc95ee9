# src/cache/models.py — v1
"""Cache domain models: ContentFingerprint, CacheEntry, CacheLookupResult, CacheStats."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from scamguard.core.models import Verdict


class ContentFingerprint(BaseModel):
    """Fixed-length digest of normalized content."""

    model_config = ConfigDict(frozen=True)

    digest: str
    algorithm: str = "sha256"
    normalized_length: int = 0

    def __str__(self) -> str:
        return self.digest

    @property
    def short(self) -> str:
        """First 12 hex chars, for logs."""
        return self.digest[:12]


class CacheEntry(BaseModel):
    """Single cache entry linking a fingerprint to a prior verdict."""

    model_config = ConfigDict(frozen=True)

    fingerprint: str
    verdict: Verdict
    created_at: datetime


class CacheLookupResult(BaseModel):
    """Result of a TTL-aware cache lookup."""

    hit: bool = False
    entry: CacheEntry | None = None
    age_seconds: float | None = None
    expired: bool = False


class CacheStats(BaseModel):
    """Snapshot of cache occupancy."""

    total_entries: int
    live_entries: int
    expired_entries: int
    ttl_hours: float
