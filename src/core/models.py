# src/core/models.py — v1
"""Core domain models shared across the gateway: Verdict, AnalysisOutcome.

A Verdict is immutable once created; re-analysis produces a new one.
AnalysisOutcome wraps a Verdict with the provenance annotations the
gateway attaches (cache age, database match count, submission hint).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

VerdictSource = Literal["cache", "database", "api", "fallback"]
ConfidenceBucket = Literal["high", "medium", "low"]

HIGH_CONFIDENCE_THRESHOLD = 80
MEDIUM_CONFIDENCE_THRESHOLD = 60

SUBMIT_SUGGESTION = (
    "This content looks suspicious. Consider submitting it as a confirmed "
    "scam report to help protect others."
)


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class Verdict(BaseModel):
    """Structured outcome of analyzing one piece of content."""

    model_config = ConfigDict(frozen=True)

    is_safe: bool
    confidence: int = Field(ge=0, le=100)
    category: str = "General"
    threats: tuple[str, ...] = ()
    analysis: str = ""
    timestamp: datetime = Field(default_factory=utc_now)

    @property
    def confidence_bucket(self) -> ConfidenceBucket:
        return confidence_bucket(self.confidence)


class AnalysisOutcome(BaseModel):
    """Verdict annotated with where it came from."""

    verdict: Verdict
    fingerprint: str
    source: VerdictSource
    cached: bool = False
    cache_age_seconds: float | None = None
    similar_reports: int = 0
    suggestion: str | None = None

    @property
    def is_safe(self) -> bool:
        return self.verdict.is_safe

    @property
    def confidence(self) -> int:
        return self.verdict.confidence


def confidence_bucket(confidence: int) -> ConfidenceBucket:
    """Bucket a 0-100 confidence into high (>=80), medium (>=60) or low."""
    if confidence >= HIGH_CONFIDENCE_THRESHOLD:
        return "high"
    if confidence >= MEDIUM_CONFIDENCE_THRESHOLD:
        return "medium"
    return "low"
