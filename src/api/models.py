# src/api/models.py — v1
"""API-level models: client-facing request and response shapes.

Wire names are camelCase (``isSafe``, ``retryAfterMs``); Python code uses
snake_case attributes. Both spellings are accepted on input.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from scamguard.core.models import AnalysisOutcome, VerdictSource


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class AnalyzeRequest(_WireModel):
    """Single analysis request.

    ``files`` are paths read by the configured uploader; their text is
    appended to ``content`` before analysis.
    """

    content: str = ""
    category: str | None = None
    files: list[str] = Field(default_factory=list)
    user_id: str | None = None
    ip_address: str | None = None


class AnalyzeResponse(_WireModel):
    is_safe: bool
    confidence: int
    category: str
    threats: list[str]
    analysis: str
    cached: bool = False
    source: VerdictSource
    cache_age_seconds: float | None = None
    similar_reports: int = 0
    suggestion: str | None = None
    timestamp: datetime

    @classmethod
    def from_outcome(cls, outcome: AnalysisOutcome) -> AnalyzeResponse:
        verdict = outcome.verdict
        return cls(
            is_safe=verdict.is_safe,
            confidence=verdict.confidence,
            category=verdict.category,
            threats=list(verdict.threats),
            analysis=verdict.analysis,
            cached=outcome.cached,
            source=outcome.source,
            cache_age_seconds=outcome.cache_age_seconds,
            similar_reports=outcome.similar_reports,
            suggestion=outcome.suggestion,
            timestamp=verdict.timestamp,
        )


class BatchRequestItem(_WireModel):
    content: str
    category: str | None = None


class BatchAnalyzeRequest(_WireModel):
    batch: list[BatchRequestItem] = Field(default_factory=list)
    user_id: str | None = None
    ip_address: str | None = None


class BatchItemResponse(_WireModel):
    index: int
    item_id: str
    status: str
    result: AnalyzeResponse | None = None
    error: str | None = None


class BatchAnalyzeResponse(_WireModel):
    batch_id: str
    results: list[BatchItemResponse] = Field(default_factory=list)
    completed: int = 0
    failed: int = 0
