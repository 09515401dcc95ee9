# src/storage/models.py — v1
"""Durable store models: StoredReport."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from scamguard.core.models import Verdict, utc_now


class StoredReport(BaseModel):
    """A persisted analysis: the verdict plus who submitted what."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    fingerprint: str
    content: str
    category: str | None = None
    client_id: str | None = None
    verdict: Verdict
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def confidence(self) -> int:
        return self.verdict.confidence
