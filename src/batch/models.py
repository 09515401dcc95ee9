# src/batch/models.py — v1
"""Batch processing models: BatchItem, BatchItemError, BatchRunResult."""

from __future__ import annotations

import uuid
from typing import Literal, Union

from pydantic import BaseModel, Field

from scamguard.core.models import AnalysisOutcome

BatchItemType = Literal["file", "text"]
BatchItemStatus = Literal["pending", "uploading", "analyzing", "completed", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})


class BatchItem(BaseModel):
    """One unit of work in a batch.

    ``content`` is the text to analyze, or the file path for file items.
    Owned and mutated by the BatchCoordinator; observers get copies.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: BatchItemType = "text"
    content: str
    category: str | None = None
    status: BatchItemStatus = "pending"
    progress: int = Field(default=0, ge=0, le=100)
    result: AnalysisOutcome | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class BatchItemError(BaseModel):
    """Failure of a single item, in place of its outcome."""

    item_id: str
    error: str
    kind: str = "internal"


BatchEntry = Union[AnalysisOutcome, BatchItemError]


class BatchRunResult(BaseModel):
    """Outcome of one process_batch run, in input order."""

    batch_id: str
    results: list[BatchEntry] = Field(default_factory=list)
    items: list[BatchItem] = Field(default_factory=list)
    completed: int = 0
    failed: int = 0
    duration_seconds: float = 0.0
