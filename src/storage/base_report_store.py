# src/storage/base_report_store.py — v1
"""Abstract durable store interface: reports and metrics.

Reports are matched by content fingerprint (equality on normalized
content). ``search_reports`` ranks matches by confidence, then recency.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from scamguard.storage.models import StoredReport
from scamguard.tracking.models import MetricSample


class BaseReportStore(ABC):
    """Unified interface for durable report storage backends."""

    @abstractmethod
    async def insert_report(self, report: StoredReport) -> None:
        """Persist a report (upsert by id)."""

    @abstractmethod
    async def search_reports(
        self, fingerprint: str, limit: int = 10
    ) -> list[StoredReport]:
        """Reports for the same content, best first (confidence desc, newest first)."""

    @abstractmethod
    async def append_metric(self, sample: MetricSample) -> None:
        """Append one metric sample."""

    @abstractmethod
    async def list_metrics(self, since: datetime | None = None) -> list[MetricSample]:
        """Stored metric samples recorded at or after ``since``, oldest first."""

    @abstractmethod
    async def count_reports(self, fingerprint: str | None = None) -> int:
        """Number of stored reports, optionally only those for one fingerprint."""

    def close(self) -> None:
        """Release backend resources."""


def rank_key(report: StoredReport) -> tuple[int, float]:
    """Sort key placing the best match first when sorted ascending."""
    return (-report.confidence, -report.created_at.timestamp())
