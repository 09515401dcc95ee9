# src/storage/memory_store.py — v1
"""In-process report store (STORE_BACKEND=memory)."""

from __future__ import annotations

from datetime import datetime

from scamguard.storage.base_report_store import BaseReportStore, rank_key
from scamguard.storage.models import StoredReport
from scamguard.tracking.models import MetricSample


class MemoryReportStore(BaseReportStore):
    """Dict/list-backed store for tests and single-instance use."""

    def __init__(self) -> None:
        self._reports: dict[str, StoredReport] = {}
        self.metrics: list[MetricSample] = []

    async def insert_report(self, report: StoredReport) -> None:
        self._reports[report.id] = report

    async def search_reports(
        self, fingerprint: str, limit: int = 10
    ) -> list[StoredReport]:
        matches = [r for r in self._reports.values() if r.fingerprint == fingerprint]
        matches.sort(key=rank_key)
        return matches[:limit]

    async def append_metric(self, sample: MetricSample) -> None:
        self.metrics.append(sample)

    async def list_metrics(self, since: datetime | None = None) -> list[MetricSample]:
        return [m for m in self.metrics if since is None or m.recorded_at >= since]

    async def count_reports(self, fingerprint: str | None = None) -> int:
        if fingerprint is None:
            return len(self._reports)
        return sum(1 for r in self._reports.values() if r.fingerprint == fingerprint)
