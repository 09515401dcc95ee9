# src/storage/sqlite_store.py — v1
"""SQLite-based durable store (STORE_BACKEND=sqlite).

Tables: ``reports`` (indexed by fingerprint for the content match path)
and append-only ``metrics``. Uses stdlib sqlite3.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from scamguard.core.errors import PersistenceError
from scamguard.storage.base_report_store import BaseReportStore
from scamguard.storage.models import StoredReport
from scamguard.tracking.models import MetricSample

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS reports (
    id TEXT PRIMARY KEY,
    fingerprint TEXT NOT NULL,
    category TEXT,
    client_id TEXT,
    is_safe INTEGER NOT NULL,
    confidence INTEGER NOT NULL,
    data TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_reports_fingerprint ON reports(fingerprint);
CREATE TABLE IF NOT EXISTS metrics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    value REAL NOT NULL,
    tags TEXT NOT NULL,
    recorded_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_metrics_name_time ON metrics(name, recorded_at);
"""


class SqliteReportStore(BaseReportStore):
    """SQLite-backed report and metrics store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def insert_report(self, report: StoredReport) -> None:
        try:
            self._conn.execute(
                """INSERT OR REPLACE INTO reports
                   (id, fingerprint, category, client_id, is_safe, confidence, data, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    report.id,
                    report.fingerprint,
                    report.category,
                    report.client_id,
                    int(report.verdict.is_safe),
                    report.confidence,
                    report.model_dump_json(),
                    report.created_at.isoformat(),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to insert report {report.id}: {e}") from e

    async def search_reports(
        self, fingerprint: str, limit: int = 10
    ) -> list[StoredReport]:
        cursor = self._conn.execute(
            """SELECT id, data FROM reports WHERE fingerprint = ?
               ORDER BY confidence DESC, created_at DESC LIMIT ?""",
            (fingerprint, limit),
        )
        reports: list[StoredReport] = []
        for report_id, data in cursor.fetchall():
            try:
                reports.append(StoredReport.model_validate_json(data))
            except ValueError:
                logger.warning("Skipping unreadable report %s", report_id)
        return reports

    async def append_metric(self, sample: MetricSample) -> None:
        try:
            self._conn.execute(
                "INSERT INTO metrics (name, value, tags, recorded_at) VALUES (?, ?, ?, ?)",
                (
                    sample.name,
                    sample.value,
                    json.dumps(sample.tags, sort_keys=True),
                    sample.recorded_at.isoformat(),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to append metric {sample.name}: {e}") from e

    async def list_metrics(self, since: datetime | None = None) -> list[MetricSample]:
        cursor = self._conn.execute(
            """SELECT name, value, tags, recorded_at FROM metrics
               WHERE recorded_at >= ? ORDER BY recorded_at, id""",
            ((since.isoformat() if since else ""),),
        )
        return [
            MetricSample(
                name=name,
                value=value,
                tags=json.loads(tags),
                recorded_at=datetime.fromisoformat(recorded_at),
            )
            for name, value, tags, recorded_at in cursor.fetchall()
        ]

    async def count_reports(self, fingerprint: str | None = None) -> int:
        if fingerprint is None:
            row = self._conn.execute("SELECT COUNT(*) FROM reports").fetchone()
        else:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM reports WHERE fingerprint = ?", (fingerprint,)
            ).fetchone()
        return int(row[0])

    def close(self) -> None:
        self._conn.close()
