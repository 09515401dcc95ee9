# src/cache/sqlite_store.py — v1
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. The analysis_cache table is
keyed by fingerprint; writes are INSERT OR REPLACE upserts.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from scamguard.cache.base_cache_store import BaseCacheStore
from scamguard.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS analysis_cache (
    content_hash TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_analysis_cache_created ON analysis_cache(created_at);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store that survives restarts."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        cursor = self._conn.execute(
            "SELECT data FROM analysis_cache WHERE content_hash = ?", (key,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        try:
            return CacheEntry.model_validate_json(row[0])
        except ValueError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store a cache entry (upsert)."""
        self._conn.execute(
            """INSERT OR REPLACE INTO analysis_cache (content_hash, data, created_at)
               VALUES (?, ?, ?)""",
            (key, entry.model_dump_json(), entry.created_at.isoformat()),
        )
        self._conn.commit()

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        self._conn.execute("DELETE FROM analysis_cache WHERE content_hash = ?", (key,))
        self._conn.commit()

    async def list_entries(self) -> list[CacheEntry]:
        """List all cached entries."""
        cursor = self._conn.execute("SELECT content_hash, data FROM analysis_cache")
        entries: list[CacheEntry] = []
        for key, data in cursor.fetchall():
            try:
                entries.append(CacheEntry.model_validate_json(data))
            except ValueError:
                logger.warning("Skipping unreadable cache entry %s", key)
        return entries

    async def purge(self, created_before: datetime) -> int:
        """Delete expired rows in one statement."""
        cursor = self._conn.execute(
            "DELETE FROM analysis_cache WHERE created_at < ?",
            (created_before.isoformat(),),
        )
        self._conn.commit()
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
