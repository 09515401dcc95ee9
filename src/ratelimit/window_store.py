# src/ratelimit/window_store.py — v1
"""Rate-limit window stores.

Each store performs check-and-increment atomically: the in-memory store
under a lock, the sqlite store inside an IMMEDIATE transaction so that
several processes sharing one database file cannot over-admit.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from scamguard.ratelimit.models import RateLimitDecision, RateLimitWindow, consume

logger = logging.getLogger(__name__)

_PRUNE_THRESHOLD = 1024


class BaseWindowStore(ABC):
    """Unified interface for rate-limit counter backends."""

    @abstractmethod
    def check_and_consume(
        self, client_id: str, now_ms: int, max_requests: int, window_ms: int
    ) -> RateLimitDecision:
        """Atomically apply one admission attempt."""

    @abstractmethod
    def get_window(self, client_id: str) -> RateLimitWindow | None:
        """Current window for a client, or None if never seen."""

    @abstractmethod
    def reset(self, client_id: str) -> None:
        """Forget a client's window."""

    def close(self) -> None:
        """Release backend resources."""


class InMemoryWindowStore(BaseWindowStore):
    """Process-local window store."""

    def __init__(self) -> None:
        self._windows: dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()
        self._prune_at = _PRUNE_THRESHOLD

    def check_and_consume(
        self, client_id: str, now_ms: int, max_requests: int, window_ms: int
    ) -> RateLimitDecision:
        with self._lock:
            window, decision = consume(
                self._windows.get(client_id), client_id, now_ms, max_requests, window_ms
            )
            self._windows[client_id] = window
            if len(self._windows) > self._prune_at:
                self._prune(now_ms)
            return decision

    def get_window(self, client_id: str) -> RateLimitWindow | None:
        with self._lock:
            return self._windows.get(client_id)

    def reset(self, client_id: str) -> None:
        with self._lock:
            self._windows.pop(client_id, None)

    def _prune(self, now_ms: int) -> None:
        """Drop expired windows; an expired window behaves like no window."""
        self._windows = {
            k: w for k, w in self._windows.items() if not w.is_expired(now_ms)
        }
        self._prune_at = max(_PRUNE_THRESHOLD, 2 * len(self._windows))


_SCHEMA = """
CREATE TABLE IF NOT EXISTS rate_limits (
    client_id TEXT PRIMARY KEY,
    window_start_ms INTEGER NOT NULL,
    request_count INTEGER NOT NULL,
    max_requests INTEGER NOT NULL,
    window_duration_ms INTEGER NOT NULL
);
"""


class SqliteWindowStore(BaseWindowStore):
    """SQLite-backed window store shared across processes."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode; transactions are opened explicitly
        self._conn = sqlite3.connect(
            str(self._db_path), isolation_level=None, check_same_thread=False
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        self._lock = threading.Lock()

    def check_and_consume(
        self, client_id: str, now_ms: int, max_requests: int, window_ms: int
    ) -> RateLimitDecision:
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                window, decision = consume(
                    self._read(client_id), client_id, now_ms, max_requests, window_ms
                )
                self._conn.execute(
                    """INSERT OR REPLACE INTO rate_limits
                       (client_id, window_start_ms, request_count,
                        max_requests, window_duration_ms)
                       VALUES (?, ?, ?, ?, ?)""",
                    (
                        window.client_id,
                        window.window_start_ms,
                        window.request_count,
                        window.max_requests,
                        window.window_duration_ms,
                    ),
                )
            except Exception:
                self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")
            return decision

    def get_window(self, client_id: str) -> RateLimitWindow | None:
        with self._lock:
            return self._read(client_id)

    def reset(self, client_id: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM rate_limits WHERE client_id = ?", (client_id,))

    def close(self) -> None:
        self._conn.close()

    def _read(self, client_id: str) -> RateLimitWindow | None:
        row = self._conn.execute(
            """SELECT window_start_ms, request_count, max_requests, window_duration_ms
               FROM rate_limits WHERE client_id = ?""",
            (client_id,),
        ).fetchone()
        if row is None:
            return None
        return RateLimitWindow(
            client_id=client_id,
            window_start_ms=row[0],
            request_count=row[1],
            max_requests=row[2],
            window_duration_ms=row[3],
        )
