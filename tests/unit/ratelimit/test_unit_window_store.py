# tests/unit/ratelimit/test_unit_window_store.py — v1
"""Tests for ratelimit/window_store.py — memory and sqlite backends."""

from __future__ import annotations

import threading

import pytest

from scamguard.ratelimit.models import Admitted, Rejected
from scamguard.ratelimit.window_store import InMemoryWindowStore, SqliteWindowStore

WINDOW_MS = 60_000


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = InMemoryWindowStore()
    else:
        s = SqliteWindowStore(tmp_path / "limits.db")
    yield s
    s.close()


class TestWindowStore:
    def test_admits_up_to_max(self, store):
        decisions = [store.check_and_consume("c", 0, 2, WINDOW_MS) for _ in range(3)]
        assert [type(d) for d in decisions] == [Admitted, Admitted, Rejected]

    def test_clients_are_independent(self, store):
        store.check_and_consume("a", 0, 1, WINDOW_MS)
        assert isinstance(store.check_and_consume("b", 0, 1, WINDOW_MS), Admitted)
        assert isinstance(store.check_and_consume("a", 0, 1, WINDOW_MS), Rejected)

    def test_get_window(self, store):
        assert store.get_window("c") is None
        store.check_and_consume("c", 500, 5, WINDOW_MS)
        store.check_and_consume("c", 600, 5, WINDOW_MS)
        window = store.get_window("c")
        assert window.window_start_ms == 500
        assert window.request_count == 2

    def test_reset(self, store):
        store.check_and_consume("c", 0, 1, WINDOW_MS)
        store.reset("c")
        assert store.get_window("c") is None
        assert isinstance(store.check_and_consume("c", 0, 1, WINDOW_MS), Admitted)

    def test_concurrent_admissions_never_exceed_max(self, store):
        results = []
        lock = threading.Lock()

        def worker():
            decision = store.check_and_consume("c", 0, 10, WINDOW_MS)
            with lock:
                results.append(decision)

        threads = [threading.Thread(target=worker) for _ in range(30)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        admitted = [d for d in results if isinstance(d, Admitted)]
        assert len(admitted) == 10
        assert store.get_window("c").request_count == 10


class TestSqliteWindowStore:
    def test_shared_file_between_instances(self, tmp_path):
        path = tmp_path / "shared.db"
        first = SqliteWindowStore(path)
        second = SqliteWindowStore(path)
        try:
            assert isinstance(first.check_and_consume("c", 0, 1, WINDOW_MS), Admitted)
            assert isinstance(second.check_and_consume("c", 0, 1, WINDOW_MS), Rejected)
        finally:
            first.close()
            second.close()


class TestInMemoryPruning:
    def test_expired_windows_are_dropped(self):
        store = InMemoryWindowStore()
        for i in range(1100):
            store.check_and_consume(f"c{i}", i * 10, 5, 100)

        assert len(store._windows) < 100
        assert store.get_window("c0") is None
        assert store.get_window("c1099").request_count == 1

    def test_live_windows_are_kept(self):
        store = InMemoryWindowStore()
        for i in range(1100):
            store.check_and_consume(f"c{i}", 0, 5, WINDOW_MS)
        assert len(store._windows) == 1100
        assert store.get_window("c0").request_count == 1
