# src/storage/store_factory.py — v1
"""Factory for durable report store instantiation."""

from __future__ import annotations

from scamguard.config.settings import Settings
from scamguard.storage.base_report_store import BaseReportStore


def create_report_store(settings: Settings | None = None) -> BaseReportStore:
    """Instantiate the configured report store (memory or sqlite)."""
    backend = "memory" if settings is None else settings.store_backend

    if backend == "memory":
        from scamguard.storage.memory_store import MemoryReportStore
        return MemoryReportStore()

    if backend == "sqlite":
        from scamguard.storage.sqlite_store import SqliteReportStore
        return SqliteReportStore(db_path=settings.database_path)

    raise ValueError(f"Unsupported store backend: {backend!r}")
