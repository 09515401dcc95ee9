# src/batch/uploader.py — v1
"""File item readers for batch runs.

An uploader turns a file item into analyzable text, reporting progress
(0-100) while it reads. Size and type limits raise ValidationError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from scamguard.core.errors import ValidationError

ProgressCallback = Callable[[int], None]

DEFAULT_ALLOWED_SUFFIXES = (".txt", ".md", ".eml", ".html", ".htm", ".csv", ".json", ".log")


class BaseUploader(ABC):
    """Unified interface for file item sources."""

    @abstractmethod
    async def read(self, location: str, on_progress: ProgressCallback | None = None) -> str:
        """Fetch the file at ``location`` and return its text."""


class LocalFileUploader(BaseUploader):
    """Read text files from the local filesystem in chunks."""

    def __init__(
        self,
        base_path: str | Path | None = None,
        max_size_bytes: int = 50 * 1024 * 1024,
        allowed_suffixes: tuple[str, ...] = DEFAULT_ALLOWED_SUFFIXES,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self._base = Path(base_path) if base_path else None
        self._max_size_bytes = max_size_bytes
        self._allowed_suffixes = tuple(s.lower() for s in allowed_suffixes)
        self._chunk_size = chunk_size

    def _resolve(self, location: str) -> Path:
        path = Path(location).expanduser()
        if self._base is not None and not path.is_absolute():
            return self._base / path
        return path

    def validate(self, path: Path) -> None:
        if not path.is_file():
            raise ValidationError(f"File not found: {path.name}")
        if path.suffix.lower() not in self._allowed_suffixes:
            raise ValidationError(
                f"File type not allowed: {path.suffix or '(none)'}. "
                f"Allowed types: {', '.join(self._allowed_suffixes)}"
            )
        size = path.stat().st_size
        if size > self._max_size_bytes:
            limit_mb = round(self._max_size_bytes / 1024 / 1024)
            raise ValidationError(f"File size exceeds {limit_mb}MB limit")

    async def read(self, location: str, on_progress: ProgressCallback | None = None) -> str:
        path = self._resolve(location)
        self.validate(path)

        size = path.stat().st_size
        chunks: list[bytes] = []
        read_bytes = 0
        with path.open("rb") as f:
            while True:
                chunk = f.read(self._chunk_size)
                if not chunk:
                    break
                chunks.append(chunk)
                read_bytes += len(chunk)
                if on_progress is not None and size:
                    on_progress(min(100, read_bytes * 100 // size))
        if on_progress is not None:
            on_progress(100)
        return b"".join(chunks).decode("utf-8", errors="replace")
