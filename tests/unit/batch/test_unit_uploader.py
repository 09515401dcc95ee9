# tests/unit/batch/test_unit_uploader.py — v1
"""Tests for batch/uploader.py — local file reads with progress."""

from __future__ import annotations

import pytest

from scamguard.batch.uploader import LocalFileUploader
from scamguard.core.errors import ValidationError


class TestLocalFileUploader:
    @pytest.mark.asyncio
    async def test_reads_text_with_progress(self, tmp_path):
        path = tmp_path / "message.txt"
        path.write_text("a" * 250, encoding="utf-8")
        progress = []

        text = await LocalFileUploader(chunk_size=100).read(str(path), on_progress=progress.append)

        assert text == "a" * 250
        assert progress == [40, 80, 100, 100]
        assert progress == sorted(progress)

    @pytest.mark.asyncio
    async def test_empty_file_reports_done(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_bytes(b"")
        progress = []
        assert await LocalFileUploader().read(str(path), on_progress=progress.append) == ""
        assert progress == [100]

    @pytest.mark.asyncio
    async def test_relative_to_base_path(self, tmp_path):
        (tmp_path / "inbox").mkdir()
        (tmp_path / "inbox" / "sms.md").write_text("Win a prize", encoding="utf-8")
        uploader = LocalFileUploader(base_path=tmp_path / "inbox")
        assert await uploader.read("sms.md") == "Win a prize"

    @pytest.mark.asyncio
    async def test_invalid_utf8_replaced(self, tmp_path):
        path = tmp_path / "bin.txt"
        path.write_bytes(b"ok \xff")
        assert (await LocalFileUploader().read(str(path))).startswith("ok ")

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(ValidationError, match="File not found: nope.txt"):
            await LocalFileUploader().read(str(tmp_path / "nope.txt"))

    @pytest.mark.asyncio
    async def test_disallowed_type(self, tmp_path):
        path = tmp_path / "payload.exe"
        path.write_bytes(b"MZ")
        with pytest.raises(ValidationError, match="File type not allowed: .exe"):
            await LocalFileUploader().read(str(path))

    @pytest.mark.asyncio
    async def test_too_large(self, tmp_path):
        path = tmp_path / "big.txt"
        path.write_bytes(b"x" * (1024 * 1024 + 1))
        with pytest.raises(ValidationError, match="File size exceeds 1MB limit"):
            await LocalFileUploader(max_size_bytes=1024 * 1024).read(str(path))
