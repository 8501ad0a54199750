"""Unit tests for request-scoped upload spooling."""

from __future__ import annotations

import io
import stat
from pathlib import Path

import pytest
from fastapi import UploadFile

from wharf.storage import temporary_upload


def make_upload(filename: str | None, data: bytes = b"content") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename)


class _DroppedConnection(io.BytesIO):
    """Yields one chunk, then fails like a client that went away mid-upload."""

    def __init__(self) -> None:
        super().__init__(b"x" * 4096)
        self._reads = 0

    def read(self, size: int | None = -1) -> bytes:
        self._reads += 1
        if self._reads > 1:
            raise OSError("connection reset")
        return super().read(1024)


class TestTemporaryUpload:
    async def test_spools_and_cleans_up(self, tmp_path: Path) -> None:
        async with temporary_upload(make_upload("site.zip"), tmp_path / "temp") as artifact:
            assert artifact.filename == "site.zip"
            assert artifact.path.parent == tmp_path / "temp"
            assert artifact.read_bytes() == b"content"
            assert stat.S_IMODE(artifact.path.stat().st_mode) == 0o600
            spooled = artifact.path

        assert not spooled.exists()

    async def test_cleanup_when_consumer_already_removed_it(self, tmp_path: Path) -> None:
        async with temporary_upload(make_upload("a.txt"), tmp_path) as artifact:
            artifact.path.unlink()

    async def test_unique_names(self, tmp_path: Path) -> None:
        async with temporary_upload(make_upload("a"), tmp_path) as first:
            async with temporary_upload(make_upload("a"), tmp_path) as second:
                assert first.path != second.path

    async def test_filename_reduced_to_basename(self, tmp_path: Path) -> None:
        async with temporary_upload(make_upload("../../etc/passwd"), tmp_path) as artifact:
            assert artifact.filename == "passwd"
        async with temporary_upload(make_upload("dir\\win.txt"), tmp_path) as artifact:
            assert artifact.filename == "win.txt"

    async def test_unusable_filename_falls_back_to_temp_name(self, tmp_path: Path) -> None:
        for name in (None, "", "..", "a/.."):
            async with temporary_upload(make_upload(name), tmp_path) as artifact:
                assert artifact.filename == artifact.path.name

    async def test_partial_spool_removed_when_read_fails(self, tmp_path: Path) -> None:
        upload = UploadFile(file=_DroppedConnection(), filename="site.zip")
        temp = tmp_path / "temp"

        with pytest.raises(OSError, match="connection reset"):
            async with temporary_upload(upload, temp):
                pass

        assert list(temp.iterdir()) == []
