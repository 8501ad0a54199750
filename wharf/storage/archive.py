"""Artifact extraction and placement.

Three entry points, all awaitable. The blocking work runs in a worker
thread so the event loop keeps serving other requests:

- extract_zip / extract_tar_gz: validate every entry name first, then
  write regular files under the target directory. The source archive is
  deleted whether extraction succeeds or fails.
- move_file: rename into place; across filesystems, copy to a sibling
  temporary name and atomically replace, so the destination is either
  complete or absent.
"""

from __future__ import annotations

import asyncio
import errno
import os
import shutil
import tarfile
import tempfile
import zipfile
from pathlib import Path

import structlog

from wharf.errors import (
    ExtractionError,
    InvalidPathError,
    TarExtractionFailedError,
    UnzipFailedError,
    UploadMoveFailedError,
)
from wharf.validators.path import validate_relative_path

logger = structlog.get_logger()

_COPY_BUFSIZE = 1024 * 1024


def discard(path: str | os.PathLike[str]) -> None:
    """Delete a temporary file, ignoring that it is already gone."""
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


def _write_member(src, dest: Path, mode: int | None = None) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    with open(dest, "wb") as out:
        shutil.copyfileobj(src, out, _COPY_BUFSIZE)
    if mode:
        os.chmod(dest, mode & 0o777)


def _extract_zip_sync(source: Path, target_dir: Path) -> int:
    with zipfile.ZipFile(source) as zf:
        members: list[tuple[zipfile.ZipInfo, str]] = []
        directories: list[str] = []
        for info in zf.infolist():
            name = validate_relative_path(info.filename, field_name="archive entry")
            if name == ".":
                continue
            if info.is_dir():
                directories.append(name)
                continue
            members.append((info, name))

        for name in directories:
            (target_dir / name).mkdir(parents=True, exist_ok=True)
        for info, name in members:
            with zf.open(info) as src:
                # Unix permission bits live in the high word of external_attr
                mode = (info.external_attr >> 16) & 0o777
                _write_member(src, target_dir / name, mode or None)
    return len(members)


def _extract_tar_gz_sync(source: Path, target_dir: Path) -> int:
    log = logger.bind(archive=source.name)
    with tarfile.open(source, mode="r:gz") as tf:
        members: list[tuple[tarfile.TarInfo, str]] = []
        directories: list[str] = []
        for member in tf.getmembers():
            name = validate_relative_path(member.name, field_name="archive entry")
            if name == ".":
                continue
            if member.isdir():
                directories.append(name)
                continue
            if not member.isfile():
                log.warning("archive.tar.skip_member", member=member.name, type=member.type)
                continue
            members.append((member, name))

        for name in directories:
            (target_dir / name).mkdir(parents=True, exist_ok=True)
        for member, name in members:
            src = tf.extractfile(member)
            if src is None:
                raise tarfile.ReadError(f"cannot read member {member.name}")
            with src:
                _write_member(src, target_dir / name, member.mode)
    return len(members)


async def _run_extraction(
    func,
    source_path: str | os.PathLike[str],
    target_dir: str | os.PathLike[str],
    error_cls: type[ExtractionError],
    kind: str,
) -> int:
    source = Path(source_path)
    target = Path(target_dir)
    log = logger.bind(kind=kind, target=str(target))
    try:
        count = await asyncio.to_thread(func, source, target)
    except InvalidPathError as e:
        log.warning("archive.rejected_entry", reason=e.details.get("reason"))
        raise error_cls(details={"reason": e.details.get("reason")}) from e
    except (OSError, EOFError, zipfile.BadZipFile, tarfile.TarError, RuntimeError) as e:
        # zipfile raises RuntimeError for encrypted entries
        log.warning("archive.extract_failed", error=str(e))
        raise error_cls() from e
    finally:
        discard(source)
    log.info("archive.extracted", files=count)
    return count


async def extract_zip(
    source_path: str | os.PathLike[str], target_dir: str | os.PathLike[str]
) -> int:
    """Extract a zip archive into target_dir.

    Returns:
        Number of files written

    Raises:
        UnzipFailedError: Corrupt/truncated archive, unsafe entry name or
            write failure
    """
    return await _run_extraction(
        _extract_zip_sync, source_path, target_dir, UnzipFailedError, "zip"
    )


async def extract_tar_gz(
    source_path: str | os.PathLike[str], target_dir: str | os.PathLike[str]
) -> int:
    """Extract a gzip-compressed tar archive into target_dir.

    Only regular files and directories are materialized; links and device
    entries are skipped.

    Raises:
        TarExtractionFailedError: Corrupt/truncated archive, unsafe entry
            name or write failure
    """
    return await _run_extraction(
        _extract_tar_gz_sync,
        source_path,
        target_dir,
        TarExtractionFailedError,
        "tar.gz",
    )


def _move_file_sync(source: Path, dest: Path) -> None:
    if not dest.parent.is_dir():
        raise FileNotFoundError(errno.ENOENT, "destination directory does not exist", str(dest.parent))
    try:
        os.rename(source, dest)
        return
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise

    # Cross-device: copy beside the destination, then atomically replace
    fd, partial = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".partial", dir=dest.parent)
    try:
        with os.fdopen(fd, "wb") as out, open(source, "rb") as src:
            shutil.copyfileobj(src, out, _COPY_BUFSIZE)
        shutil.copymode(source, partial)
        os.replace(partial, dest)
    except BaseException:
        discard(partial)
        raise
    discard(source)


async def move_file(
    source_path: str | os.PathLike[str], dest_path: str | os.PathLike[str]
) -> None:
    """Move an uploaded file to its final location.

    On failure the source is left where it was and no partial destination
    remains; the caller owns discarding the upload.

    Raises:
        UploadMoveFailedError: Missing destination parent or the filesystem
            refused the move
    """
    source = Path(source_path)
    dest = Path(dest_path)
    try:
        await asyncio.to_thread(_move_file_sync, source, dest)
    except OSError as e:
        logger.warning("archive.move_failed", dest=str(dest), error=str(e))
        raise UploadMoveFailedError() from e
    logger.info("archive.moved", dest=str(dest))
