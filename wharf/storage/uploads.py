"""Request-scoped temporary storage for uploaded parts.

Every uploaded part gets a uniquely named file under the temp directory.
The file is removed when the request finishes, whatever the outcome;
consumers that already moved or deleted it leave nothing to clean.
"""

from __future__ import annotations

import os
import shutil
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncGenerator

import structlog
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from wharf.storage.archive import discard

logger = structlog.get_logger()


@dataclass
class UploadArtifact:
    """One uploaded file: original name plus server-side temp location."""

    filename: str
    path: Path

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


def _spool(upload: UploadFile, dest: Path) -> None:
    upload.file.seek(0)
    with open(dest, "wb") as out:
        shutil.copyfileobj(upload.file, out)
    os.chmod(dest, 0o600)


@asynccontextmanager
async def temporary_upload(
    upload: UploadFile, temp_dir: str | os.PathLike[str]
) -> AsyncGenerator[UploadArtifact, None]:
    """Spool an UploadFile to disk for the duration of the block."""
    directory = Path(temp_dir)
    directory.mkdir(parents=True, exist_ok=True)
    dest = directory / uuid.uuid4().hex
    try:
        await run_in_threadpool(_spool, upload, dest)
        # Only the basename is kept; a client-sent "a/b.txt" must not add path components
        filename = os.path.basename((upload.filename or "").replace("\\", "/"))
        if filename in ("", ".", ".."):
            filename = dest.name
        logger.debug("upload.spooled", filename=filename, temp=dest.name)
        yield UploadArtifact(filename=filename, path=dest)
    finally:
        discard(dest)
