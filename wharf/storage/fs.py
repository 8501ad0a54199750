"""Target directory housekeeping."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Iterable
from pathlib import Path

import structlog

from wharf.validators.path import validate_relative_path

logger = structlog.get_logger()


def _clear_sync(target: Path, preserve: frozenset[str]) -> int:
    removed = 0

    def walk(directory: Path, rel: str) -> bool:
        """Empty ``directory``; True if nothing preserved remains inside."""
        nonlocal removed
        emptied = True
        with os.scandir(directory) as it:
            entries = list(it)
        for entry in entries:
            entry_rel = f"{rel}/{entry.name}" if rel else entry.name
            if entry_rel in preserve:
                emptied = False
                continue
            if entry.is_dir(follow_symlinks=False):
                if walk(Path(entry.path), entry_rel):
                    os.rmdir(entry.path)
                    removed += 1
                else:
                    emptied = False
            else:
                os.unlink(entry.path)
                removed += 1
        return emptied

    if target.is_symlink() or target.is_file():
        target.unlink()
        removed += 1
    elif target.is_dir():
        walk(target, "")
    target.mkdir(parents=True, exist_ok=True)
    return removed


async def clear_directory(
    target_dir: str | os.PathLike[str],
    preserve: Iterable[str] = (),
) -> int:
    """Remove the contents of target_dir, then make sure it exists.

    Deletion is depth-first: files go before their parent directory.
    Entries named in ``preserve`` (paths relative to target_dir) are neither
    deleted nor descended into, and their ancestors are kept.

    Returns:
        Number of filesystem entries removed
    """
    keep = frozenset(validate_relative_path(p, field_name="preserve") for p in preserve)
    target = Path(target_dir)
    removed = await asyncio.to_thread(_clear_sync, target, keep)
    logger.info("fs.cleared", target=str(target), removed=removed, preserved=sorted(keep))
    return removed
