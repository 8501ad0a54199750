"""Target-directory in-memory locks.

Two deployments to the same target directory would otherwise interleave:
the second request's clear step can delete files the first one just
extracted. DeploymentPipeline holds the lock for a target across clear,
populate and post-process, so same-target deployments serialize while
deployments to different directories still run concurrently.

Entries are reference counted and dropped once the last holder or waiter
leaves, so the table only contains targets with a deployment in flight.

Note: These locks only work within a single process. Running several
gateway workers against one upload directory reintroduces the race.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

# Key: normalized absolute target path, Value: asyncio.Lock
_target_locks: dict[str, asyncio.Lock] = {}
# Key: normalized absolute target path, Value: holders plus waiters
_target_lock_users: dict[str, int] = {}
_target_locks_lock = asyncio.Lock()


def _key(target: str | os.PathLike[str]) -> str:
    return os.path.normpath(os.path.abspath(os.fspath(target)))


@asynccontextmanager
async def target_lock(target: str | os.PathLike[str]) -> AsyncIterator[None]:
    """Hold the lock for a target directory for the duration of the block.

    Args:
        target: Target directory; normalized before lookup so that
            "a/b" and "a/./b/" share one lock
    """
    key = _key(target)
    async with _target_locks_lock:
        lock = _target_locks.setdefault(key, asyncio.Lock())
        _target_lock_users[key] = _target_lock_users.get(key, 0) + 1
    try:
        async with lock:
            yield
    finally:
        async with _target_locks_lock:
            _target_lock_users[key] -= 1
            if not _target_lock_users[key]:
                del _target_lock_users[key]
                _target_locks.pop(key, None)


def get_lock_count() -> int:
    """Get current number of locks (for testing/metrics)."""
    return len(_target_locks)
