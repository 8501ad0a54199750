"""Async subprocess execution with a hard timeout.

Used for dependency installation, build scripts and the pm2 CLI. The child
runs in its own process group and never outlives the call: on timeout the
whole group (e.g. npm -> sh -> script) is killed and reaped before
returning.
"""

from __future__ import annotations

import asyncio
import os
import signal
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import structlog

logger = structlog.get_logger()


@dataclass
class CommandResult:
    """Outcome of one subprocess invocation."""

    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


def _kill_group(process: asyncio.subprocess.Process) -> None:
    # Grandchildren keep the pipes open; wait() only returns once they are gone
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except OSError:
        try:
            process.kill()
        except ProcessLookupError:
            pass


async def run_command(
    argv: Sequence[str],
    *,
    cwd: str | os.PathLike[str] | None = None,
    timeout: float = 300.0,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Execute a command via subprocess.

    Args:
        argv: Program and arguments (no shell)
        cwd: Working directory
        timeout: Timeout in seconds
        env: Extra environment variables merged over the current ones

    Returns:
        CommandResult; a missing executable is reported as exit code -1
        rather than raised
    """
    log = logger.bind(command=argv[0] if argv else None, cwd=str(cwd) if cwd else None)
    full_env = {**os.environ, **env} if env else None

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=full_env,
            start_new_session=True,
        )
    except FileNotFoundError:
        log.warning("process.not_found")
        return CommandResult(-1, "", f"{argv[0]} not found. Is it installed?")
    except OSError as e:
        log.warning("process.spawn_failed", error=str(e))
        return CommandResult(-1, "", f"Failed to execute command: {e}")

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        _kill_group(process)
        await process.wait()
        log.warning("process.timeout", timeout=timeout)
        return CommandResult(-1, "", f"Command timed out after {timeout}s", timed_out=True)
    except asyncio.CancelledError:
        _kill_group(process)
        raise

    return CommandResult(
        exit_code=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
