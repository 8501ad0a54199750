"""pm2 driver implementation.

Talks to the pm2 daemon through the pm2 CLI:
- connect: ``pm2 ping`` (spawns the daemon if it is not running)
- list/describe: ``pm2 jlist`` (JSON dump of every process)
- start_new: ``pm2 start <script> --name <name>``
- start/stop/restart/delete: ``pm2 <verb> <name>``

The CLI keeps no connection open, so disconnect only marks the session
closed. Every command is bounded by ``supervisor.command_timeout``.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from wharf.config import SupervisorConfig
from wharf.drivers.base import SupervisorDriver, SupervisorError
from wharf.models.process import ProcessDescriptor, ProcessStatus
from wharf.utils.process import CommandResult, run_command

logger = structlog.get_logger()


def _int_or_none(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def parse_descriptor(raw: dict[str, Any]) -> ProcessDescriptor:
    """Map one ``pm2 jlist`` entry to a ProcessDescriptor."""
    env = raw.get("pm2_env") or {}
    pid = _int_or_none(raw.get("pid"))
    return ProcessDescriptor(
        name=str(raw.get("name", "")),
        # pm2 reports pid 0 for processes that are not running
        pid=pid or None,
        internal_id=_int_or_none(raw.get("pm_id")),
        status=ProcessStatus.parse(env.get("status")),
        restart_count=_int_or_none(env.get("restart_time")) or 0,
        started_at_ms=_int_or_none(env.get("pm_uptime")),
        raw=raw,
    )


def parse_jlist(stdout: str) -> list[ProcessDescriptor]:
    """Parse ``pm2 jlist`` output.

    pm2 may print notices (e.g. "In-memory PM2 is out-of-date") before the
    JSON payload, so parsing starts at the first line that opens an array.
    """
    lines = stdout.splitlines()
    for i, line in enumerate(lines):
        if line.lstrip().startswith("["):
            payload = "\n".join(lines[i:])
            break
    else:
        if not stdout.strip():
            return []
        raise ValueError("no JSON array in pm2 output")

    data = json.loads(payload)
    if not isinstance(data, list):
        raise ValueError("pm2 jlist did not return a list")
    return [parse_descriptor(item) for item in data if isinstance(item, dict)]


class Pm2Driver(SupervisorDriver):
    """Supervisor driver backed by the pm2 CLI."""

    def __init__(self, config: SupervisorConfig) -> None:
        self._config = config
        self._connected = False
        self._log = logger.bind(driver="pm2")

    async def _pm2(self, operation: str, *args: str) -> CommandResult:
        result = await run_command(
            [self._config.binary, *args],
            timeout=self._config.command_timeout,
        )
        if not result.ok:
            message = (result.stderr or result.stdout).strip() or f"exit code {result.exit_code}"
            self._log.warning(
                "pm2.command_failed",
                operation=operation,
                exit_code=result.exit_code,
                timed_out=result.timed_out,
            )
            raise SupervisorError(operation, message)
        return result

    def _require_connected(self, operation: str) -> None:
        if not self._connected:
            raise SupervisorError(operation, "not connected to pm2")

    async def connect(self) -> None:
        await self._pm2("connect", "ping")
        self._connected = True
        self._log.debug("pm2.connected")

    async def disconnect(self) -> None:
        self._connected = False
        self._log.debug("pm2.disconnected")

    async def list(self) -> list[ProcessDescriptor]:
        self._require_connected("list")
        result = await self._pm2("list", "jlist")
        try:
            return parse_jlist(result.stdout)
        except ValueError as e:
            raise SupervisorError("list", f"unreadable pm2 output: {e}") from e

    async def start_new(self, name: str, script_path: str) -> list[ProcessDescriptor]:
        self._require_connected("start")
        self._log.info("pm2.start_new", name=name, script=script_path)
        await self._pm2("start", "start", script_path, "--name", name)
        return await self.describe(name)

    async def start(self, name: str) -> list[ProcessDescriptor]:
        self._require_connected("start")
        self._log.info("pm2.start", name=name)
        await self._pm2("start", "start", name)
        return await self.describe(name)

    async def stop(self, name: str) -> list[ProcessDescriptor]:
        self._require_connected("stop")
        self._log.info("pm2.stop", name=name)
        await self._pm2("stop", "stop", name)
        return await self.describe(name)

    async def restart(self, name: str) -> list[ProcessDescriptor]:
        self._require_connected("restart")
        self._log.info("pm2.restart", name=name)
        await self._pm2("restart", "restart", name)
        return await self.describe(name)

    async def delete(self, name: str) -> list[ProcessDescriptor]:
        self._require_connected("delete")
        before = await self.describe(name)
        self._log.info("pm2.delete", name=name)
        await self._pm2("delete", "delete", name)
        return before
