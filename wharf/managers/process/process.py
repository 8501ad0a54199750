"""ProcessSupervisorClient - session-scoped façade over a SupervisorDriver.

Usage:
    async with ProcessSupervisorClient(driver) as client:
        descriptors = await client.start("api", "/srv/uploads/alice/api/index.js")

The session is connected on entry and always disconnected on exit,
including when the body raises. Operations outside a session raise
UpstreamError.
"""

from __future__ import annotations

import re
import time

import structlog

from wharf.drivers.base import SupervisorDriver, SupervisorError
from wharf.errors import NotFoundError, UpstreamError, ValidationError
from wharf.models.process import ProcessDescriptor, ProcessStatusInfo

logger = structlog.get_logger()

# pm2 treats a leading "-" as a flag; names are restricted to plain tokens
_NAME_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9._-]{0,127}$")

# pm2 resolves "all" to every process and a bare number to a pm_id
_RESERVED_NAMES = frozenset({"all"})


def validate_process_name(name: str | None) -> str:
    if (
        not name
        or not _NAME_RE.match(name)
        or name.lower() in _RESERVED_NAMES
        or name.isdigit()
    ):
        raise ValidationError(
            "Invalid project name",
            details={"field": "projectName"},
        )
    return name


class ProcessSupervisorClient:
    """Translates supervisor operations into Wharf's status and error model."""

    def __init__(self, driver: SupervisorDriver) -> None:
        self._driver = driver
        self._open = False
        self._log = logger.bind(manager="process")

    async def __aenter__(self) -> ProcessSupervisorClient:
        try:
            await self._driver.connect()
        except SupervisorError as e:
            self._log.error("supervisor.connect_failed", error=e.message)
            await self._driver.disconnect()
            raise UpstreamError("Supervisor connection failed") from e
        self._open = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._open = False
        await self._driver.disconnect()

    async def _call(self, operation: str, coro_fn, *args):
        if not self._open:
            raise UpstreamError(f"Supervisor session is not open ({operation})")
        try:
            return await coro_fn(*args)
        except SupervisorError as e:
            self._log.warning("supervisor.operation_failed", operation=operation, error=e.message)
            raise UpstreamError(
                f"Supervisor {operation} failed",
                details={"operation": operation},
            ) from e

    async def describe(self, name: str) -> list[ProcessDescriptor]:
        """Descriptors registered under name; empty is a valid answer."""
        return await self._call("describe", self._driver.describe, validate_process_name(name))

    async def list(self) -> list[ProcessDescriptor]:
        return await self._call("list", self._driver.list)

    async def exists(self, name: str) -> bool:
        return bool(await self.describe(name))

    async def start(
        self, name: str, script_path: str | None = None
    ) -> list[ProcessDescriptor]:
        """Launch a process, registering it first if the supervisor does not know it.

        Raises:
            ValidationError: Unknown process and no script path
        """
        if await self.exists(name):
            self._log.info("process.start", name=name, new=False)
            return await self._call("start", self._driver.start, name)

        if not script_path:
            raise ValidationError(
                "Script path is required for new project",
                details={"field": "scriptPath"},
            )
        self._log.info("process.start", name=name, new=True)
        return await self._call("start", self._driver.start_new, name, script_path)

    async def _require(self, name: str) -> None:
        if not await self.exists(name):
            raise NotFoundError(f"Project {name} not found")

    async def stop(self, name: str) -> list[ProcessDescriptor]:
        await self._require(name)
        return await self._call("stop", self._driver.stop, name)

    async def restart(self, name: str) -> list[ProcessDescriptor]:
        await self._require(name)
        return await self._call("restart", self._driver.restart, name)

    async def delete(self, name: str) -> list[ProcessDescriptor]:
        await self._require(name)
        return await self._call("delete", self._driver.delete, name)

    async def get_status(self, name: str) -> list[ProcessStatusInfo]:
        """Status projection for every process registered under name.

        Raises:
            NotFoundError: No such process
        """
        descriptors = await self.describe(name)
        if not descriptors:
            raise NotFoundError(f"Project {name} not found")
        now_ms = int(time.time() * 1000)
        return [ProcessStatusInfo.from_descriptor(d, now_ms) for d in descriptors]
