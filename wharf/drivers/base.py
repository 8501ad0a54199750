"""Supervisor driver base class - process supervisor abstraction.

Driver is responsible ONLY for talking to the supervisor daemon.
It does NOT handle:
- Authentication or path authorization
- Deciding between "register new" and "relaunch existing"
- NotFound semantics (the client checks existence first)

Every method raises SupervisorError when the daemon is unreachable or
refuses the operation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from wharf.models.process import ProcessDescriptor


class SupervisorError(Exception):
    """The supervisor daemon failed or rejected an operation."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}")


class SupervisorDriver(ABC):
    """Abstract driver interface for an external process supervisor."""

    @abstractmethod
    async def connect(self) -> None:
        """Open a session with the daemon (starting it if needed)."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the session. Must be safe to call after a failed connect."""
        ...

    @abstractmethod
    async def list(self) -> list[ProcessDescriptor]:
        """All processes known to the supervisor."""
        ...

    async def describe(self, name: str) -> list[ProcessDescriptor]:
        """Processes registered under ``name`` (possibly none)."""
        return [p for p in await self.list() if p.name == name]

    @abstractmethod
    async def start_new(self, name: str, script_path: str) -> list[ProcessDescriptor]:
        """Register and launch a new process."""
        ...

    @abstractmethod
    async def start(self, name: str) -> list[ProcessDescriptor]:
        """Launch an already registered process."""
        ...

    @abstractmethod
    async def stop(self, name: str) -> list[ProcessDescriptor]:
        ...

    @abstractmethod
    async def restart(self, name: str) -> list[ProcessDescriptor]:
        ...

    @abstractmethod
    async def delete(self, name: str) -> list[ProcessDescriptor]:
        """Stop and unregister a process. Returns its last known records."""
        ...
