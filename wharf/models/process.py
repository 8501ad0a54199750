"""Managed process models, as reported by the supervisor."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProcessStatus(str, Enum):
    """Process status from the supervisor's perspective."""

    ONLINE = "online"
    LAUNCHING = "launching"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERRORED = "errored"
    ONE_LAUNCH = "one-launch-status"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> ProcessStatus:
        try:
            return cls(str(value))
        except ValueError:
            return cls.UNKNOWN


@dataclass
class ProcessDescriptor:
    """Supervisor record of one managed process."""

    name: str
    pid: int | None
    internal_id: int | None
    status: ProcessStatus
    restart_count: int = 0
    # Epoch milliseconds of the last start; None if never started
    started_at_ms: int | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    def uptime_ms(self, now_ms: int | None = None) -> int | None:
        if not self.started_at_ms:
            return None
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return max(0, now_ms - self.started_at_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "pid": self.pid,
            "internal_id": self.internal_id,
            "status": self.status.value,
            "restart_count": self.restart_count,
            "started_at_ms": self.started_at_ms,
        }


@dataclass
class ProcessStatusInfo:
    """Status projection returned by the "status" action."""

    name: str
    pid: int | None
    internal_id: int | None
    status: ProcessStatus
    restart_count: int
    uptime_ms: int | None

    @classmethod
    def from_descriptor(
        cls, descriptor: ProcessDescriptor, now_ms: int | None = None
    ) -> ProcessStatusInfo:
        return cls(
            name=descriptor.name,
            pid=descriptor.pid,
            internal_id=descriptor.internal_id,
            status=descriptor.status,
            restart_count=descriptor.restart_count,
            uptime_ms=descriptor.uptime_ms(now_ms),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "pid": self.pid,
            "internal_id": self.internal_id,
            "status": self.status.value,
            "restart_count": self.restart_count,
            "uptime_ms": self.uptime_ms,
        }
