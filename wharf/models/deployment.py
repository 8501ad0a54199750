"""Deployment domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AppType(str, Enum):
    """Declared application type of an uploaded artifact.

    Each value has exactly one post-processing strategy registered in
    wharf.runtimes.
    """

    GENERIC = "generic"
    NODE = "node"


class DeploymentStatus(str, Enum):
    """Terminal outcome of a deployment.

    WARNING means the files are in place but a post-processing step
    (dependency install, build script) did not complete cleanly.
    FAILURE is never returned as a result: failures are raised as
    WharfError subclasses and rendered with this status by the API.
    """

    SUCCESS = "success"
    WARNING = "warning"
    FAILURE = "failure"


@dataclass
class DeploymentResult:
    """Outcome of one deployment request (not persisted)."""

    status: DeploymentStatus
    message: str
    file_path: str
    warning: str | None = None
    files_extracted: int | None = None

    def with_warning(self, warning: str) -> DeploymentResult:
        return DeploymentResult(
            status=DeploymentStatus.WARNING,
            message=self.message,
            file_path=self.file_path,
            warning=warning,
            files_extracted=self.files_extracted,
        )
