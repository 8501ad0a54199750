"""Domain models for Wharf."""

from wharf.models.deployment import AppType, DeploymentResult, DeploymentStatus
from wharf.models.process import ProcessDescriptor, ProcessStatus, ProcessStatusInfo

__all__ = [
    "AppType",
    "DeploymentResult",
    "DeploymentStatus",
    "ProcessDescriptor",
    "ProcessStatus",
    "ProcessStatusInfo",
]
