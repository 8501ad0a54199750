"""Service layer - the two user-facing operations."""

from wharf.services.deployment import DeploymentService
from wharf.services.key_auth import KeyAuthenticator
from wharf.services.process import ProcessAction, ProcessActionResult, ProcessService

__all__ = [
    "DeploymentService",
    "KeyAuthenticator",
    "ProcessAction",
    "ProcessActionResult",
    "ProcessService",
]
