"""Managers for Wharf."""

from wharf.managers.deployment import DeploymentPipeline
from wharf.managers.process import ProcessSupervisorClient

__all__ = ["DeploymentPipeline", "ProcessSupervisorClient"]
