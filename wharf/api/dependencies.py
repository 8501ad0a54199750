"""FastAPI dependencies for the Wharf API.

Provides dependency injection for:
- Settings
- Services (Deployment, Process)
- Supervisor driver factory
- Request-scoped temp spooling of uploaded parts
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AsyncExitStack
from typing import Annotated

from fastapi import Depends, UploadFile

from wharf.config import Settings, get_settings
from wharf.drivers.base import SupervisorDriver
from wharf.drivers.pm2 import Pm2Driver
from wharf.services import DeploymentService, ProcessService
from wharf.storage import UploadArtifact, temporary_upload

SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_driver_factory(settings: SettingsDep) -> Callable[[], SupervisorDriver]:
    """Factory producing one fresh driver per process-management request."""
    if settings.supervisor.type == "pm2":
        return lambda: Pm2Driver(settings.supervisor)
    raise ValueError(f"Unsupported supervisor type: {settings.supervisor.type}")


def get_deployment_service(settings: SettingsDep) -> DeploymentService:
    return DeploymentService(settings)


def get_process_service(
    settings: SettingsDep,
    driver_factory: Annotated[Callable[[], SupervisorDriver], Depends(get_driver_factory)],
) -> ProcessService:
    return ProcessService(settings, driver_factory)


async def spool(
    stack: AsyncExitStack, upload: UploadFile | None, settings: Settings
) -> UploadArtifact | None:
    """Spool an optional upload into temp storage owned by ``stack``."""
    if upload is None:
        return None
    return await stack.enter_async_context(
        temporary_upload(upload, settings.storage.temp_path)
    )


DeploymentServiceDep = Annotated[DeploymentService, Depends(get_deployment_service)]
ProcessServiceDep = Annotated[ProcessService, Depends(get_process_service)]
