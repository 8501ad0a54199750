"""ProcessService - the "manage process" operation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import structlog

from wharf.config import Settings
from wharf.drivers.base import SupervisorDriver
from wharf.errors import ForbiddenError, InternalError, InvalidPathError, ValidationError, WharfError
from wharf.managers.process import ProcessSupervisorClient, validate_process_name
from wharf.models.process import ProcessDescriptor, ProcessStatusInfo
from wharf.services.key_auth import KeyAuthenticator
from wharf.storage import UploadArtifact, discard
from wharf.validators.path import is_valid_subdirectory, resolve_script_path

logger = structlog.get_logger()


class ProcessAction(str, Enum):
    START = "start"
    STOP = "stop"
    RESTART = "restart"
    DELETE = "delete"
    LIST = "list"
    STATUS = "status"


@dataclass
class ProcessActionResult:
    message: str
    processes: list[ProcessDescriptor] = field(default_factory=list)
    status: list[ProcessStatusInfo] | None = None


class ProcessService:
    """Authenticated process management through the supervisor."""

    def __init__(
        self,
        settings: Settings,
        driver_factory: Callable[[], SupervisorDriver],
        *,
        authenticator: KeyAuthenticator | None = None,
    ) -> None:
        self._settings = settings
        self._driver_factory = driver_factory
        self._auth = authenticator or KeyAuthenticator(settings.security)
        self._log = logger.bind(service="process")

    def resolve_script(self, identity: str, script_path: str) -> str:
        """Resolve a script path under the identity's first authorized root.

        Raises:
            InvalidPathError: Malformed script path
            ForbiddenError: No authorized root, or the path leaves it
        """
        if not is_valid_subdirectory(script_path):
            raise InvalidPathError("Invalid script path", details={"field": "scriptPath"})
        roots = self._settings.security.roots_for(identity)
        if not roots:
            raise ForbiddenError("No authorized path for user")
        resolved = resolve_script_path(self._settings.storage.upload_path, roots[0], script_path)
        if resolved is None:
            raise ForbiddenError()
        return str(resolved)

    async def manage(
        self,
        identity: str | None,
        private_key: UploadArtifact | None,
        action: str | None,
        project_name: str | None = None,
        script_path: str | None = None,
    ) -> ProcessActionResult:
        """Authenticate, then run one supervisor action inside a session.

        Raises:
            UnauthorizedError, ValidationError, ForbiddenError, NotFoundError,
            UpstreamError, InternalError
        """
        try:
            if private_key is None:
                identity = await self._auth.authenticate(identity, None)
            else:
                identity = await self._auth.authenticate_file(identity, private_key.path)

            try:
                op = ProcessAction(action or "")
            except ValueError:
                raise ValidationError("Invalid action", details={"field": "action"}) from None

            if op is not ProcessAction.LIST:
                if not project_name:
                    raise ValidationError(
                        "Project name is required", details={"field": "projectName"}
                    )
                validate_process_name(project_name)

            script = None
            if op is ProcessAction.START and script_path:
                script = self.resolve_script(identity, script_path)

            self._log.info("process.manage", identity=identity, action=op.value, name=project_name)
            async with ProcessSupervisorClient(self._driver_factory()) as client:
                return await self._dispatch(client, op, project_name or "", script)
        except WharfError:
            raise
        except Exception as e:
            self._log.exception("process.internal_error", identity=identity, action=action)
            raise InternalError() from e
        finally:
            if private_key is not None:
                discard(private_key.path)

    async def _dispatch(
        self,
        client: ProcessSupervisorClient,
        op: ProcessAction,
        name: str,
        script: str | None,
    ) -> ProcessActionResult:
        if op is ProcessAction.START:
            is_new = not await client.exists(name)
            procs = await client.start(name, script)
            prefix = "New project" if is_new else "Project"
            return ProcessActionResult(f"{prefix} {name} started successfully", procs)
        if op is ProcessAction.STOP:
            return ProcessActionResult(
                f"Project {name} stopped successfully", await client.stop(name)
            )
        if op is ProcessAction.RESTART:
            return ProcessActionResult(
                f"Project {name} restarted successfully", await client.restart(name)
            )
        if op is ProcessAction.DELETE:
            return ProcessActionResult(
                f"Project {name} deleted successfully", await client.delete(name)
            )
        if op is ProcessAction.LIST:
            return ProcessActionResult("Process list", await client.list())
        return ProcessActionResult(
            f"Status of project {name}", status=await client.get_status(name)
        )
