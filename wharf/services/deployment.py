"""DeploymentService - the "deploy artifact" operation.

Composes key authentication, input validation and the deployment pipeline,
and is the outermost error boundary for deployments: WharfError subclasses
pass through unchanged, anything else becomes InternalError.
"""

from __future__ import annotations

import structlog

from wharf.config import Settings
from wharf.errors import InternalError, ValidationError, WharfError
from wharf.managers.deployment import DeploymentPipeline
from wharf.models.deployment import DeploymentResult
from wharf.runtimes import parse_app_type
from wharf.services.key_auth import KeyAuthenticator
from wharf.storage import UploadArtifact, discard

logger = structlog.get_logger()


class DeploymentService:
    """Authenticated deployment of one uploaded artifact."""

    def __init__(
        self,
        settings: Settings,
        *,
        authenticator: KeyAuthenticator | None = None,
        pipeline: DeploymentPipeline | None = None,
    ) -> None:
        self._settings = settings
        self._auth = authenticator or KeyAuthenticator(settings.security)
        self._pipeline = pipeline or DeploymentPipeline(settings)
        self._log = logger.bind(service="deployment")

    async def deploy(
        self,
        identity: str | None,
        private_key: UploadArtifact | None,
        artifact: UploadArtifact | None,
        subdir: str | None = None,
        app_type: str | None = None,
    ) -> DeploymentResult:
        """Authenticate, then place the artifact under the identity's roots.

        Raises:
            UnauthorizedError: Missing or invalid key material
            ValidationError / InvalidPathError: Missing file, bad type or subdirectory
            ForbiddenError: Target not under an authorized root
            UnzipFailedError / TarExtractionFailedError / UploadMoveFailedError
            InternalError: Anything unexpected
        """
        try:
            if private_key is None:
                identity = await self._auth.authenticate(identity, None)
            else:
                identity = await self._auth.authenticate_file(identity, private_key.path)

            if artifact is None:
                raise ValidationError("Missing required files", details={"field": "file"})
            kind = parse_app_type(app_type)

            return await self._pipeline.run(identity, subdir or "", artifact, kind)
        except WharfError:
            raise
        except Exception as e:
            self._log.exception("deploy.internal_error", identity=identity)
            raise InternalError() from e
        finally:
            if artifact is not None:
                discard(artifact.path)
            if private_key is not None:
                discard(private_key.path)
