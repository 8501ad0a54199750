"""DeploymentPipeline - places an uploaded artifact into a target directory.

State machine per request:

    Received -> Authorized -> Cleared -> Populated -> [PostProcessed] -> Terminal

- Authorized: the target directory must fall under one of the identity's
  authorized roots; otherwise ForbiddenError before anything is touched.
- Cleared: existing contents are removed (preserve list excepted).
- Populated: .zip / .tar.gz are extracted, anything else is moved in as is.
  A failure here re-clears the directory so no half-populated tree is left
  behind; the previous contents are not restored.
- PostProcessed: the runtime for the declared AppType runs. It can only
  downgrade the result to a warning.

Clear, populate and post-process run under a per-target lock.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import structlog

from wharf.concurrency import target_lock
from wharf.config import Settings
from wharf.errors import ForbiddenError, InvalidPathError, WharfError
from wharf.models.deployment import AppType, DeploymentResult, DeploymentStatus
from wharf.runtimes import get_runtime
from wharf.storage import (
    UploadArtifact,
    clear_directory,
    discard,
    extract_tar_gz,
    extract_zip,
    move_file,
)
from wharf.validators.path import is_authorized, is_valid_subdirectory, resolve_target_dir

logger = structlog.get_logger()


class DeploymentPipeline:
    """Authorize, clear, populate and post-process one deployment."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._log = logger.bind(manager="deployment")

    def resolve_target(self, identity: str, subdir: str) -> Path:
        """Validate and authorize a subdirectory for an identity.

        Raises:
            InvalidPathError: Malformed subdirectory string
            ForbiddenError: Target outside every authorized root
        """
        subdir = subdir or ""
        if not is_valid_subdirectory(subdir):
            raise InvalidPathError(details={"field": "path"})

        base_dir = self._settings.storage.upload_path
        roots = self._settings.security.roots_for(identity) or None
        if not is_authorized(base_dir, subdir, roots):
            self._log.info("deploy.forbidden", identity=identity, subdir=subdir)
            raise ForbiddenError()
        return resolve_target_dir(base_dir, subdir)

    async def run(
        self,
        identity: str,
        subdir: str,
        artifact: UploadArtifact,
        app_type: AppType = AppType.GENERIC,
        *,
        preserve: Iterable[str] | None = None,
    ) -> DeploymentResult:
        """Deploy an artifact for an authenticated identity.

        The artifact's temp file is consumed: moved into place or deleted.

        Raises:
            InvalidPathError / ForbiddenError: Before any mutation
            UnzipFailedError / TarExtractionFailedError / UploadMoveFailedError:
                After the clear step; the target is left empty
        """
        try:
            target_dir = self.resolve_target(identity, subdir)
        except WharfError:
            discard(artifact.path)
            raise

        keep = list(self._settings.storage.preserve if preserve is None else preserve)
        log = self._log.bind(identity=identity, target=str(target_dir), app_type=app_type.value)

        async with target_lock(target_dir):
            log.info("deploy.clear")
            try:
                await clear_directory(target_dir, keep)
            except BaseException:
                discard(artifact.path)
                raise

            try:
                result = await self._populate(target_dir, artifact)
            except WharfError:
                log.warning("deploy.populate_failed")
                await clear_directory(target_dir, keep)
                raise
            finally:
                discard(artifact.path)

            log.info("deploy.populated", file_path=result.file_path)

            runtime = get_runtime(app_type, self._settings.pipeline)
            outcome = await runtime.post_process(target_dir)

        if outcome.message:
            result.message = f"{result.message}; {outcome.message}"
        if outcome.warning:
            log.warning("deploy.warning", warning=outcome.warning)
            result = result.with_warning(outcome.warning)
        log.info("deploy.done", status=result.status.value)
        return result

    async def _populate(self, target_dir: Path, artifact: UploadArtifact) -> DeploymentResult:
        name = artifact.filename.lower()

        if name.endswith(".zip"):
            count = await extract_zip(artifact.path, target_dir)
        elif name.endswith(".tar.gz"):
            count = await extract_tar_gz(artifact.path, target_dir)
        else:
            dest = target_dir / artifact.filename
            await move_file(artifact.path, dest)
            return DeploymentResult(
                status=DeploymentStatus.SUCCESS,
                message="File uploaded successfully",
                file_path=str(dest),
            )

        return DeploymentResult(
            status=DeploymentStatus.SUCCESS,
            message="Files extracted successfully",
            file_path=str(target_dir),
            files_extracted=count,
        )
