"""Node.js post-processing: npm install, then the deploy script."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import structlog

from wharf.config import PipelineConfig
from wharf.models.deployment import AppType
from wharf.runtimes.base import BaseRuntime, PostProcessOutcome
from wharf.utils.process import CommandResult, run_command

logger = structlog.get_logger()

WARN_NO_MANIFEST = "no manifest found"
WARN_BAD_MANIFEST = "manifest could not be parsed"
WARN_INSTALL_FAILED = "dependency install failed"
WARN_NO_DEPLOY_SCRIPT = "no deploy script"
WARN_DEPLOY_FAILED = "deploy script failed"
WARN_DEPLOY_STDERR = "deploy script reported errors"


def _tail(text: str, limit: int = 2000) -> str:
    return text[-limit:] if len(text) > limit else text


class NodeRuntime(BaseRuntime):
    """Dependency install and build for "node" deployments.

    Steps run strictly in order; the deploy script is only attempted after
    the install has finished successfully.
    """

    app_type = AppType.NODE

    def __init__(self, config: PipelineConfig) -> None:
        self._config = config
        self._node = config.node
        self._log = logger.bind(runtime="node")

    def _read_manifest(self, target_dir: Path) -> dict | None:
        data = json.loads((target_dir / self._node.manifest).read_text(encoding="utf-8"))
        return data if isinstance(data, dict) else None

    async def post_process(self, target_dir: Path) -> PostProcessOutcome:
        manifest_path = target_dir / self._node.manifest
        if not manifest_path.is_file():
            self._log.info("node.no_manifest", target=str(target_dir))
            return PostProcessOutcome(warning=WARN_NO_MANIFEST)

        try:
            manifest = await asyncio.to_thread(self._read_manifest, target_dir)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            self._log.warning("node.bad_manifest", error=str(e))
            manifest = None
        if manifest is None:
            return PostProcessOutcome(warning=WARN_BAD_MANIFEST)

        install = await run_command(
            self._node.install_command,
            cwd=target_dir,
            timeout=self._config.install_timeout,
        )
        if not install.ok:
            self._log.warning(
                "node.install_failed",
                exit_code=install.exit_code,
                timed_out=install.timed_out,
                stderr=_tail(install.stderr),
            )
            return PostProcessOutcome(warning=WARN_INSTALL_FAILED)
        self._log.info("node.installed", target=str(target_dir))

        scripts = manifest.get("scripts")
        script = self._node.deploy_script
        if not isinstance(scripts, dict) or script not in scripts:
            return PostProcessOutcome(
                message="dependencies installed", warning=WARN_NO_DEPLOY_SCRIPT
            )

        build = await run_command(
            [*self._node.run_command, script],
            cwd=target_dir,
            timeout=self._config.build_timeout,
        )
        return self._build_outcome(build)

    def _build_outcome(self, build: CommandResult) -> PostProcessOutcome:
        if not build.ok:
            self._log.warning(
                "node.deploy_failed",
                exit_code=build.exit_code,
                timed_out=build.timed_out,
                stderr=_tail(build.stderr),
            )
            return PostProcessOutcome(
                message="dependencies installed", warning=WARN_DEPLOY_FAILED
            )
        if build.stderr.strip():
            self._log.warning("node.deploy_stderr", stderr=_tail(build.stderr))
            return PostProcessOutcome(
                message="dependencies installed, deploy script ran",
                warning=WARN_DEPLOY_STDERR,
            )
        self._log.info("node.deployed")
        return PostProcessOutcome(message="dependencies installed, deploy script ran")
