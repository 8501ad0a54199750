"""Unit tests for post-processing runtimes.

The install and run commands are pointed at the current Python interpreter
so no Node.js toolchain is needed.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from wharf.config import NodeRuntimeConfig, PipelineConfig
from wharf.errors import ValidationError
from wharf.models.deployment import AppType
from wharf.runtimes import GenericRuntime, NodeRuntime, get_runtime, parse_app_type
from wharf.runtimes.node import (
    WARN_BAD_MANIFEST,
    WARN_DEPLOY_FAILED,
    WARN_DEPLOY_STDERR,
    WARN_INSTALL_FAILED,
    WARN_NO_DEPLOY_SCRIPT,
    WARN_NO_MANIFEST,
)

PY = sys.executable

# Writes a marker so tests can check the install ran before the deploy script
INSTALL_OK = [PY, "-c", "open('installed.marker', 'w').write('1')"]
INSTALL_FAIL = [PY, "-c", "import sys; sys.exit(1)"]


def node_config(
    install: list[str] = INSTALL_OK,
    run_code: str = "import os, sys; assert os.path.exists('installed.marker'); open(sys.argv[1] + '.ran', 'w').write('1')",
    timeout: float = 30.0,
) -> PipelineConfig:
    return PipelineConfig(
        install_timeout=timeout,
        build_timeout=timeout,
        node=NodeRuntimeConfig(install_command=install, run_command=[PY, "-c", run_code]),
    )


def write_manifest(target: Path, scripts: dict[str, str] | None = None) -> None:
    manifest = {"name": "app", "version": "1.0.0"}
    if scripts is not None:
        manifest["scripts"] = scripts
    (target / "package.json").write_text(json.dumps(manifest))


class TestParseAppType:
    def test_defaults_to_generic(self) -> None:
        assert parse_app_type(None) is AppType.GENERIC
        assert parse_app_type("") is AppType.GENERIC

    def test_case_insensitive(self) -> None:
        assert parse_app_type(" Node ") is AppType.NODE

    def test_unknown_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_app_type("ruby")


class TestGetRuntime:
    def test_every_app_type_has_a_runtime(self) -> None:
        for app_type in AppType:
            assert get_runtime(app_type, PipelineConfig()).app_type is app_type

    async def test_generic_does_nothing(self, tmp_path: Path) -> None:
        outcome = await GenericRuntime().post_process(tmp_path)
        assert outcome.message is None
        assert outcome.warning is None


class TestNodeRuntime:
    async def test_install_then_deploy(self, tmp_path: Path) -> None:
        write_manifest(tmp_path, {"deploy": "node build.js"})

        outcome = await NodeRuntime(node_config()).post_process(tmp_path)

        assert outcome.warning is None
        assert outcome.message == "dependencies installed, deploy script ran"
        assert (tmp_path / "installed.marker").exists()
        assert (tmp_path / "deploy.ran").exists()

    async def test_no_manifest(self, tmp_path: Path) -> None:
        outcome = await NodeRuntime(node_config()).post_process(tmp_path)
        assert outcome.warning == WARN_NO_MANIFEST
        assert not (tmp_path / "installed.marker").exists()

    async def test_unparsable_manifest(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("{not json")
        outcome = await NodeRuntime(node_config()).post_process(tmp_path)
        assert outcome.warning == WARN_BAD_MANIFEST

    async def test_install_failure_skips_deploy(self, tmp_path: Path) -> None:
        write_manifest(tmp_path, {"deploy": "x"})
        outcome = await NodeRuntime(node_config(install=INSTALL_FAIL)).post_process(tmp_path)
        assert outcome.warning == WARN_INSTALL_FAILED
        assert not (tmp_path / "deploy.ran").exists()

    async def test_missing_install_tool(self, tmp_path: Path) -> None:
        write_manifest(tmp_path, {"deploy": "x"})
        config = node_config(install=["wharf-no-such-npm", "install"])
        outcome = await NodeRuntime(config).post_process(tmp_path)
        assert outcome.warning == WARN_INSTALL_FAILED

    async def test_no_deploy_script(self, tmp_path: Path) -> None:
        write_manifest(tmp_path, {"start": "node index.js"})
        outcome = await NodeRuntime(node_config()).post_process(tmp_path)
        assert outcome.message == "dependencies installed"
        assert outcome.warning == WARN_NO_DEPLOY_SCRIPT

    async def test_deploy_script_failure_is_a_warning(self, tmp_path: Path) -> None:
        write_manifest(tmp_path, {"deploy": "x"})
        config = node_config(run_code="import sys; sys.exit(2)")
        outcome = await NodeRuntime(config).post_process(tmp_path)
        assert outcome.warning == WARN_DEPLOY_FAILED

    async def test_deploy_stderr_is_a_warning(self, tmp_path: Path) -> None:
        write_manifest(tmp_path, {"deploy": "x"})
        config = node_config(run_code="import sys; print('deprecated', file=sys.stderr)")
        outcome = await NodeRuntime(config).post_process(tmp_path)
        assert outcome.message == "dependencies installed, deploy script ran"
        assert outcome.warning == WARN_DEPLOY_STDERR

    async def test_deploy_timeout_is_a_warning(self, tmp_path: Path) -> None:
        write_manifest(tmp_path, {"deploy": "x"})
        config = node_config(run_code="import time; time.sleep(30)")
        config.build_timeout = 0.5
        outcome = await NodeRuntime(config).post_process(tmp_path)
        assert outcome.warning == WARN_DEPLOY_FAILED
