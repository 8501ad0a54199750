"""Wharf configuration management.

Configuration sources (in priority order):
1. Environment variables (WHARF_ prefix)
2. Config file (config.yaml)
3. Defaults

The resulting Settings object is loaded once at startup and handed to the
components that need it. Nothing in the core reads configuration lazily.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 3000


class StorageConfig(BaseModel):
    """Filesystem locations used by deployments."""

    # Every authorized root is interpreted relative to this directory
    upload_dir: str = "./uploads"

    # Multipart parts are spooled here for the lifetime of one request
    temp_dir: str = "./public/temp"

    # Subpaths (relative to the target directory) kept across redeploys,
    # e.g. a persistent "data" directory
    preserve: list[str] = Field(default_factory=list)

    @property
    def upload_path(self) -> Path:
        return Path(self.upload_dir).resolve()

    @property
    def temp_path(self) -> Path:
        return Path(self.temp_dir).resolve()


class SecurityConfig(BaseModel):
    """Key authentication and path authorization."""

    # Directory holding "<name>_public_key.pem" files.
    # None = no public keys available, every authentication fails.
    public_key_dir: str | None = None
    public_key_suffix: str = "_public_key.pem"

    # identity -> authorized roots (relative to storage.upload_dir).
    # A single string is accepted and normalized to a one-element list.
    authorized_users: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("authorized_users", mode="before")
    @classmethod
    def _normalize_roots(cls, value: object) -> object:
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        normalized: dict[str, list[str]] = {}
        for user, roots in value.items():
            if roots is None:
                normalized[str(user)] = []
            elif isinstance(roots, str):
                normalized[str(user)] = [roots]
            else:
                normalized[str(user)] = [str(r) for r in roots]
        return normalized

    def roots_for(self, identity: str) -> list[str]:
        """Authorized roots for an identity, in configured order.

        Unknown identities get an empty list, which authorizes nothing.
        """
        return list(self.authorized_users.get(identity, []))


class NodeRuntimeConfig(BaseModel):
    """Post-processing for "node" deployments."""

    manifest: str = "package.json"
    install_command: list[str] = Field(default_factory=lambda: ["npm", "install"])
    run_command: list[str] = Field(default_factory=lambda: ["npm", "run"])
    deploy_script: str = "deploy"


class PipelineConfig(BaseModel):
    """Deployment pipeline configuration."""

    install_timeout: float = 300.0
    build_timeout: float = 300.0
    node: NodeRuntimeConfig = Field(default_factory=NodeRuntimeConfig)


class SupervisorConfig(BaseModel):
    """External process supervisor configuration."""

    type: Literal["pm2"] = "pm2"
    binary: str = "pm2"
    command_timeout: float = 30.0


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_output: bool = Field(default=False, alias="json")

    model_config = {"populate_by_name": True}


class Settings(BaseSettings):
    """Wharf application settings."""

    model_config = SettingsConfigDict(
        env_prefix="WHARF_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    supervisor: SupervisorConfig = Field(default_factory=SupervisorConfig)
    log: LogConfig = Field(default_factory=LogConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML values arrive as init kwargs; environment must win over them
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    def ensure_directories(self) -> None:
        """Create upload and temp directories if missing."""
        self.storage.upload_path.mkdir(parents=True, exist_ok=True)
        self.storage.temp_path.mkdir(parents=True, exist_ok=True)


def _load_config_file() -> dict:
    """Load configuration from YAML file if exists.

    Looks for config file in order:
    1. WHARF_CONFIG_FILE environment variable
    2. ./config.yaml
    3. /etc/wharf/config.yaml
    """
    import os

    config_paths = [
        os.environ.get("WHARF_CONFIG_FILE"),
        Path("config.yaml"),
        Path("/etc/wharf/config.yaml"),
    ]

    for path in config_paths:
        if path is None:
            continue
        path = Path(path)
        if path.exists():
            with open(path) as f:
                return yaml.safe_load(f) or {}

    return {}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Configuration is loaded from:
    1. YAML config file (if exists)
    2. Environment variables (override)
    3. Defaults
    """
    file_config = _load_config_file()
    return Settings(**file_config)
