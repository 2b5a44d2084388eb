# === NAVMAP v1 ===
# {
#   "module": "PaperUpdate.settings",
#   "purpose": "Configuration models, YAML loading, and environment overrides for the updater",
#   "sections": [
#     {"id": "models", "name": "Configuration Models", "anchor": "MOD", "kind": "api"},
#     {"id": "env", "name": "Environment Overrides", "anchor": "ENV", "kind": "api"},
#     {"id": "loading", "name": "Settings Loading", "anchor": "LOAD", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Configuration models, parsing, and validation helpers.

Every knob has a default that reproduces the stock PaperMC update flow, so the
CLI works without any configuration file. Operators may point ``--config`` at
a YAML document whose keys mirror :class:`UpdaterSettings`; selected values
can also be overridden through ``PAPERUPDATE_*`` environment variables.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

__all__ = [
    "HttpConfiguration",
    "LoggingConfiguration",
    "UpdaterSettings",
    "EnvironmentOverrides",
    "get_env_overrides",
    "load_settings",
    "DEFAULT_CATALOG_URL",
    "DEFAULT_BUILD_LIST_URL",
    "DEFAULT_DOWNLOAD_URL",
]

DEFAULT_CATALOG_URL = "https://papermc.io/js/downloads.js"
DEFAULT_BUILD_LIST_URL = (
    "https://papermc.io/ci/job/Paper-{major}/api/json"
    "?tree=builds[number,timestamp,changeSet[items[comment,commitId,msg]]]"
)
DEFAULT_DOWNLOAD_URL = "https://papermc.io/api/v1/paper/{version}/{build}/download"


class HttpConfiguration(BaseModel):
    """HTTP client timeouts and streaming parameters.

    The updater performs no retries; timeouts are the only guard against a
    stalled remote.
    """

    timeout_sec: float = Field(default=30.0, gt=0.0, le=300.0)
    connect_timeout_sec: float = Field(default=5.0, gt=0.0, le=60.0)
    download_timeout_sec: float = Field(default=300.0, gt=0.0, le=3600.0)
    chunk_size: int = Field(default=64 * 1024, ge=1024, le=16 * 1024 * 1024)
    http2_enabled: bool = Field(default=False)
    user_agent: str = Field(default="paper-update")

    model_config = {"validate_assignment": True, "extra": "ignore"}


class LoggingConfiguration(BaseModel):
    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    max_log_size_mb: int = Field(default=10, gt=0, description="Maximum size of rotated log files")
    retention_days: int = Field(default=30, ge=1, description="Retention period for log files")
    log_dir: Optional[Path] = Field(
        default=None, description="Directory for JSONL log files; console only when unset"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = value.upper()
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return upper

    model_config = {"validate_assignment": True}


class UpdaterSettings(BaseModel):
    """Top-level settings for a single update run.

    Attributes:
        catalog_url: Script resource embedding the version catalog object.
        build_list_url: Template for the CI build list; ``{major}`` is replaced
            by the selected major line (for example ``1.18``).
        download_url: Template for the artifact download; receives
            ``{version}`` and ``{build}``.
        endpoint_name: Catalog ``api_endpoint`` value to select.
        artifact_name: Base file name used for numbered and canonical jars.
        version_prefix_length: Number of leading version components that must
            match the persisted API version.
        skip_marker: Commit comment marker that excludes a build.
        state_file: Version history file, relative to the working directory.
        http: HTTP client configuration.
        logging: Logging configuration.
    """

    catalog_url: str = Field(default=DEFAULT_CATALOG_URL)
    build_list_url: str = Field(default=DEFAULT_BUILD_LIST_URL)
    download_url: str = Field(default=DEFAULT_DOWNLOAD_URL)
    endpoint_name: str = Field(default="paper", min_length=1)
    artifact_name: str = Field(default="paper", min_length=1)
    version_prefix_length: int = Field(default=2, ge=1, le=3)
    skip_marker: str = Field(default="[CI-SKIP]", min_length=1)
    state_file: str = Field(default="version_history.json")
    http: HttpConfiguration = Field(default_factory=HttpConfiguration)
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)

    @field_validator("artifact_name")
    @classmethod
    def validate_artifact_name(cls, value: str) -> str:
        if "/" in value or "\\" in value:
            raise ValueError("artifact_name must be a bare file name")
        return value

    model_config = {"validate_assignment": True, "extra": "forbid"}

    def build_list_url_for(self, major: str) -> str:
        return self.build_list_url.format(major=major)

    def download_url_for(self, version: str, build: int) -> str:
        return self.download_url.format(version=version, build=build)


class EnvironmentOverrides(BaseSettings):
    """Pydantic settings model exposing environment-derived overrides."""

    catalog_url: Optional[str] = Field(default=None, alias="PAPERUPDATE_CATALOG_URL")
    endpoint_name: Optional[str] = Field(default=None, alias="PAPERUPDATE_ENDPOINT_NAME")
    artifact_name: Optional[str] = Field(default=None, alias="PAPERUPDATE_ARTIFACT_NAME")
    timeout_sec: Optional[float] = Field(default=None, alias="PAPERUPDATE_TIMEOUT_SEC")
    download_timeout_sec: Optional[float] = Field(
        default=None, alias="PAPERUPDATE_DOWNLOAD_TIMEOUT_SEC"
    )
    log_level: Optional[str] = Field(default=None, alias="PAPERUPDATE_LOG_LEVEL")
    log_dir: Optional[Path] = Field(default=None, alias="PAPERUPDATE_LOG_DIR")

    model_config = SettingsConfigDict(
        env_prefix="PAPERUPDATE_", case_sensitive=False, extra="ignore"
    )


def get_env_overrides() -> Dict[str, str]:
    """Return environment-derived overrides as stringified key/value pairs."""

    env = EnvironmentOverrides()
    return {
        key: str(value) for key, value in env.model_dump(by_alias=False, exclude_none=True).items()
    }


def _apply_env_overrides(settings: UpdaterSettings) -> None:
    """Mutate ``settings`` in-place using values from :class:`EnvironmentOverrides`."""

    env = EnvironmentOverrides()
    logger = logging.getLogger("PaperUpdate")

    if env.catalog_url is not None:
        settings.catalog_url = env.catalog_url
    if env.endpoint_name is not None:
        settings.endpoint_name = env.endpoint_name
    if env.artifact_name is not None:
        settings.artifact_name = env.artifact_name
    if env.timeout_sec is not None:
        settings.http.timeout_sec = env.timeout_sec
    if env.download_timeout_sec is not None:
        settings.http.download_timeout_sec = env.download_timeout_sec
    if env.log_level is not None:
        settings.logging.level = env.log_level
    if env.log_dir is not None:
        settings.logging.log_dir = env.log_dir

    applied = get_env_overrides()
    if applied:
        logger.debug(
            "applied environment overrides",
            extra={"stage": "config", "overrides": sorted(applied)},
        )


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration file {path} is not valid YAML: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping at the top level")
    return raw


def load_settings(config_path: Optional[Path] = None) -> UpdaterSettings:
    """Build :class:`UpdaterSettings` from defaults, YAML, and environment.

    Args:
        config_path: Optional YAML document whose keys mirror
            :class:`UpdaterSettings`.

    Returns:
        Validated settings with environment overrides applied last.

    Raises:
        ConfigError: If the file cannot be read or any value fails validation.
    """

    data = _load_yaml(config_path) if config_path is not None else {}
    try:
        settings = UpdaterSettings.model_validate(data)
        _apply_env_overrides(settings)
    except PydanticValidationError as exc:
        source = str(config_path) if config_path is not None else "environment"
        raise ConfigError(f"Invalid settings ({source}): {exc}") from exc
    return settings
