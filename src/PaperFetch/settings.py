"""Configuration for update checks: environment-driven and immutable.

:class:`FetchSettings` is a pydantic-settings model.  Values come from (in
increasing priority) field defaults, ``PAPERFETCH_*`` environment variables,
and explicit overrides supplied by the CLI.  The instance is frozen once
constructed and passed explicitly to every component that needs it.

Examples
--------
Override via environment::

    export PAPERFETCH_PROJECT_NAME=velocity
    export PAPERFETCH_PROJECT_VERSION=3.3.0-SNAPSHOT
    export PAPERFETCH_METADATA_TIMEOUT_SEC=30
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import __version__
from .errors import ConfigurationError
from .templates import SubstitutionContext, format_template

__all__ = [
    "DEFAULT_API_SERVER",
    "DEFAULT_FILENAME_FORMAT",
    "DEFAULT_ARTIFACT_ROLES",
    "FetchSettings",
    "load_settings",
]

DEFAULT_API_SERVER = "https://api.papermc.io"
DEFAULT_FILENAME_FORMAT = "{project-name}-{project-version}.jar"
DEFAULT_USER_AGENT = f"paperfetch/{__version__} (compatible; +https://github.com/Siroshun09/dlpaper)"

#: Artifact role looked up in ``downloads`` when none is configured.
DEFAULT_ARTIFACT_ROLES = {
    "v2": "application",
    "v3": "server:default",
}


class FetchSettings(BaseSettings):
    """Settings for a single update-check-and-download run."""

    model_config = SettingsConfigDict(
        env_prefix="PAPERFETCH_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    api_server: str = Field(default=DEFAULT_API_SERVER, description="Base URL of the build API")
    project_name: str = Field(default="", description="Project name such as paper or velocity")
    project_version: str = Field(default="", description="Project version such as 1.20.6 or 1.21")
    filename_format: str = Field(
        default=DEFAULT_FILENAME_FORMAT,
        description="Output filename template ({project-name}, {project-version})",
    )
    api_generation: Literal["v2", "v3"] = Field(
        default="v3", description="API generation used for build metadata"
    )
    artifact_role: Optional[str] = Field(
        default=None, description="Download role to fetch; defaults per API generation"
    )
    metadata_timeout_sec: float = Field(
        default=15.0, gt=0.0, le=3600.0, description="Deadline for the metadata lookup"
    )
    http_timeout_sec: float = Field(
        default=30.0, gt=0.0, le=3600.0, description="Per-phase HTTP timeout"
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent header value")
    dry_run: bool = Field(default=False, description="Check for updates without downloading")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_dir: Optional[Path] = Field(default=None, description="Directory for JSON log files")

    @field_validator(
        "api_server", "project_name", "project_version", "filename_format", mode="before"
    )
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("artifact_role", mode="before")
    @classmethod
    def _blank_role_is_default(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unsupported log level '{value}'")
        return level

    @property
    def resolved_artifact_role(self) -> str:
        """Artifact role to download, falling back to the generation default."""

        return self.artifact_role or DEFAULT_ARTIFACT_ROLES[self.api_generation]

    def validate_required(self) -> None:
        """Reject settings that cannot drive a run.

        Raises:
            ConfigurationError: If a required value is missing or empty.
        """

        if not self.api_server:
            raise ConfigurationError("api-server is empty")
        if not self.project_name:
            raise ConfigurationError("project-name is required")
        if not self.project_version:
            raise ConfigurationError("project-version is required")
        if not self.filename_format:
            raise ConfigurationError("filename-format is empty")

    def substitution_context(self) -> SubstitutionContext:
        """Return the template context known before any lookup happens."""

        return SubstitutionContext(
            api_server=self.api_server.rstrip("/"),
            project_name=self.project_name,
            project_version=self.project_version,
        )

    def output_path(self) -> Path:
        """Resolve the output file path from ``filename_format``."""

        return Path(format_template(self.filename_format, self.substitution_context()))


def load_settings(**overrides: Any) -> FetchSettings:
    """Build :class:`FetchSettings` from the environment plus explicit overrides.

    ``None`` overrides are ignored so unset CLI options fall through to the
    environment and defaults.

    Raises:
        ConfigurationError: If any value fails validation.
    """

    supplied = {key: value for key, value in overrides.items() if value is not None}
    try:
        return FetchSettings(**supplied)
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ConfigurationError(f"invalid settings: {problems}") from exc
