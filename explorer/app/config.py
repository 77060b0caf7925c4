"""Configuration loader for the resource graph explorer canvas."""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from typing_extensions import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

LOGGER = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[2]
CONFIG_FILE_ENV_VAR = "EXPLORER_CONFIG_FILE"

POSTHOG_API_KEY_ENV_VARS = ("EXPLORER_POSTHOG_API_KEY", "POSTHOG_API_KEY")
POSTHOG_HOST_ENV_VAR = "EXPLORER_POSTHOG_HOST"


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded."""


class _FrozenModel(BaseModel):
    """Base model enforcing immutability for config sections."""

    model_config = ConfigDict(frozen=True)


class CanvasConfig(_FrozenModel):
    """Interaction constants for the graph canvas."""

    min_zoom: float = Field(0.1, gt=0.0)
    max_zoom: float = Field(1.0, gt=0.0)
    zoom_step: float = Field(1.2, gt=1.0)
    click_distance_threshold_px: float = Field(5.0, gt=0.0)
    issue_badge_size: int = Field(26, ge=0)
    fit_view_duration_ms: int = Field(500, ge=0)
    tagging_timeout_seconds: float = Field(30.0, gt=0.0)

    @model_validator(mode="after")
    def _validate_zoom_bounds(self) -> "CanvasConfig":
        if self.min_zoom >= self.max_zoom:
            msg = "canvas.min_zoom must be lower than canvas.max_zoom"
            raise ValueError(msg)
        return self

    @property
    def edge_lateral_offset(self) -> float:
        """Return the horizontal shift applied to edge start points.

        Returns:
            float: Half the issue badge size, in pixels.
        """

        return self.issue_badge_size / 2


class PostHogConfig(_FrozenModel):
    """Settings for the PostHog capture endpoint."""

    host: str = Field("https://app.posthog.com", min_length=1)
    api_key: str = Field(default="")
    timeout_seconds: float = Field(5.0, gt=0)
    library_name: str = Field("graph-explorer", min_length=1)


class TelemetryConfig(_FrozenModel):
    """Telemetry sink selection and output locations."""

    enabled: bool = True
    backend: Literal["jsonl", "posthog", "none"] = Field("jsonl")
    root_dir: str = Field("data/telemetry", min_length=1)
    events_filename: str = Field("canvas_events.jsonl", min_length=1)
    posthog: PostHogConfig = Field(default_factory=PostHogConfig)

    @field_validator("backend", mode="before")
    @classmethod
    def _normalise_backend(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class NotificationsConfig(_FrozenModel):
    """Titles shown while tagging resources with environments."""

    pending_title: str = Field("Updating environments for resource...", min_length=1)
    success_title: str = Field("Environments updated for resource", min_length=1)
    failure_title: str = Field("Failed to update environments for resource", min_length=1)


class AppConfig(_FrozenModel):
    """Top-level application configuration composed from config.yaml."""

    canvas: CanvasConfig = Field(default_factory=CanvasConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)

    @staticmethod
    def default_path() -> Path:
        """Return the default location of the configuration file.

        ``EXPLORER_CONFIG_FILE`` wins when set. The repository-root fallback only
        exists in a source checkout; installed packages must point at a file.

        Returns:
            Path: Location of config.yaml.
        """
        override = os.getenv(CONFIG_FILE_ENV_VAR)
        if override:
            return Path(override).expanduser()
        return REPO_ROOT / "config.yaml"


def _apply_environment_overrides(raw_content: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay PostHog credentials from the process environment.

    Keeps the API key out of config.yaml.
    """

    api_key = next((os.getenv(key) for key in POSTHOG_API_KEY_ENV_VARS if os.getenv(key)), None)
    host = os.getenv(POSTHOG_HOST_ENV_VAR)
    if api_key or host:
        telemetry_section = raw_content.setdefault("telemetry", {})
        posthog_section = telemetry_section.setdefault("posthog", {})
        if api_key:
            posthog_section["api_key"] = api_key.strip()
        if host:
            posthog_section["host"] = host.strip()
        LOGGER.info(
            "PostHog telemetry settings overridden from environment (api_key=%s, host=%s)",
            bool(api_key),
            bool(host),
        )
    return raw_content


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Parse ``path`` into a mapping, raising :class:`ConfigError` on any failure."""

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        LOGGER.error("Cannot read canvas configuration at %s: %s", path, exc)
        raise ConfigError(f"Configuration file not readable: {path}") from exc
    except yaml.YAMLError as exc:
        LOGGER.error("Canvas configuration at %s is not valid YAML", path)
        raise ConfigError(f"Invalid YAML syntax in {path}") from exc
    if not isinstance(data, dict):
        LOGGER.error("Canvas configuration root at %s is %s, expected a mapping", path, type(data).__name__)
        raise ConfigError(f"Configuration root must be a mapping: {path}")
    return data


@lru_cache(maxsize=1)
def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load application configuration from YAML.

    Args:
        path: Optional override path to the YAML file.

    Returns:
        AppConfig: Parsed configuration object.

    Raises:
        ConfigError: If the configuration cannot be loaded or validated.
    """
    config_path = path or AppConfig.default_path()
    raw_content = _read_yaml(config_path)
    raw_content = _apply_environment_overrides(raw_content)
    try:
        return AppConfig(**raw_content)
    except ValidationError as exc:
        LOGGER.error("Invalid configuration values: %s", exc)
        raise ConfigError("Configuration validation failed") from exc
