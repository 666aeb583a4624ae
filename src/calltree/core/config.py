"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from .enums import ClockKind, LogFormat


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class StorageConfig(BaseModel):
    directory: str = "profiles"  # Created on first write
    prefix: str = "profile-"
    suffix: str = ".xml"


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.JSON

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class ProfilerSettings(BaseSettings):
    """Top-level profiler settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    # Activation
    trigger_param: str = "__profile"  # Request parameter that turns profiling on
    always_on: bool = False

    # Span naming
    root_name: str = "root"
    bootstrap_name: str = "bootstrap"  # Span covering request start -> begin()

    clock: ClockKind = ClockKind.PERF

    # Sub-configs
    storage: StorageConfig = Field(default_factory=StorageConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "CALLTREE_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ProfilerSettings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.

    Raises:
        ConfigError: the merged data does not validate.
    """
    from .errors import ConfigError

    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                data = tomli.load(f)

    if overrides:
        data.update(overrides)

    try:
        return ProfilerSettings(**data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
