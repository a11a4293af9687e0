"""Configuration system for the artifact pipeline."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environments supported by the tool."""

    DEV = "dev"
    CI = "ci"
    PROD = "prod"


class TelemetrySettings(BaseModel):
    """Configuration block for OpenTelemetry export."""

    exporter: str = Field(default="none", description="Target exporter type (none, console, otlp)")
    endpoint: str | None = Field(default=None, description="Exporter endpoint")
    sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)


class LoggingSettings(BaseModel):
    """Structured logging configuration."""

    level: str = Field(default="INFO", description="Log level for application output")
    scrub_fields: Sequence[str] = Field(
        default_factory=lambda: ["password", "token", "secret", "authorization"],
        description="Fields that should be redacted in logs",
    )


class ObservabilitySettings(BaseModel):
    """Aggregate observability configuration."""

    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _default_user_cache() -> Path:
    base = os.getenv("XDG_CACHE_HOME")
    root = Path(base) if base else Path.home() / ".cache"
    return root / "mindustry-loom"


class CacheSettings(BaseModel):
    """Location and sharing policy of the on-disk artifact cache."""

    user_cache: Path = Field(default_factory=_default_user_cache, description="Cache root directory")
    artifact_name: str = Field(default="mindustry", description="File name prefix for cached jars")
    share_caches: bool = Field(
        default=False, description="Reuse raw jars fetched by a sibling project"
    )
    root_project: bool = Field(default=True, description="Whether this is the primary project")


class MappingSettings(BaseModel):
    """Active mapping set selection."""

    name: str = Field(default="official", description="Mapping set name")
    version: str = Field(default="1", description="Mapping set version")
    path: Path | None = Field(default=None, description="Tiny v2 mappings file")


class DownloadSettings(BaseModel):
    """Settings for fetching raw game jars."""

    manifest_url: str | None = Field(
        default=None,
        description="Version manifest location; '{version}' is substituted",
    )
    timeout: float = Field(default=60.0, gt=0)
    attempts: int = Field(default=3, ge=1)
    backoff_initial: float = Field(default=1.0, ge=0.0)
    backoff_max: float = Field(default=10.0, ge=0.0)
    chunk_size: int = Field(default=1024 * 512, ge=4096)
    user_agent: str = Field(default="Mindustry-Loom/1.0")


class RemapperSettings(BaseModel):
    """Settings for the external tiny-remapper process."""

    java: str = Field(default="java", description="Java executable")
    jar: Path | None = Field(default=None, description="tiny-remapper fat jar")
    threads: int | None = Field(default=None, ge=1)
    classpath: list[Path] = Field(
        default_factory=list, description="Library jars used to resolve inheritance"
    )
    timeout: float | None = Field(default=None, gt=0)


class AppSettings(BaseSettings):
    """Top-level application settings."""

    environment: Environment = Environment.DEV
    service_name: str = "mindustry-loom"
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    mappings: MappingSettings = Field(default_factory=MappingSettings)
    download: DownloadSettings = Field(default_factory=DownloadSettings)
    remapper: RemapperSettings = Field(default_factory=RemapperSettings)

    model_config = SettingsConfigDict(env_prefix="ML_", env_nested_delimiter="__")


ENVIRONMENT_DEFAULTS: Mapping[Environment, dict[str, Any]] = {
    Environment.DEV: {
        "observability": {"logging": {"level": "DEBUG"}},
    },
    Environment.CI: {
        "telemetry": {"exporter": "console"},
    },
    Environment.PROD: {
        "telemetry": {"exporter": "otlp", "sample_ratio": 0.1},
    },
}


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            target[key] = _deep_update(dict(current), value)
        else:
            target[key] = value
    return target


def load_settings(environment: str | None = None) -> AppSettings:
    """Load application settings with environment specific defaults applied.

    Explicit environment variables win over the per-environment defaults.
    """
    env_value = (environment or os.getenv("ML_ENV", "dev")).lower()
    try:
        env = Environment(env_value)
        base_settings = AppSettings()
    except (ValueError, ValidationError) as err:
        raise RuntimeError(f"Invalid configuration: {err}") from err
    merged = _deep_update(base_settings.model_dump(), ENVIRONMENT_DEFAULTS.get(env, {}))
    merged = _deep_update(merged, base_settings.model_dump(exclude_unset=True))
    merged["environment"] = env
    return AppSettings.model_validate(merged)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Cached accessor used by production code."""
    return load_settings()
