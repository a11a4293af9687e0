"""Configuration package exposing application settings."""

from .settings import (
    AppSettings,
    CacheSettings,
    DownloadSettings,
    Environment,
    LoggingSettings,
    MappingSettings,
    ObservabilitySettings,
    RemapperSettings,
    TelemetrySettings,
    get_settings,
    load_settings,
)

__all__ = [
    "AppSettings",
    "CacheSettings",
    "DownloadSettings",
    "Environment",
    "LoggingSettings",
    "MappingSettings",
    "ObservabilitySettings",
    "RemapperSettings",
    "TelemetrySettings",
    "get_settings",
    "load_settings",
]
