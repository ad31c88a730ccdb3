"""Configuration entry points."""

from .settings import (
    AppSettings,
    Environment,
    LoggingSettings,
    MetricsSettings,
    StateStoreSettings,
    get_settings,
    load_settings,
)

__all__ = [
    "AppSettings",
    "Environment",
    "LoggingSettings",
    "MetricsSettings",
    "StateStoreSettings",
    "get_settings",
    "load_settings",
]
