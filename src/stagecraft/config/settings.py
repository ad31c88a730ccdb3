"""Configuration system for the orchestration core."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from enum import Enum
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field, PositiveInt, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from stagecraft.orchestration.lifecycle import LifecycleDefinition


class Environment(str, Enum):
    """Deployment environments supported by the host process."""

    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class LoggingSettings(BaseModel):
    """Structured logging configuration."""

    level: str = Field(default="INFO", description="Log level for application output")
    scrub_fields: Sequence[str] = Field(
        default_factory=lambda: ["password", "token", "secret", "authorization"],
        description="Fields that should be redacted in logs",
    )


class MetricsSettings(BaseModel):
    """Prometheus metrics configuration."""

    enabled: bool = True


class StateStoreSettings(BaseModel):
    """Retention policy for in-memory state snapshots."""

    max_snapshots: PositiveInt = Field(
        default=10, description="Snapshots retained before FIFO eviction"
    )


class AppSettings(BaseSettings):
    """Top-level settings."""

    environment: Environment = Environment.DEV
    debug: bool = False
    service_name: str = "stagecraft"
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    state: StateStoreSettings = Field(default_factory=StateStoreSettings)
    lifecycle: LifecycleDefinition = Field(default_factory=LifecycleDefinition)

    model_config = SettingsConfigDict(env_prefix="STAGECRAFT_", env_nested_delimiter="__")


ENVIRONMENT_DEFAULTS: Mapping[Environment, dict[str, Any]] = {
    Environment.DEV: {"debug": True, "logging": {"level": "DEBUG"}},
    Environment.STAGING: {"logging": {"level": "INFO"}},
    Environment.PROD: {"logging": {"level": "WARNING"}},
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
    """Load settings with environment specific defaults applied.

    Environment defaults only fill values the process environment left unset.
    """
    env_value = (environment or os.getenv("STAGECRAFT_ENV", "dev")).lower()
    env = Environment(env_value)
    try:
        base_settings = AppSettings()
    except ValidationError as err:
        raise RuntimeError(f"Invalid configuration: {err}") from err
    merged = _deep_update(
        dict(ENVIRONMENT_DEFAULTS.get(env, {})),
        base_settings.model_dump(exclude_unset=True),
    )
    merged["environment"] = env
    return AppSettings.model_validate(merged)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Cached accessor used by production code."""
    return load_settings()


__all__ = [
    "AppSettings",
    "Environment",
    "LoggingSettings",
    "MetricsSettings",
    "StateStoreSettings",
    "get_settings",
    "load_settings",
]
