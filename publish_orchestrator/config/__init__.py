"""Configuration management module."""

from publish_orchestrator.config.loader import get_settings, load_config, reset_settings
from publish_orchestrator.config.settings import (
    BatchSettings,
    LoggingSettings,
    Settings,
    StorageSettings,
    TargetSettings,
)

__all__ = [
    "Settings",
    "BatchSettings",
    "TargetSettings",
    "StorageSettings",
    "LoggingSettings",
    "load_config",
    "get_settings",
    "reset_settings",
]
