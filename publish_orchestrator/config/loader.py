"""Configuration loader module."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from publish_orchestrator.config.settings import Settings
from publish_orchestrator.exceptions import ConfigurationError

ENV_PREFIX = "PUBLISH_ORCHESTRATOR_"

# Sections replaced wholesale by a config file instead of being merged with defaults
_REPLACED_SECTIONS = ("targets",)


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary (values take precedence)

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML configuration file.

    Raises:
        ConfigurationError: If file cannot be loaded or parsed
    """
    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML file {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {path}")
    return content


def _coerce_like(original: Any, value: str) -> Any:
    """Convert an env string to the type of the value it replaces."""
    if isinstance(original, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(original, int):
        try:
            return int(value)
        except ValueError:
            return value
    if isinstance(original, float):
        try:
            return float(value)
        except ValueError:
            return value
    return value


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides to configuration.

    Environment variables are prefixed with PUBLISH_ORCHESTRATOR_ and use
    double underscore (__) to separate nested keys.

    Example:
        PUBLISH_ORCHESTRATOR_BATCH__MAX_CONCURRENT=5
        PUBLISH_ORCHESTRATOR_TARGETS__BLOG__URL=https://blog.example.com/api/posts
    """
    result = config.copy()

    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key == f"{ENV_PREFIX}CONFIG":
            continue

        parts = key[len(ENV_PREFIX) :].lower().split("__")

        current = result
        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            elif not isinstance(current[part], dict):
                break
            current = current[part]
        else:
            final_key = parts[-1]
            if final_key in current:
                current[final_key] = _coerce_like(current[final_key], value)
            else:
                current[final_key] = value

    return result


def load_config(config_path: str | Path | None = None) -> Settings:
    """Load configuration from file with defaults and environment overrides.

    Loading order (later overrides earlier):
    1. Default configuration
    2. Configuration file (if provided)
    3. Environment variables

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = Settings().model_dump()

    if config_path:
        file_config = _load_yaml_file(Path(config_path))
        for section in _REPLACED_SECTIONS:
            if section in file_config:
                config.pop(section, None)
        config = _deep_merge(config, file_config)

    config = _apply_env_overrides(config)

    try:
        return Settings.model_validate(config)
    except Exception as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    The first call loads from PUBLISH_ORCHESTRATOR_CONFIG or the first
    default location that exists.
    """
    config_path = os.environ.get(f"{ENV_PREFIX}CONFIG")

    if not config_path:
        default_locations = [
            Path("config.yaml"),
            Path("config/config.yaml"),
            Path.home() / ".publish_orchestrator" / "config.yaml",
        ]
        for location in default_locations:
            if location.exists():
                config_path = str(location)
                break

    return load_config(config_path)


def reset_settings() -> None:
    """Reset cached settings."""
    get_settings.cache_clear()
