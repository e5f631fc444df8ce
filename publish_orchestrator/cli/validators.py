"""Input validators for CLI commands."""

import json
from pathlib import Path

import click
import yaml


def validate_config_file(
    ctx: click.Context,
    param: click.Parameter,
    value: Path | None,
) -> Path | None:
    """Validate configuration file.

    Raises:
        click.BadParameter: If the file is missing, not YAML or empty
    """
    if value is None:
        return None

    if not value.exists():
        raise click.BadParameter(f"Config file does not exist: {value}")

    if value.suffix.lower() not in {".yaml", ".yml"}:
        raise click.BadParameter(f"Config file must be YAML format: {value}")

    try:
        with open(value, encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise click.BadParameter(f"Invalid YAML in config file: {e}") from None

    if config is None:
        raise click.BadParameter(f"Config file is empty: {value}")

    return value


def validate_job_file(
    ctx: click.Context,
    param: click.Parameter,
    value: Path | None,
) -> Path | None:
    """Validate job file format.

    Only the outer structure is checked here; JobParser validates fields.

    Raises:
        click.BadParameter: If validation fails
    """
    if value is None:
        return None

    if not value.exists():
        raise click.BadParameter(f"Job file does not exist: {value}")

    suffix = value.suffix.lower()
    if suffix not in {".yaml", ".yml", ".json"}:
        raise click.BadParameter(f"Job file must be YAML or JSON format: {value}")

    try:
        with open(value, encoding="utf-8") as f:
            job = json.load(f) if suffix == ".json" else yaml.safe_load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise click.BadParameter(f"Failed to parse job file: {e}") from None

    if job is None:
        raise click.BadParameter(f"Job file is empty: {value}")

    if not isinstance(job, dict):
        raise click.BadParameter(f"Job file must be a mapping: {value}")

    if "targets" not in job:
        raise click.BadParameter(f"Job file must contain 'targets' key: {value}")

    return value


def validate_targets(
    ctx: click.Context,
    param: click.Parameter,
    value: tuple[str, ...],
) -> tuple[str, ...]:
    """Split comma separated --target values and drop blanks."""
    targets: list[str] = []
    for item in value:
        targets.extend(part.strip() for part in item.split(",") if part.strip())
    return tuple(targets)
