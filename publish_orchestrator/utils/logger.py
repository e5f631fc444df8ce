"""Logging configuration using loguru."""

import sys
from pathlib import Path
from typing import Any

from loguru import logger

_logger_configured = False

DEFAULT_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> | "
    "<level>{message}</level>"
)

DEFAULT_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]} | {message}"


def setup_logger(
    log_level: str = "INFO",
    log_file: str | Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    compression: bool = True,
    console_format: str | None = None,
    file_format: str | None = None,
) -> Any:
    """Configure and setup the logger.

    Args:
        log_level: Console logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to log file (None for console only)
        rotation: Log rotation size (e.g., "10 MB", "1 day")
        retention: Log retention period (e.g., "7 days", "1 week")
        compression: Whether to compress rotated logs
        console_format: Custom console log format
        file_format: Custom file log format

    Returns:
        Configured logger instance
    """
    global _logger_configured

    logger.remove()
    # Records logged without bind(name=...) still render {extra[name]}
    logger.configure(extra={"name": "publish_orchestrator"})

    logger.add(
        sys.stderr,
        level=log_level.upper(),
        format=console_format or DEFAULT_CONSOLE_FORMAT,
        colorize=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # File always captures DEBUG
        logger.add(
            str(log_path),
            level="DEBUG",
            format=file_format or DEFAULT_FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="zip" if compression else None,
            encoding="utf-8",
        )

    _logger_configured = True
    return logger


def get_logger(name: str | None = None) -> Any:
    """Get a logger instance, bound to a module name when given."""
    if not _logger_configured:
        setup_logger()

    if name:
        return logger.bind(name=name)
    return logger


def configure_from_settings(settings: Any, log_file: str | Path | None = None) -> Any:
    """Configure logger from a Settings object.

    Args:
        settings: Settings object with logging configuration
        log_file: Overrides settings.logging.file when given

    Returns:
        Configured logger instance
    """
    logging_config = settings.logging

    return setup_logger(
        log_level=logging_config.level,
        log_file=log_file if log_file is not None else logging_config.file,
        rotation=logging_config.rotation,
        retention=logging_config.retention,
        compression=logging_config.compression,
        console_format=logging_config.console_format,
    )
