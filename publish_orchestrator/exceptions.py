"""Exception classes for publish_orchestrator."""

from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"


class PublishOrchestratorError(Exception):
    """Base exception class for publish_orchestrator."""

    severity: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception.

        Args:
            message: Error message
            details: Additional error details
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(PublishOrchestratorError):
    """Configuration related errors."""

    severity = ErrorSeverity.FATAL


class StorageError(PublishOrchestratorError):
    """Storage related errors."""

    severity = ErrorSeverity.ERROR


class TaskParseError(PublishOrchestratorError):
    """Job file could not be read or validated."""

    severity = ErrorSeverity.ERROR

    def __init__(self, message: str, file_path: str | None = None):
        self.file_path = file_path
        super().__init__(message + (f" (file: {file_path})" if file_path else ""))


class UnsupportedTargetError(PublishOrchestratorError):
    """None of the requested target kinds is registered."""

    severity = ErrorSeverity.ERROR


class TaskNotFoundError(PublishOrchestratorError):
    """No task with the given id is in the registry."""

    severity = ErrorSeverity.ERROR


class AlreadyRunningError(PublishOrchestratorError):
    """Another run already holds the task's run lock."""

    severity = ErrorSeverity.WARNING


class TaskCompletedError(PublishOrchestratorError):
    """The task has already been driven to completion."""

    severity = ErrorSeverity.WARNING


class StrategyUnavailableError(PublishOrchestratorError):
    """A target kind could not be resolved to a prepared strategy."""

    severity = ErrorSeverity.ERROR


class StrategyExecutionError(PublishOrchestratorError):
    """A strategy raised while publishing to one target."""

    severity = ErrorSeverity.ERROR


class TargetTimeoutError(PublishOrchestratorError, TimeoutError):
    """A target did not finish before the batch deadline."""

    severity = ErrorSeverity.WARNING
