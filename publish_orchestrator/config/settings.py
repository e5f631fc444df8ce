"""Configuration settings models using Pydantic."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class BatchSettings(BaseModel):
    """Batch orchestration configuration."""

    max_concurrent: int = Field(
        default=3,
        ge=1,
        description="Maximum concurrent target executions across all batches",
    )
    timeout: float = Field(
        default=300.0,
        gt=0,
        description="Batch deadline in seconds",
    )
    publish_interval: float = Field(
        default=2.0,
        ge=0.0,
        description="Delay between consecutive dispatches within a batch, in seconds",
    )
    task_expiry_hours: float = Field(
        default=24,
        ge=0,
        description="Age after which tasks are swept from the registry (0 = never)",
    )
    sweep_interval: float = Field(
        default=600.0,
        gt=0,
        description="Background sweep interval in seconds",
    )


class TargetSettings(BaseModel):
    """A configured publishing target."""

    type: Literal["webhook", "file"] = Field(description="Strategy implementation")
    enabled: bool = Field(
        default=True,
        description="Whether the target is registered",
    )
    name: str | None = Field(
        default=None,
        description="Human readable target name",
    )
    url: str | None = Field(
        default=None,
        description="Endpoint URL (webhook targets)",
    )
    method: Literal["POST", "PUT"] = Field(
        default="POST",
        description="HTTP method (webhook targets)",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra HTTP headers (webhook targets)",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Request timeout in seconds (webhook targets)",
    )
    output_dir: str | None = Field(
        default=None,
        description="Output directory (file targets)",
    )

    @model_validator(mode="after")
    def check_required_fields(self) -> "TargetSettings":
        """Validate per-type required fields."""
        if self.type == "webhook" and not self.url:
            raise ValueError("webhook target requires 'url'")
        if self.type == "file" and not self.output_dir:
            raise ValueError("file target requires 'output_dir'")
        return self


class StorageSettings(BaseModel):
    """Storage configuration."""

    work_dir: str = Field(
        default=".publish_orchestrator",
        description="Working directory for sessions and task snapshots",
    )
    save_sessions: bool = Field(
        default=True,
        description="Whether strategies persist session state between runs",
    )
    save_snapshots: bool = Field(
        default=True,
        description="Whether finished tasks are persisted for the status command",
    )


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    file: str | None = Field(
        default="logs/publish_orchestrator.log",
        description="Log file path",
    )
    rotation: str = Field(
        default="10 MB",
        description="Log rotation size",
    )
    retention: str = Field(
        default="7 days",
        description="Log retention period",
    )
    compression: bool = Field(
        default=True,
        description="Whether to compress old logs",
    )
    console_format: str = Field(
        default="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        description="Console log format",
    )


def _default_targets() -> dict[str, TargetSettings]:
    return {
        "local": TargetSettings(type="file", name="Local archive", output_dir="./published"),
    }


class Settings(BaseModel):
    """Main configuration settings."""

    version: str = Field(
        default="1.0",
        description="Configuration version",
    )
    batch: BatchSettings = Field(default_factory=BatchSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    targets: dict[str, TargetSettings] = Field(default_factory=_default_targets)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate configuration version."""
        supported_versions = ["1.0"]
        if v not in supported_versions:
            raise ValueError(f"Unsupported config version: {v}. Supported: {supported_versions}")
        return v

    @field_validator("targets")
    @classmethod
    def normalize_target_kinds(cls, v: dict[str, TargetSettings]) -> dict[str, TargetSettings]:
        """Target kinds are case-insensitive."""
        return {kind.strip().lower(): target for kind, target in v.items()}

    def get_work_dir(self) -> Path:
        """Get the working directory as Path."""
        return Path(self.storage.work_dir)

    def get_logs_dir(self) -> Path:
        """Get the logs directory as Path."""
        return self.get_work_dir() / "logs"
