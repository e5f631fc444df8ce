"""Data models module."""

from publish_orchestrator.models.task import (
    TERMINAL_STATUSES,
    BatchTask,
    PublishOptions,
    PublishResult,
    TargetStatus,
    TaskView,
    Verdict,
    generate_task_id,
)

__all__ = [
    "TargetStatus",
    "TERMINAL_STATUSES",
    "Verdict",
    "PublishResult",
    "PublishOptions",
    "BatchTask",
    "TaskView",
    "generate_task_id",
]
