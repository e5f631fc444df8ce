"""Task models for batch publishing."""

import asyncio
import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


class TargetStatus(str, Enum):
    """Per-target execution status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition can happen from this status."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {TargetStatus.SUCCEEDED, TargetStatus.FAILED, TargetStatus.TIMED_OUT}
)


class Verdict(str, Enum):
    """Batch-level outcome."""

    ALL_SUCCEEDED = "all_succeeded"
    PARTIAL = "partial"
    ALL_FAILED = "all_failed"


class PublishResult(BaseModel):
    """Outcome of publishing to one target."""

    model_config = ConfigDict(frozen=True)

    success: bool = Field(description="Whether publishing succeeded")
    message: str = Field(default="", description="Human readable outcome")
    locator: str | None = Field(
        default=None,
        description="Where the published content can be found (e.g. a URL)",
    )

    @classmethod
    def succeeded(cls, message: str = "published", locator: str | None = None) -> "PublishResult":
        return cls(success=True, message=message, locator=locator)

    @classmethod
    def failed(cls, message: str) -> "PublishResult":
        return cls(success=False, message=message)


class PublishOptions(BaseModel):
    """Options passed through unchanged to every strategy.

    Unknown keys are kept so strategies can read their own settings.
    """

    model_config = ConfigDict(extra="allow")

    tags: list[str] = Field(default_factory=list, description="Content tags")
    summary: str | None = Field(default=None, description="Short summary")
    categories: list[str] = Field(default_factory=list, description="Content categories")
    visibility: str = Field(default="public", description="Visibility on the target")
    auto_save: bool = Field(default=True, description="Save a draft before publishing")
    enable_comments: bool = Field(default=True, description="Allow comments")
    custom_options: dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form per-target options",
    )

    @classmethod
    def default(cls) -> "PublishOptions":
        """Create default publish options."""
        return cls(tags=["original"], visibility="public")

    def add_tag(self, tag: str) -> "PublishOptions":
        if tag not in self.tags:
            self.tags.append(tag)
        return self


def generate_task_id(now: datetime | None = None) -> str:
    """Generate a task id like ``batch_20240101_120000_1a2b3c4d``."""
    now = now or datetime.now()
    return f"batch_{now:%Y%m%d_%H%M%S}_{uuid.uuid4().hex[:8]}"


class BatchTask(BaseModel):
    """One piece of content submitted for publishing to several targets.

    ``status_by_target`` always has exactly the keys in ``targets``.
    ``result_by_target`` holds an entry only for targets in a terminal
    status; both are written together by :meth:`finish_target`.
    """

    task_id: str = Field(default_factory=generate_task_id, description="Unique task identifier")
    title: str = Field(description="Content title")
    content: str = Field(description="Content body")
    targets: list[str] = Field(description="Target kinds, in submission order")
    options: PublishOptions = Field(default_factory=PublishOptions)
    created_at: datetime = Field(default_factory=datetime.now)
    status_by_target: dict[str, TargetStatus] = Field(default_factory=dict)
    result_by_target: dict[str, PublishResult] = Field(default_factory=dict)
    completed: bool = Field(default=False)
    verdict: Verdict | None = Field(default=None)
    started_at: datetime | None = Field(default=None)
    finished_at: datetime | None = Field(default=None)

    _run_lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)

    def model_post_init(self, __context: Any) -> None:
        for target in self.targets:
            self.status_by_target.setdefault(target, TargetStatus.PENDING)

    @property
    def run_lock(self) -> asyncio.Lock:
        """Lock held by the single active orchestrator run."""
        return self._run_lock

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def status_of(self, target: str) -> TargetStatus:
        return self.status_by_target[target]

    def mark_in_progress(self, target: str) -> bool:
        """Move a target from PENDING to IN_PROGRESS.

        Returns:
            False if the target was not PENDING (the move is refused).
        """
        if self.status_by_target[target] is not TargetStatus.PENDING:
            return False
        self.status_by_target[target] = TargetStatus.IN_PROGRESS
        return True

    def finish_target(
        self,
        target: str,
        status: TargetStatus,
        result: PublishResult,
    ) -> bool:
        """Record a terminal status and its result.

        Writes are refused once the target is terminal or the task is
        completed, so late results are dropped.

        Returns:
            True if the status and result were recorded.
        """
        if not status.is_terminal:
            raise ValueError(f"Not a terminal status: {status}")
        if self.completed or self.status_by_target[target].is_terminal:
            return False
        self.result_by_target[target] = result
        self.status_by_target[target] = status
        return True

    def mark_completed(self, verdict: Verdict) -> None:
        if self.completed:
            return
        self.verdict = verdict
        self.finished_at = datetime.now()
        self.completed = True

    def targets_with_status(self, *statuses: TargetStatus) -> list[str]:
        return [t for t in self.targets if self.status_by_target[t] in statuses]

    @property
    def total_count(self) -> int:
        return len(self.targets)

    @property
    def terminal_count(self) -> int:
        return sum(1 for s in self.status_by_target.values() if s.is_terminal)

    @property
    def success_count(self) -> int:
        return sum(1 for s in self.status_by_target.values() if s is TargetStatus.SUCCEEDED)

    @property
    def progress_percent(self) -> float:
        """Share of targets in a terminal status, 0-100."""
        if not self.targets:
            return 100.0
        return self.terminal_count * 100.0 / len(self.targets)

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None:
            return None
        end_time = self.finished_at or datetime.now()
        return (end_time - self.started_at).total_seconds()

    def to_view(self, provisional_verdict: Verdict | None = None) -> "TaskView":
        """Build a read-only projection of the task."""
        return TaskView(
            task_id=self.task_id,
            title=self.title,
            targets=list(self.targets),
            status_by_target=dict(self.status_by_target),
            result_by_target={
                t: r for t, r in self.result_by_target.items() if self.status_by_target[t].is_terminal
            },
            completed=self.completed,
            progress_percent=self.progress_percent,
            success_count=self.success_count,
            created_at=self.created_at,
            verdict=self.verdict or provisional_verdict,
        )


class TaskView(BaseModel):
    """Read-only projection of a BatchTask returned to callers."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    title: str
    targets: list[str]
    status_by_target: dict[str, TargetStatus]
    result_by_target: dict[str, PublishResult]
    completed: bool
    progress_percent: float
    success_count: int
    created_at: datetime
    verdict: Verdict | None = None

    @property
    def total_count(self) -> int:
        return len(self.targets)
