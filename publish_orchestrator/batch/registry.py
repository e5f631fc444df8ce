"""Registry of active batch tasks."""

import asyncio
import contextlib
from collections.abc import Iterable
from datetime import datetime, timedelta

from publish_orchestrator.exceptions import TaskNotFoundError, UnsupportedTargetError
from publish_orchestrator.models import BatchTask, PublishOptions
from publish_orchestrator.strategies.registry import StrategyRegistry, normalize_kind
from publish_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)


class TaskRegistry:
    """Keyed store of batch tasks with creation, lookup and expiry.

    All access happens on the event loop thread, so each dict operation is
    atomic with respect to other coroutines.
    """

    def __init__(self, strategies: StrategyRegistry):
        self.strategies = strategies
        self._tasks: dict[str, BatchTask] = {}
        self._sweeper: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def _filter_targets(self, targets: Iterable[str]) -> tuple[list[str], list[str]]:
        """Split requested kinds into (supported, unsupported), de-duplicated."""
        supported: list[str] = []
        unsupported: list[str] = []
        seen: set[str] = set()

        for raw in targets:
            kind = normalize_kind(raw)
            if not kind or kind in seen:
                continue
            seen.add(kind)
            if self.strategies.is_supported(kind):
                supported.append(kind)
            else:
                unsupported.append(kind)

        return supported, unsupported

    def create(
        self,
        targets: Iterable[str],
        content: str,
        title: str,
        options: PublishOptions | dict | None = None,
    ) -> str:
        """Create and store a task for the supported subset of targets.

        Returns:
            The new task id.

        Raises:
            UnsupportedTargetError: If none of the targets is supported.
        """
        requested = list(targets)
        supported, unsupported = self._filter_targets(requested)

        if not supported:
            raise UnsupportedTargetError(
                "No supported targets",
                details={
                    "requested": requested,
                    "supported": self.strategies.supported_kinds(),
                },
            )
        if unsupported:
            logger.warning(f"Dropping unsupported targets: {unsupported}")

        if options is None:
            options = PublishOptions()
        elif isinstance(options, dict):
            options = PublishOptions.model_validate(options)

        task = BatchTask(targets=supported, content=content, title=title, options=options)
        self._tasks[task.task_id] = task

        logger.info(f"Created batch task {task.task_id}, targets: {supported}")
        return task.task_id

    def get(self, task_id: str) -> BatchTask:
        """Get a task by id.

        Raises:
            TaskNotFoundError: If no such task is registered.
        """
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return task

    def find(self, task_id: str) -> BatchTask | None:
        return self._tasks.get(task_id)

    def list_active(self) -> list[BatchTask]:
        return list(self._tasks.values())

    def evict(self, task_id: str) -> bool:
        """Remove a task from the registry.

        A run in progress keeps its own reference and finishes normally,
        but its result is no longer reachable through the registry.
        """
        task = self._tasks.pop(task_id, None)
        if task is None:
            return False
        if task.is_running:
            logger.warning(f"Evicted batch task {task_id} while it is still running")
        else:
            logger.info(f"Evicted batch task {task_id}")
        return True

    def sweep_expired(self, max_age: timedelta | float) -> int:
        """Remove every task older than max_age, completed or not.

        Args:
            max_age: A timedelta or a number of seconds.

        Returns:
            Number of evicted tasks.
        """
        if not isinstance(max_age, timedelta):
            max_age = timedelta(seconds=max_age)
        cutoff = datetime.now() - max_age

        expired = [tid for tid, task in self._tasks.items() if task.created_at < cutoff]
        for task_id in expired:
            del self._tasks[task_id]
            logger.info(f"Swept expired batch task {task_id}")

        return len(expired)

    def clear(self) -> None:
        self._tasks.clear()

    async def _sweep_loop(self, interval: float, max_age: timedelta) -> None:
        while True:
            await asyncio.sleep(interval)
            count = self.sweep_expired(max_age)
            if count:
                logger.info(f"Background sweep removed {count} expired tasks")

    def start_sweeper(self, interval: float, max_age: timedelta | float) -> None:
        """Start sweeping expired tasks every `interval` seconds."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        if not isinstance(max_age, timedelta):
            max_age = timedelta(seconds=max_age)
        self._sweeper = asyncio.create_task(self._sweep_loop(interval, max_age))
        logger.debug(f"Started task sweeper (interval={interval}s, max_age={max_age})")

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()
