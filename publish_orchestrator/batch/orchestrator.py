"""Batch orchestrator driving one task across all of its targets.

Targets run concurrently under a semaphore shared by every run of the
orchestrator, dispatch starts are paced, and the whole run is bounded by a
batch deadline. Per-target failures never abort sibling targets.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime

from publish_orchestrator.batch.registry import TaskRegistry
from publish_orchestrator.batch.verdict import aggregate, verdict_message
from publish_orchestrator.config import Settings
from publish_orchestrator.exceptions import (
    AlreadyRunningError,
    StrategyExecutionError,
    TaskCompletedError,
    TargetTimeoutError,
)
from publish_orchestrator.models import BatchTask, PublishResult, TargetStatus, Verdict
from publish_orchestrator.strategies.base import PublishStrategy
from publish_orchestrator.strategies.registry import StrategyRegistry
from publish_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)

# Called with (task, target, result) whenever a target reaches a terminal status
TargetCallback = Callable[[BatchTask, str, PublishResult], None]


class Orchestrator:
    """Runs batch tasks against their targets."""

    def __init__(
        self,
        strategies: StrategyRegistry,
        tasks: TaskRegistry,
        *,
        max_concurrent: int = 3,
        timeout: float = 300.0,
        publish_interval: float = 2.0,
        on_target_complete: TargetCallback | None = None,
    ):
        """Initialize orchestrator.

        Args:
            strategies: Registry resolving target kinds to strategies.
            tasks: Registry holding the tasks to run.
            max_concurrent: Maximum target executions in flight across all runs.
            timeout: Batch deadline in seconds.
            publish_interval: Delay between consecutive dispatches in one run.
            on_target_complete: Callback for every terminal target transition.
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        self.strategies = strategies
        self.tasks = tasks
        self.max_concurrent = max_concurrent
        self.timeout = timeout
        self.publish_interval = max(publish_interval, 0.0)
        self.on_target_complete = on_target_complete

        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._executing = 0

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        strategies: StrategyRegistry,
        tasks: TaskRegistry,
        on_target_complete: TargetCallback | None = None,
    ) -> "Orchestrator":
        return cls(
            strategies,
            tasks,
            max_concurrent=settings.batch.max_concurrent,
            timeout=settings.batch.timeout,
            publish_interval=settings.batch.publish_interval,
            on_target_complete=on_target_complete,
        )

    @property
    def executing(self) -> int:
        """Number of strategy calls currently holding a worker slot."""
        return self._executing

    async def run(self, task_id: str) -> Verdict:
        """Drive a task to completion and return its verdict.

        Raises:
            TaskNotFoundError: If the task is not registered.
            TaskCompletedError: If the task has already completed.
            AlreadyRunningError: If another run of the task is in progress.
        """
        task = self.tasks.get(task_id)

        if task.completed:
            raise TaskCompletedError(f"Task already completed: {task_id}")
        if task.run_lock.locked():
            raise AlreadyRunningError(f"Task is already running: {task_id}")

        async with task.run_lock:
            return await self._drive(task)

    async def _drive(self, task: BatchTask) -> Verdict:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        task.started_at = datetime.now()

        logger.info(
            f"Starting batch task {task.task_id} "
            f"({len(task.targets)} targets, timeout={self.timeout}s)"
        )

        units: dict[str, asyncio.Task] = {}
        dispatcher = asyncio.create_task(
            self._dispatch(task, units), name=f"dispatch:{task.task_id}"
        )
        pending: set[asyncio.Task] = set()

        try:
            done, _ = await asyncio.wait({dispatcher}, timeout=self._remaining(deadline, loop))
            if dispatcher in done:
                # Surface unexpected dispatcher bugs instead of hiding them
                dispatcher.result()
                if units:
                    _, pending = await asyncio.wait(
                        set(units.values()), timeout=self._remaining(deadline, loop)
                    )
            else:
                pending = {u for u in units.values() if not u.done()}
                pending.add(dispatcher)

            if pending:
                self._expire(task)
        finally:
            # Cooperative: a strategy ignoring cancellation keeps running, but
            # its late result is dropped by finish_target()
            if not dispatcher.done():
                dispatcher.cancel()
            for unit in units.values():
                if not unit.done():
                    unit.cancel()

        verdict = aggregate(task.status_by_target)
        task.mark_completed(verdict)
        self._log_verdict(task, verdict)
        return verdict

    @staticmethod
    def _remaining(deadline: float, loop: asyncio.AbstractEventLoop) -> float:
        return max(deadline - loop.time(), 0.0)

    async def _dispatch(self, task: BatchTask, units: dict[str, asyncio.Task]) -> None:
        """Start one unit per target, paced; each unit resolves its own strategy."""
        for index, target in enumerate(task.targets):
            if index > 0 and self.publish_interval > 0:
                await asyncio.sleep(self.publish_interval)
            if not task.mark_in_progress(target):
                continue
            units[target] = asyncio.create_task(
                self._execute_unit(task, target),
                name=f"publish:{task.task_id}:{target}",
            )
            logger.debug(f"Dispatched {target} for task {task.task_id}")

    async def _resolve(self, task: BatchTask, target: str) -> PublishStrategy | None:
        try:
            return await self.strategies.resolve(target)
        except Exception as e:
            logger.warning(
                f"[resolution] Task {task.task_id}: strategy unavailable for {target}: {e}"
            )
            self._finish(
                task,
                target,
                TargetStatus.FAILED,
                PublishResult.failed(f"strategy unavailable: {target}"),
            )
            return None

    async def _execute_unit(self, task: BatchTask, target: str) -> None:
        strategy = await self._resolve(task, target)
        if strategy is None:
            return

        async with self._semaphore:
            self._executing += 1
            try:
                result = await self._invoke(task, target, strategy)
            finally:
                self._executing -= 1

        status = TargetStatus.SUCCEEDED if result.success else TargetStatus.FAILED
        if not self._finish(task, target, status, result):
            logger.debug(f"Discarded late result of {target} for task {task.task_id}")
            return

        if result.success:
            logger.info(f"Task {task.task_id}: {target} succeeded")
        else:
            logger.warning(f"Task {task.task_id}: {target} failed: {result.message}")

    async def _invoke(
        self,
        task: BatchTask,
        target: str,
        strategy: PublishStrategy,
    ) -> PublishResult:
        """Call the strategy, converting any exception into a failed result."""
        try:
            options = task.options.model_copy(deep=True)
            result = await strategy.publish(task.content, task.title, options)
        except Exception as e:
            error = StrategyExecutionError(
                f"Strategy for {target} raised {type(e).__name__}",
                details={"task_id": task.task_id, "error": str(e)},
            )
            logger.error(f"[execution] {error}")
            return PublishResult.failed(f"publish error: {e}")

        if not isinstance(result, PublishResult):
            logger.error(
                f"[execution] Strategy for {target} returned {type(result).__name__}, "
                f"expected PublishResult"
            )
            return PublishResult.failed(f"invalid result from strategy: {type(result).__name__}")
        return result

    def _expire(self, task: BatchTask) -> None:
        """Mark every unfinished target as timed out."""
        unfinished = task.targets_with_status(TargetStatus.PENDING, TargetStatus.IN_PROGRESS)
        logger.warning(
            f"Batch task {task.task_id} hit its {self.timeout}s deadline, "
            f"timing out: {unfinished}"
        )
        for target in unfinished:
            error = TargetTimeoutError(f"timed out after {self.timeout:g}s")
            self._finish(task, target, TargetStatus.TIMED_OUT, PublishResult.failed(error.message))

    def _finish(
        self,
        task: BatchTask,
        target: str,
        status: TargetStatus,
        result: PublishResult,
    ) -> bool:
        if not task.finish_target(target, status, result):
            return False

        if self.on_target_complete:
            try:
                self.on_target_complete(task, target, result)
            except Exception as e:
                logger.error(f"Target completion callback failed for {target}: {e}")
        return True

    @staticmethod
    def _log_verdict(task: BatchTask, verdict: Verdict) -> None:
        summary = (
            f"Batch task {task.task_id}: {verdict_message(verdict)} "
            f"({task.success_count}/{task.total_count})"
        )
        if verdict is Verdict.ALL_SUCCEEDED:
            logger.info(summary)
        elif verdict is Verdict.PARTIAL:
            logger.warning(summary)
        else:
            logger.error(summary)
