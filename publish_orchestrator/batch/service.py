"""Publish service: the public entry point of the batch engine."""

from collections.abc import Iterable
from datetime import timedelta

from publish_orchestrator.batch.orchestrator import Orchestrator, TargetCallback
from publish_orchestrator.batch.registry import TaskRegistry
from publish_orchestrator.batch.verdict import aggregate
from publish_orchestrator.config import Settings
from publish_orchestrator.models import BatchTask, PublishOptions, TaskView, Verdict
from publish_orchestrator.storage.session import SessionStore
from publish_orchestrator.strategies.base import PlatformStatus
from publish_orchestrator.strategies.factory import build_registry
from publish_orchestrator.strategies.registry import StrategyRegistry
from publish_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)


class PublishService:
    """Creates, runs, inspects and expires batch publish tasks.

    Usage:
        async with PublishService.from_settings(settings) as service:
            task_id = service.create_task(["blog", "archive"], content, title)
            verdict = await service.run_task(task_id)
            view = service.get_task(task_id)
    """

    def __init__(
        self,
        strategies: StrategyRegistry,
        *,
        max_concurrent: int = 3,
        timeout: float = 300.0,
        publish_interval: float = 2.0,
        task_expiry: timedelta | None = None,
        sweep_interval: float = 600.0,
        on_target_complete: TargetCallback | None = None,
    ):
        """Initialize service.

        Args:
            strategies: Registry of target strategies.
            max_concurrent: Global limit on concurrent target executions.
            timeout: Batch deadline in seconds.
            publish_interval: Delay between dispatches within one batch.
            task_expiry: Age after which the background sweep evicts tasks
                (None disables the sweep).
            sweep_interval: Background sweep interval in seconds.
            on_target_complete: Callback for every terminal target transition.
        """
        self.strategies = strategies
        self.tasks = TaskRegistry(strategies)
        self.orchestrator = Orchestrator(
            strategies,
            self.tasks,
            max_concurrent=max_concurrent,
            timeout=timeout,
            publish_interval=publish_interval,
            on_target_complete=on_target_complete,
        )
        self.task_expiry = task_expiry
        self.sweep_interval = sweep_interval

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_store: SessionStore | None = None,
        strategies: StrategyRegistry | None = None,
        on_target_complete: TargetCallback | None = None,
    ) -> "PublishService":
        """Build a service from settings, registering the configured targets."""
        batch = settings.batch
        return cls(
            strategies or build_registry(settings, session_store),
            max_concurrent=batch.max_concurrent,
            timeout=batch.timeout,
            publish_interval=batch.publish_interval,
            task_expiry=timedelta(hours=batch.task_expiry_hours) if batch.task_expiry_hours else None,
            sweep_interval=batch.sweep_interval,
            on_target_complete=on_target_complete,
        )

    async def __aenter__(self) -> "PublishService":
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.shutdown()

    async def start(self) -> None:
        """Start the background expiry sweep, if configured."""
        if self.task_expiry is not None:
            self.tasks.start_sweeper(self.sweep_interval, self.task_expiry)

    async def shutdown(self) -> None:
        """Stop the sweep, release strategy resources and drop all tasks."""
        logger.info("Shutting down publish service")
        await self.tasks.stop_sweeper()
        await self.strategies.release_all()
        self.tasks.clear()

    def create_task(
        self,
        targets: Iterable[str],
        content: str,
        title: str,
        options: PublishOptions | dict | None = None,
    ) -> str:
        """Create a task for the supported subset of targets.

        Raises:
            UnsupportedTargetError: If no requested target is supported.
        """
        return self.tasks.create(targets, content, title, options)

    async def run_task(self, task_id: str) -> Verdict:
        """Run a task to completion.

        Raises:
            TaskNotFoundError, AlreadyRunningError, TaskCompletedError
        """
        return await self.orchestrator.run(task_id)

    async def publish(
        self,
        targets: Iterable[str],
        content: str,
        title: str,
        options: PublishOptions | dict | None = None,
    ) -> TaskView:
        """Create and run a task in one call, returning its final view.

        The view is built from the task itself, so it is returned even if
        the task was evicted while running.
        """
        task_id = self.create_task(targets, content, title, options)
        task = self.tasks.get(task_id)
        await self.run_task(task_id)
        return self._view(task)

    def get_task(self, task_id: str) -> TaskView:
        """Get a task view; the verdict is provisional until completion.

        Raises:
            TaskNotFoundError: If the task is not registered.
        """
        return self._view(self.tasks.get(task_id))

    def list_tasks(self) -> list[TaskView]:
        return [self._view(task) for task in self.tasks.list_active()]

    @staticmethod
    def _view(task: BatchTask) -> TaskView:
        return task.to_view(provisional_verdict=aggregate(task.status_by_target))

    def evict_task(self, task_id: str) -> bool:
        return self.tasks.evict(task_id)

    def sweep_expired(self, max_age_seconds: float) -> int:
        return self.tasks.sweep_expired(timedelta(seconds=max_age_seconds))

    def supported_targets(self) -> list[str]:
        return self.strategies.supported_kinds()

    def target_statuses(self) -> dict[str, PlatformStatus]:
        return self.strategies.statuses()
