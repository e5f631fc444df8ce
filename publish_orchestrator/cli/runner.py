"""CLI runner module wiring commands to the publish service."""

from pathlib import Path
from typing import Any

import click

from publish_orchestrator.batch import PublishService
from publish_orchestrator.config import Settings
from publish_orchestrator.exceptions import PublishOrchestratorError
from publish_orchestrator.models import BatchTask, PublishOptions, PublishResult, TaskView
from publish_orchestrator.storage import JsonStorage, SessionStore, StorageBackend
from publish_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)

SNAPSHOT_CATEGORY = "tasks"


class PublishRunner:
    """Runs one publish job for the CLI and stores its snapshot."""

    def __init__(
        self,
        settings: Settings,
        work_dir: Path,
        verbose: bool = False,
        quiet: bool = False,
    ):
        """Initialize publish runner.

        Args:
            settings: Application settings
            work_dir: Working directory for sessions and task snapshots
            verbose: Enable verbose output
            quiet: Suppress non-essential output
        """
        self.settings = settings
        self.work_dir = work_dir
        self.verbose = verbose
        self.quiet = quiet

        self.work_dir.mkdir(parents=True, exist_ok=True)
        self.storage = JsonStorage(base_dir=work_dir)
        self.session_store = SessionStore(self.storage)

    def _echo_progress(self, task: BatchTask, target: str, result: PublishResult) -> None:
        if self.quiet:
            return
        mark = click.style("✓", fg="green") if result.success else click.style("✗", fg="red")
        click.echo(
            f"  {mark} {target:<16} {result.message}  [{task.progress_percent:.0f}%]"
        )

    async def publish(
        self,
        targets: list[str],
        content: str,
        title: str,
        options: PublishOptions | None = None,
    ) -> TaskView | None:
        """Create and run a task, returning its final view.

        Returns:
            The task view, or None when the task could not be created or run.
        """
        service = PublishService.from_settings(
            self.settings,
            session_store=self.session_store,
            on_target_complete=self._echo_progress,
        )

        try:
            async with service:
                task_id = service.create_task(targets, content, title, options)
                if not self.quiet:
                    click.echo(f"Publishing '{title}' as {task_id}")
                await service.run_task(task_id)
                view = service.get_task(task_id)
        except PublishOrchestratorError as e:
            logger.error(f"Publish failed: {e}")
            click.echo(click.style(f"Error: {e}", fg="red"), err=True)
            return None

        if self.settings.storage.save_snapshots:
            await self.storage.save(
                category=SNAPSHOT_CATEGORY,
                key=view.task_id,
                data=view.model_dump(mode="json"),
            )
        return view


class SnapshotViewer:
    """Reads stored task snapshots."""

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    async def list_snapshots(self) -> list[dict[str, Any]]:
        snapshots = []
        for key in await self.storage.list_keys(SNAPSHOT_CATEGORY):
            data = await self.storage.load(SNAPSHOT_CATEGORY, key)
            if data is not None:
                snapshots.append(data)
        return snapshots

    async def get_snapshot(self, task_id: str) -> dict[str, Any] | None:
        return await self.storage.load(SNAPSHOT_CATEGORY, task_id)


class WorkDirCleaner:
    """Removes stored snapshots and session state."""

    def __init__(self, storage: StorageBackend):
        self.storage = storage
        self.session_store = SessionStore(storage)

    async def clear_all(self) -> int:
        return await self.storage.clear_all()

    async def clear_task(self, task_id: str) -> bool:
        return await self.storage.delete(SNAPSHOT_CATEGORY, task_id)

    async def clear_sessions(self) -> list[str]:
        """Clear every saved session and return the target kinds cleared."""
        kinds = await self.session_store.kinds()
        await self.session_store.clear_all()
        return kinds
