"""CLI commands for publish_orchestrator."""

import asyncio
import json
from pathlib import Path
from typing import Any

import click
import yaml

from publish_orchestrator import __version__
from publish_orchestrator.cli.validators import (
    validate_config_file,
    validate_job_file,
    validate_targets,
)
from publish_orchestrator.models import PublishOptions, Verdict

# Context settings for better help formatting
CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 120,
}

EXIT_CODES = {
    Verdict.ALL_SUCCEEDED: 0,
    Verdict.PARTIAL: 2,
    Verdict.ALL_FAILED: 1,
}


class AliasedGroup(click.Group):
    """Click group with command aliases support."""

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        aliases = {
            "p": "publish",
            "t": "targets",
            "s": "status",
            "c": "clean",
        }
        cmd_name = aliases.get(cmd_name, cmd_name)
        return super().get_command(ctx, cmd_name)


def _get_settings(ctx: click.Context):
    """Get settings from context or load defaults."""
    from publish_orchestrator.config import load_config
    from publish_orchestrator.exceptions import ConfigurationError

    try:
        return load_config(ctx.obj.get("config_path"))
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from None


def _run_async(coro):
    """Run an async coroutine."""
    return asyncio.run(coro)


def _dump(data: Any, fmt: str) -> str:
    if fmt == "json":
        return json.dumps(data, indent=2, ensure_ascii=False)
    return yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)


def _status_mark(status: str) -> str:
    if status == "succeeded":
        return click.style("✓", fg="green")
    if status == "timed_out":
        return click.style("⏱", fg="yellow")
    if status in ("pending", "in_progress"):
        return click.style("…", fg="cyan")
    return click.style("✗", fg="red")


def _echo_task_table(view: dict[str, Any]) -> None:
    click.echo(f"Task: {view['task_id']}")
    click.echo(f"Title: {view['title']}")
    click.echo(f"Verdict: {view.get('verdict') or 'unknown'}")
    click.echo(f"Progress: {view['progress_percent']:.0f}%")
    click.echo("-" * 60)
    results = view.get("result_by_target", {})
    for target in view["targets"]:
        status = view["status_by_target"][target]
        result = results.get(target) or {}
        line = f"  {_status_mark(status)} {target:<16} {status:<12} {result.get('message', '')}"
        if result.get("locator"):
            line += f"\n      {result['locator']}"
        click.echo(line)


@click.group(cls=AliasedGroup, context_settings=CONTEXT_SETTINGS)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file",
    callback=validate_config_file,
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output",
)
@click.option(
    "--work-dir",
    "-w",
    type=click.Path(path_type=Path),
    default=".publish_orchestrator",
    help="Working directory for sessions and task snapshots",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="Suppress non-essential output",
)
@click.version_option(version=__version__, prog_name="publish_orchestrator")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    verbose: bool,
    work_dir: Path,
    quiet: bool,
) -> None:
    """Publish Orchestrator - concurrent batch publishing to multiple targets

    Publish one piece of content to several configured targets at once,
    with a global concurrency limit and a batch deadline.

    \b
    Examples:
        # Publish a markdown file to two targets
        publish-orchestrator publish -t blog -t archive -f post.md --title "Hello"

        # Publish from a job file
        publish-orchestrator publish -j job.yaml

        # Show configured targets
        publish-orchestrator targets
    """
    ctx.ensure_object(dict)

    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["work_dir"] = work_dir
    ctx.obj["quiet"] = quiet

    from publish_orchestrator.utils.logger import setup_logger

    if quiet:
        setup_logger(log_level="ERROR")
    else:
        log_level = "DEBUG" if verbose else "WARNING"
        setup_logger(log_level=log_level, log_file=work_dir / "logs" / "publish_orchestrator.log")


@cli.command()
@click.option(
    "--job-file",
    "-j",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Job file (YAML/JSON format)",
    callback=validate_job_file,
)
@click.option(
    "--target",
    "-t",
    "targets",
    multiple=True,
    help="Target kind (repeatable, or comma separated)",
    callback=validate_targets,
)
@click.option(
    "--content-file",
    "-f",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="File with the content to publish",
)
@click.option("--title", type=str, help="Content title (defaults to the file name)")
@click.option("--tag", "tags", multiple=True, help="Content tag (repeatable)")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Batch deadline in seconds")
@click.option("--max-concurrent", type=click.IntRange(min=1), help="Maximum concurrent targets")
@click.option("--interval", type=click.FloatRange(min=0), help="Delay between dispatches in seconds")
@click.option(
    "--format",
    "-o",
    "output_format",
    type=click.Choice(["table", "json", "yaml"]),
    default="table",
    help="Output format",
)
@click.pass_context
def publish(
    ctx: click.Context,
    job_file: Path | None,
    targets: tuple[str, ...],
    content_file: Path | None,
    title: str | None,
    tags: tuple[str, ...],
    timeout: float | None,
    max_concurrent: int | None,
    interval: float | None,
    output_format: str,
) -> None:
    """Publish content to one or more targets.

    \b
    Supports two modes:
    1. Direct mode: use -t and -f options
    2. Job mode: use -j option with a job file

    \b
    Exit codes: 0 all targets succeeded, 2 partial success, 1 failure.

    \b
    Examples:
        publish-orchestrator publish -t blog,archive -f post.md --tag release
        publish-orchestrator publish -j job.yaml --timeout 60
    """
    from publish_orchestrator.batch import JobParser
    from publish_orchestrator.cli.runner import PublishRunner
    from publish_orchestrator.exceptions import TaskParseError

    direct_mode = bool(targets) or content_file is not None
    if not direct_mode and job_file is None:
        raise click.UsageError("Please specify either a job file (-j) or targets and content (-t, -f)")
    if direct_mode and job_file is not None:
        raise click.UsageError("Cannot combine a job file with -t/-f. Please choose one.")

    if job_file is not None:
        try:
            job = JobParser().parse(job_file)
        except TaskParseError as e:
            raise click.ClickException(str(e)) from None
        job_targets, content, job_title, options = job.targets, job.content, job.title, job.options
    else:
        if not targets or content_file is None:
            raise click.UsageError("Direct mode needs both --target and --content-file")
        job_targets = list(targets)
        content = content_file.read_text(encoding="utf-8")
        job_title = title or content_file.stem
        options = PublishOptions()

    if title:
        job_title = title
    for tag in tags:
        options.add_tag(tag)

    settings = _get_settings(ctx)
    overrides = {
        "timeout": timeout,
        "max_concurrent": max_concurrent,
        "publish_interval": interval,
    }
    batch = settings.batch.model_copy(update={k: v for k, v in overrides.items() if v is not None})
    settings = settings.model_copy(update={"batch": batch})

    runner = PublishRunner(
        settings=settings,
        work_dir=ctx.obj.get("work_dir", Path(".publish_orchestrator")),
        verbose=ctx.obj.get("verbose", False),
        quiet=ctx.obj.get("quiet", False),
    )
    view = _run_async(runner.publish(job_targets, content, job_title, options))

    if view is None:
        ctx.exit(1)

    data = view.model_dump(mode="json")
    if output_format == "table":
        click.echo()
        _echo_task_table(data)
    else:
        click.echo(_dump(data, output_format))

    ctx.exit(EXIT_CODES[view.verdict])


@cli.command()
@click.pass_context
def targets(ctx: click.Context) -> None:
    """List configured publishing targets.

    \b
    Examples:
        publish-orchestrator targets
        publish-orchestrator -c config.yaml targets
    """
    settings = _get_settings(ctx)

    if not settings.targets:
        click.echo("No targets configured.")
        return

    click.echo("Configured targets:")
    click.echo("-" * 60)
    for kind, target in sorted(settings.targets.items()):
        state = click.style("enabled", fg="green") if target.enabled else click.style("disabled", fg="red")
        where = target.url if target.type == "webhook" else target.output_dir
        click.echo(f"  {click.style(kind, fg='cyan'):<24} {target.type:<8} {state:<18} {where}")


@cli.command()
@click.option(
    "--task-id",
    "-t",
    type=str,
    help="View a specific task",
)
@click.option(
    "--list",
    "-l",
    "list_all",
    is_flag=True,
    default=False,
    help="List all stored tasks",
)
@click.option(
    "--format",
    "-o",
    "output_format",
    type=click.Choice(["table", "json", "yaml"]),
    default="table",
    help="Output format",
)
@click.pass_context
def status(
    ctx: click.Context,
    task_id: str | None,
    list_all: bool,
    output_format: str,
) -> None:
    """View stored results of previous publish runs.

    \b
    Examples:
        publish-orchestrator status --list
        publish-orchestrator status -t batch_20240101_120000_1a2b3c4d -o json
    """
    from publish_orchestrator.cli.runner import SnapshotViewer
    from publish_orchestrator.storage import JsonStorage

    work_dir = ctx.obj.get("work_dir", Path(".publish_orchestrator"))
    viewer = SnapshotViewer(storage=JsonStorage(base_dir=work_dir))

    if task_id:
        snapshot = _run_async(viewer.get_snapshot(task_id))
        if not snapshot:
            click.echo(f"No stored task found: {task_id}")
            ctx.exit(1)

        if output_format == "table":
            _echo_task_table(snapshot)
        else:
            click.echo(_dump(snapshot, output_format))

    elif list_all:
        snapshots = _run_async(viewer.list_snapshots())
        if not snapshots:
            click.echo("No stored tasks found.")
            return

        if output_format != "table":
            click.echo(_dump(snapshots, output_format))
            return

        click.echo("Stored tasks:")
        click.echo("-" * 60)
        for snap in snapshots:
            verdict = snap.get("verdict") or "unknown"
            mark = _status_mark("succeeded" if verdict == "all_succeeded" else "failed")
            click.echo(
                f"  {mark} {snap['task_id']}  {verdict:<14} "
                f"{snap['success_count']}/{len(snap['targets'])}  {snap['title']}"
            )

    else:
        click.echo("Use --list to view all stored tasks or specify --task-id")


@cli.command()
@click.option(
    "--all",
    "-a",
    "clear_all",
    is_flag=True,
    default=False,
    help="Clear all stored tasks and sessions",
)
@click.option(
    "--task-id",
    "-t",
    type=str,
    help="Clear a stored task",
)
@click.option(
    "--sessions",
    "sessions_only",
    is_flag=True,
    default=False,
    help="Only clear saved target sessions",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=False,
    help="Skip confirmation prompt",
)
@click.pass_context
def clean(
    ctx: click.Context,
    clear_all: bool,
    task_id: str | None,
    sessions_only: bool,
    force: bool,
) -> None:
    """Clean stored task results and target sessions.

    \b
    Examples:
        publish-orchestrator clean --all
        publish-orchestrator clean -t batch_20240101_120000_1a2b3c4d
        publish-orchestrator clean --sessions
    """
    from publish_orchestrator.cli.runner import WorkDirCleaner
    from publish_orchestrator.storage import JsonStorage

    if not clear_all and not task_id and not sessions_only:
        raise click.UsageError("Please specify what to clean: --all, --task-id, or --sessions")

    work_dir = ctx.obj.get("work_dir", Path(".publish_orchestrator"))
    cleaner = WorkDirCleaner(storage=JsonStorage(base_dir=work_dir))

    if clear_all:
        if not force and not click.confirm("This will delete all stored data. Continue?"):
            click.echo("Aborted.")
            return

        count = _run_async(cleaner.clear_all())
        click.echo(click.style(f"Cleared {count} items", fg="green"))

    elif task_id:
        if _run_async(cleaner.clear_task(task_id)):
            click.echo(click.style(f"Cleared stored task: {task_id}", fg="green"))
        else:
            click.echo(f"No stored task found: {task_id}")

    elif sessions_only:
        kinds = _run_async(cleaner.clear_sessions())
        click.echo(click.style(f"Cleared {len(kinds)} sessions", fg="green"))
        for kind in kinds:
            click.echo(f"  - {kind}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
