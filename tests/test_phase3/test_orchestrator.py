"""Tests for the batch orchestrator."""

import asyncio

import pytest

from publish_orchestrator.batch import Orchestrator, TaskRegistry
from publish_orchestrator.config import Settings
from publish_orchestrator.exceptions import (
    AlreadyRunningError,
    TaskCompletedError,
    TaskNotFoundError,
)
from publish_orchestrator.models import PublishOptions, PublishResult, TargetStatus, Verdict
from publish_orchestrator.strategies import StrategyRegistry
from tests.fakes import ConcurrencyTracker, ScriptedStrategy, register_scripted


class TimedStrategy(ScriptedStrategy):
    """Records the loop time at which publish() was entered."""

    def __init__(self, kind: str, starts: list[float], **kwargs):
        super().__init__(kind, **kwargs)
        self.starts = starts

    async def publish(self, content, title, options):
        self.starts.append(asyncio.get_running_loop().time())
        return await super().publish(content, title, options)


class HangingPrepareStrategy(ScriptedStrategy):
    async def prepare(self) -> None:
        await asyncio.Event().wait()


class BrokenPrepareStrategy(ScriptedStrategy):
    async def prepare(self) -> None:
        raise ConnectionError("credentials rejected")


class WrongResultStrategy(ScriptedStrategy):
    async def publish(self, content, title, options):
        return "ok"


class TaggingStrategy(ScriptedStrategy):
    """Adds its own tag to the options it receives."""

    async def publish(self, content, title, options):
        options.add_tag(self.kind)
        return await super().publish(content, title, options)


def make_orchestrator(
    registry: StrategyRegistry,
    **kwargs,
) -> tuple[Orchestrator, TaskRegistry]:
    tasks = TaskRegistry(registry)
    kwargs.setdefault("publish_interval", 0.0)
    kwargs.setdefault("timeout", 5.0)
    return Orchestrator(registry, tasks, **kwargs), tasks


class TestOrchestratorInit:
    """Tests for construction."""

    def test_invalid_max_concurrent(self, strategy_registry, task_registry):
        with pytest.raises(ValueError):
            Orchestrator(strategy_registry, task_registry, max_concurrent=0)

    def test_invalid_timeout(self, strategy_registry, task_registry):
        with pytest.raises(ValueError):
            Orchestrator(strategy_registry, task_registry, timeout=0)

    def test_from_settings(self, strategy_registry, task_registry):
        settings = Settings(batch={"max_concurrent": 5, "timeout": 60, "publish_interval": 0.5})

        orchestrator = Orchestrator.from_settings(settings, strategy_registry, task_registry)

        assert orchestrator.max_concurrent == 5
        assert orchestrator.timeout == 60
        assert orchestrator.publish_interval == 0.5


class TestRun:
    """Tests for running tasks to completion."""

    @pytest.mark.asyncio
    async def test_all_succeeded(self, orchestrator: Orchestrator, task_registry: TaskRegistry):
        task_id = task_registry.create(["a", "b"], "body", "Title")

        verdict = await orchestrator.run(task_id)

        task = task_registry.get(task_id)
        assert verdict is Verdict.ALL_SUCCEEDED
        assert task.completed is True
        assert task.verdict is Verdict.ALL_SUCCEEDED
        assert task.status_by_target == {"a": TargetStatus.SUCCEEDED, "b": TargetStatus.SUCCEEDED}
        assert task.result_by_target["a"].locator == "https://a/post/1"
        assert task.started_at is not None
        assert task.finished_at is not None
        assert orchestrator.executing == 0

    @pytest.mark.asyncio
    async def test_strategy_receives_content_and_options(self):
        registry = StrategyRegistry()
        blog = register_scripted(registry, "blog")
        orchestrator, tasks = make_orchestrator(registry)
        task_id = tasks.create(["blog"], "body", "Title", PublishOptions(tags=["x"]))

        await orchestrator.run(task_id)

        content, title, options = blog.calls[0]
        assert (content, title) == ("body", "Title")
        assert options.tags == ["x"]

    @pytest.mark.asyncio
    async def test_partial_with_deadline(self):
        """One success, one failure and one hang give PARTIAL within the deadline."""
        registry = StrategyRegistry()
        register_scripted(registry, "a", delay=0.01)
        register_scripted(registry, "b", mode="fail")
        hanging = register_scripted(registry, "c", mode="hang")
        orchestrator, tasks = make_orchestrator(registry, timeout=0.2)
        task_id = tasks.create(["a", "b", "c"], "body", "Title")

        loop = asyncio.get_running_loop()
        started = loop.time()
        verdict = await orchestrator.run(task_id)
        elapsed = loop.time() - started

        task = tasks.get(task_id)
        assert verdict is Verdict.PARTIAL
        assert task.status_by_target == {
            "a": TargetStatus.SUCCEEDED,
            "b": TargetStatus.FAILED,
            "c": TargetStatus.TIMED_OUT,
        }
        assert task.result_by_target["b"].message == "b rejected the post"
        assert task.result_by_target["c"].message == "timed out after 0.2s"
        assert task.result_by_target["c"].success is False
        assert elapsed < 0.5

        await asyncio.sleep(0.01)
        assert hanging.cancelled is True

    @pytest.mark.asyncio
    async def test_hanging_target_times_out(self):
        registry = StrategyRegistry()
        register_scripted(registry, "a")
        register_scripted(registry, "b")
        register_scripted(registry, "c", mode="hang")
        orchestrator, tasks = make_orchestrator(registry, timeout=0.2)
        task_id = tasks.create(["a", "b", "c"], "body", "Title")

        verdict = await orchestrator.run(task_id)

        assert verdict is Verdict.PARTIAL
        assert tasks.get(task_id).status_by_target == {
            "a": TargetStatus.SUCCEEDED,
            "b": TargetStatus.SUCCEEDED,
            "c": TargetStatus.TIMED_OUT,
        }

    @pytest.mark.asyncio
    async def test_all_failed(self):
        registry = StrategyRegistry()
        register_scripted(registry, "a", mode="fail")
        register_scripted(registry, "b", mode="hang")
        orchestrator, tasks = make_orchestrator(registry, timeout=0.05)
        task_id = tasks.create(["a", "b"], "body", "Title")

        assert await orchestrator.run(task_id) is Verdict.ALL_FAILED

    @pytest.mark.asyncio
    async def test_every_target_has_a_terminal_result(self):
        registry = StrategyRegistry()
        register_scripted(registry, "a")
        register_scripted(registry, "b", mode="raise")
        register_scripted(registry, "c", mode="hang")
        registry.register("d", lambda: BrokenPrepareStrategy("d"))
        orchestrator, tasks = make_orchestrator(registry, timeout=0.1)
        task_id = tasks.create(["a", "b", "c", "d"], "body", "Title")

        await orchestrator.run(task_id)

        task = tasks.get(task_id)
        assert set(task.result_by_target) == set(task.targets)
        for target in task.targets:
            status = task.status_of(target)
            assert status.is_terminal
            assert task.result_by_target[target].success is (status is TargetStatus.SUCCEEDED)
        assert task.progress_percent == 100.0

    @pytest.mark.asyncio
    async def test_unknown_task(self, orchestrator: Orchestrator):
        with pytest.raises(TaskNotFoundError):
            await orchestrator.run("batch_missing")


class TestFaultIsolation:
    """A failing target never affects its siblings."""

    @pytest.mark.asyncio
    async def test_exception_becomes_failed_result(self):
        registry = StrategyRegistry()
        register_scripted(registry, "a", mode="raise")
        register_scripted(registry, "b", delay=0.02)
        orchestrator, tasks = make_orchestrator(registry)
        task_id = tasks.create(["a", "b"], "body", "Title")

        verdict = await orchestrator.run(task_id)

        task = tasks.get(task_id)
        assert verdict is Verdict.PARTIAL
        assert task.status_of("a") is TargetStatus.FAILED
        assert task.result_by_target["a"].message == "publish error: a exploded"
        assert task.status_of("b") is TargetStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_invalid_result_type(self):
        registry = StrategyRegistry()
        registry.register("a", lambda: WrongResultStrategy("a"))
        register_scripted(registry, "b")
        orchestrator, tasks = make_orchestrator(registry)
        task_id = tasks.create(["a", "b"], "body", "Title")

        await orchestrator.run(task_id)

        task = tasks.get(task_id)
        assert task.status_of("a") is TargetStatus.FAILED
        assert "invalid result" in task.result_by_target["a"].message
        assert task.status_of("b") is TargetStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_resolution_failure(self):
        registry = StrategyRegistry()
        registry.register("a", lambda: BrokenPrepareStrategy("a"))
        b = register_scripted(registry, "b")
        orchestrator, tasks = make_orchestrator(registry)
        task_id = tasks.create(["a", "b"], "body", "Title")

        verdict = await orchestrator.run(task_id)

        task = tasks.get(task_id)
        assert verdict is Verdict.PARTIAL
        assert task.status_of("a") is TargetStatus.FAILED
        assert task.result_by_target["a"].message == "strategy unavailable: a"
        assert len(b.calls) == 1

    @pytest.mark.asyncio
    async def test_hanging_prepare_is_bounded_by_deadline(self):
        registry = StrategyRegistry()
        registry.register("a", lambda: HangingPrepareStrategy("a"))
        orchestrator, tasks = make_orchestrator(registry, timeout=0.1)
        task_id = tasks.create(["a"], "body", "Title")

        verdict = await asyncio.wait_for(orchestrator.run(task_id), timeout=1.0)

        assert verdict is Verdict.ALL_FAILED
        assert tasks.get(task_id).status_of("a") is TargetStatus.TIMED_OUT

    @pytest.mark.asyncio
    async def test_hanging_prepare_does_not_block_siblings(self):
        registry = StrategyRegistry()
        ready = register_scripted(registry, "a")
        registry.register("b", lambda: HangingPrepareStrategy("b"))
        orchestrator, tasks = make_orchestrator(registry, timeout=0.3)
        task_id = tasks.create(["b", "a"], "body", "Title")

        verdict = await asyncio.wait_for(orchestrator.run(task_id), timeout=1.0)

        task = tasks.get(task_id)
        assert verdict is Verdict.PARTIAL
        assert task.status_of("a") is TargetStatus.SUCCEEDED
        assert task.status_of("b") is TargetStatus.TIMED_OUT
        assert len(ready.calls) == 1

    @pytest.mark.asyncio
    async def test_slow_prepare_in_another_task_does_not_block(self):
        registry = StrategyRegistry()
        register_scripted(registry, "a")
        registry.register("b", lambda: HangingPrepareStrategy("b"))
        orchestrator, tasks = make_orchestrator(registry, timeout=0.3)
        first = tasks.create(["b"], "one", "One")
        second = tasks.create(["a", "b"], "two", "Two")

        verdicts = await asyncio.gather(orchestrator.run(first), orchestrator.run(second))

        assert verdicts == [Verdict.ALL_FAILED, Verdict.PARTIAL]
        assert tasks.get(second).status_of("a") is TargetStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_options_are_not_shared_between_targets(self):
        registry = StrategyRegistry()
        registry.register("a", lambda: TaggingStrategy("a"))
        plain = register_scripted(registry, "b", delay=0.02)
        orchestrator, tasks = make_orchestrator(registry)
        task_id = tasks.create(["a", "b"], "body", "Title", PublishOptions(tags=["x"]))

        await orchestrator.run(task_id)

        _, _, options = plain.calls[0]
        assert options.tags == ["x"]
        assert tasks.get(task_id).options.tags == ["x"]


class TestRunLock:
    """Tests for single-run enforcement."""

    @pytest.mark.asyncio
    async def test_concurrent_run_rejected(self):
        registry = StrategyRegistry()
        register_scripted(registry, "a", delay=0.1)
        orchestrator, tasks = make_orchestrator(registry)
        task_id = tasks.create(["a"], "body", "Title")

        first = asyncio.create_task(orchestrator.run(task_id))
        await asyncio.sleep(0.01)
        assert tasks.get(task_id).is_running

        with pytest.raises(AlreadyRunningError):
            await orchestrator.run(task_id)

        assert await first is Verdict.ALL_SUCCEEDED
        assert not tasks.get(task_id).is_running

    @pytest.mark.asyncio
    async def test_completed_task_rejected(self, orchestrator: Orchestrator, task_registry: TaskRegistry):
        task_id = task_registry.create(["a"], "body", "Title")
        await orchestrator.run(task_id)

        with pytest.raises(TaskCompletedError):
            await orchestrator.run(task_id)

    @pytest.mark.asyncio
    async def test_in_progress_visible_during_run(self):
        registry = StrategyRegistry()
        register_scripted(registry, "a")
        register_scripted(registry, "b", mode="hang")
        orchestrator, tasks = make_orchestrator(registry, timeout=0.2)
        task_id = tasks.create(["a", "b"], "body", "Title")

        run = asyncio.create_task(orchestrator.run(task_id))
        await asyncio.sleep(0.05)

        task = tasks.get(task_id)
        assert task.completed is False
        assert task.status_of("a") is TargetStatus.SUCCEEDED
        assert task.status_of("b") is TargetStatus.IN_PROGRESS
        assert "b" not in task.result_by_target

        await run


class TestConcurrency:
    """Tests for the global concurrency bound."""

    @pytest.mark.asyncio
    async def test_bound_holds_across_tasks(self):
        tracker = ConcurrencyTracker()
        registry = StrategyRegistry()
        for kind in ("a", "b", "c"):
            register_scripted(registry, kind, delay=0.03, tracker=tracker)
        orchestrator, tasks = make_orchestrator(registry, max_concurrent=2)
        first = tasks.create(["a", "b", "c"], "one", "One")
        second = tasks.create(["a", "b", "c"], "two", "Two")

        verdicts = await asyncio.gather(orchestrator.run(first), orchestrator.run(second))

        assert verdicts == [Verdict.ALL_SUCCEEDED, Verdict.ALL_SUCCEEDED]
        assert tracker.peak == 2
        assert tracker.current == 0

    @pytest.mark.asyncio
    async def test_queued_targets_time_out_without_running(self):
        registry = StrategyRegistry()
        register_scripted(registry, "a", mode="hang")
        waiting = register_scripted(registry, "b")
        orchestrator, tasks = make_orchestrator(registry, max_concurrent=1, timeout=0.1)
        task_id = tasks.create(["a", "b"], "body", "Title")

        await orchestrator.run(task_id)

        task = tasks.get(task_id)
        assert task.status_of("b") is TargetStatus.TIMED_OUT
        assert waiting.calls == []


class TestPacing:
    """Tests for paced dispatch."""

    @pytest.mark.asyncio
    async def test_dispatch_interval(self):
        starts: list[float] = []
        registry = StrategyRegistry()
        for kind in ("a", "b", "c"):
            registry.register(kind, lambda kind=kind: TimedStrategy(kind, starts))
        orchestrator, tasks = make_orchestrator(registry, publish_interval=0.05)
        task_id = tasks.create(["a", "b", "c"], "body", "Title")

        await orchestrator.run(task_id)

        assert len(starts) == 3
        gaps = [later - earlier for earlier, later in zip(starts, starts[1:])]
        assert all(gap >= 0.04 for gap in gaps)

    @pytest.mark.asyncio
    async def test_undispatched_targets_time_out(self):
        registry = StrategyRegistry()
        register_scripted(registry, "a")
        late = register_scripted(registry, "b")
        orchestrator, tasks = make_orchestrator(registry, publish_interval=1.0, timeout=0.1)
        task_id = tasks.create(["a", "b"], "body", "Title")

        verdict = await orchestrator.run(task_id)

        task = tasks.get(task_id)
        assert verdict is Verdict.PARTIAL
        assert task.status_of("b") is TargetStatus.TIMED_OUT
        assert late.calls == []


class TestLateResults:
    """A completed task never changes again."""

    @pytest.mark.asyncio
    async def test_late_result_discarded(self):
        registry = StrategyRegistry()
        stubborn = register_scripted(registry, "a", mode="stubborn", delay=0.1)
        orchestrator, tasks = make_orchestrator(registry, timeout=0.05)
        task_id = tasks.create(["a"], "body", "Title")

        verdict = await orchestrator.run(task_id)
        await asyncio.sleep(0.2)

        task = tasks.get(task_id)
        assert stubborn.cancelled is True
        assert verdict is Verdict.ALL_FAILED
        assert task.verdict is Verdict.ALL_FAILED
        assert task.completed is True
        assert task.status_of("a") is TargetStatus.TIMED_OUT
        assert task.result_by_target["a"].success is False
        assert orchestrator.executing == 0


class TestCallback:
    """Tests for the target completion callback."""

    @pytest.mark.asyncio
    async def test_called_for_every_terminal_transition(self):
        seen: list[tuple[str, bool]] = []
        registry = StrategyRegistry()
        register_scripted(registry, "a")
        register_scripted(registry, "b", mode="hang")
        registry.register("c", lambda: BrokenPrepareStrategy("c"))
        orchestrator, tasks = make_orchestrator(
            registry,
            timeout=0.1,
            on_target_complete=lambda task, target, result: seen.append((target, result.success)),
        )
        task_id = tasks.create(["a", "b", "c"], "body", "Title")

        await orchestrator.run(task_id)

        assert sorted(seen) == [("a", True), ("b", False), ("c", False)]

    @pytest.mark.asyncio
    async def test_callback_error_does_not_break_run(self, strategy_registry: StrategyRegistry):
        def explode(task, target, result: PublishResult) -> None:
            raise RuntimeError("display broke")

        orchestrator, tasks = make_orchestrator(strategy_registry, on_target_complete=explode)
        task_id = tasks.create(["a", "b"], "body", "Title")

        assert await orchestrator.run(task_id) is Verdict.ALL_SUCCEEDED
