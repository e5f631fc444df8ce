"""Scripted strategies used across the test suite."""

import asyncio

from publish_orchestrator.models import PublishOptions, PublishResult
from publish_orchestrator.strategies import PublishStrategy, StrategyRegistry


class ScriptedStrategy(PublishStrategy):
    """Test strategy whose publish() behaviour is chosen per instance.

    Modes:
        succeed: return a successful result after `delay` seconds
        fail:    return a failed result after `delay` seconds
        raise:   raise RuntimeError after `delay` seconds
        hang:    never return (until cancelled)
        stubborn: ignore the first cancellation, then succeed
    """

    def __init__(self, kind: str, mode: str = "succeed", delay: float = 0.0, tracker=None):
        super().__init__(kind)
        self.mode = mode
        self.delay = delay
        self.tracker = tracker
        self.calls: list[tuple[str, str, PublishOptions]] = []
        self.cancelled = False
        self.prepare_count = 0
        self.cleanup_count = 0

    async def prepare(self) -> None:
        self.prepare_count += 1
        await super().prepare()

    async def cleanup(self) -> None:
        self.cleanup_count += 1
        await super().cleanup()

    async def publish(self, content: str, title: str, options: PublishOptions) -> PublishResult:
        self.calls.append((content, title, options))
        if self.tracker is not None:
            self.tracker.enter()
        try:
            return await self._behave()
        finally:
            if self.tracker is not None:
                self.tracker.exit()

    async def _behave(self) -> PublishResult:
        if self.mode == "hang":
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.mode == "stubborn":
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                await asyncio.sleep(self.delay)
            return PublishResult.succeeded(f"{self.kind} late", locator=f"https://{self.kind}/late")

        if self.delay:
            await asyncio.sleep(self.delay)
        if self.mode == "raise":
            raise RuntimeError(f"{self.kind} exploded")
        if self.mode == "fail":
            return PublishResult.failed(f"{self.kind} rejected the post")
        return PublishResult.succeeded(f"{self.kind} ok", locator=f"https://{self.kind}/post/1")


class ConcurrencyTracker:
    """Records the peak number of simultaneously executing publishes."""

    def __init__(self) -> None:
        self.current = 0
        self.peak = 0

    def enter(self) -> None:
        self.current += 1
        self.peak = max(self.peak, self.current)

    def exit(self) -> None:
        self.current -= 1


def register_scripted(registry: StrategyRegistry, kind: str, **kwargs) -> ScriptedStrategy:
    """Register a ScriptedStrategy and return the instance the registry will use."""
    strategy = ScriptedStrategy(kind, **kwargs)
    registry.register(kind, lambda: strategy)
    return strategy
