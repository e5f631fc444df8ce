"""Strategy registry mapping target kinds to prepared strategies."""

import asyncio
from collections.abc import Callable

from publish_orchestrator.exceptions import StrategyUnavailableError
from publish_orchestrator.strategies.base import PlatformStatus, PublishStrategy
from publish_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)

StrategyFactory = Callable[[], PublishStrategy]


def normalize_kind(kind: str) -> str:
    """Target kinds are compared case-insensitively."""
    return kind.strip().lower()


class StrategyRegistry:
    """Registry of strategy factories with lazily prepared instances.

    The first resolve() of a kind builds the strategy and awaits its
    prepare(); the instance is cached and reused by every later resolve()
    until release_all().
    """

    def __init__(self) -> None:
        self._factories: dict[str, StrategyFactory] = {}
        self._instances: dict[str, PublishStrategy] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # Instances replaced by a re-registration, cleaned up on release_all()
        self._retired: list[PublishStrategy] = []

    def register(self, kind: str, factory: StrategyFactory) -> None:
        """Register a factory for a target kind, replacing any previous one."""
        kind = normalize_kind(kind)
        if not kind:
            raise ValueError("Target kind must not be empty")

        self._factories[kind] = factory
        previous = self._instances.pop(kind, None)
        if previous is not None:
            self._retired.append(previous)
        logger.debug(f"Registered strategy for target kind: {kind}")

    def is_supported(self, kind: str) -> bool:
        return normalize_kind(kind) in self._factories

    def supported_kinds(self) -> list[str]:
        return sorted(self._factories)

    def status(self, kind: str) -> PlatformStatus:
        kind = normalize_kind(kind)
        if kind not in self._factories:
            return PlatformStatus.NOT_SUPPORTED
        instance = self._instances.get(kind)
        if instance is None or not instance.is_prepared:
            return PlatformStatus.NOT_PREPARED
        return PlatformStatus.READY

    def statuses(self) -> dict[str, PlatformStatus]:
        return {kind: self.status(kind) for kind in self.supported_kinds()}

    async def resolve(self, kind: str) -> PublishStrategy:
        """Return the prepared strategy for a kind.

        Raises:
            StrategyUnavailableError: If the kind is unknown or the strategy
                could not be built or prepared. Nothing is cached then, so
                a later call retries.
        """
        kind = normalize_kind(kind)
        cached = self._instances.get(kind)
        if cached is not None:
            return cached

        factory = self._factories.get(kind)
        if factory is None:
            raise StrategyUnavailableError(f"No strategy registered for target kind: {kind}")

        lock = self._locks.setdefault(kind, asyncio.Lock())
        async with lock:
            cached = self._instances.get(kind)
            if cached is not None:
                return cached

            try:
                strategy = factory()
                await strategy.prepare()
            except Exception as e:
                raise StrategyUnavailableError(
                    f"Failed to prepare strategy for target kind: {kind}",
                    details={"error": str(e)},
                ) from e

            # A concurrent register() may have swapped the factory meanwhile
            if self._factories.get(kind) is not factory:
                self._retired.append(strategy)
            else:
                self._instances[kind] = strategy
            logger.info(f"Prepared strategy for target kind: {kind}")
            return strategy

    async def release_all(self) -> None:
        """Clean up every cached strategy.

        Callers must make sure no run is still using them.
        """
        to_release = list(self._instances.items()) + [(s.kind, s) for s in self._retired]
        self._instances.clear()
        self._retired.clear()

        for kind, strategy in to_release:
            try:
                await strategy.cleanup()
                logger.debug(f"Released strategy for target kind: {kind}")
            except Exception as e:
                logger.error(f"Failed to clean up strategy for target kind {kind}: {e}")
