"""Build a StrategyRegistry from configured targets."""

from functools import partial

from publish_orchestrator.config import Settings, TargetSettings
from publish_orchestrator.storage.session import SessionStore
from publish_orchestrator.strategies.base import PublishStrategy
from publish_orchestrator.strategies.file import FileStrategy
from publish_orchestrator.strategies.registry import StrategyRegistry
from publish_orchestrator.strategies.webhook import WebhookStrategy
from publish_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)


def create_strategy(
    kind: str,
    target: TargetSettings,
    session_store: SessionStore | None = None,
) -> PublishStrategy:
    """Instantiate the strategy class named by a target's type."""
    if target.type == "webhook":
        return WebhookStrategy(
            kind,
            url=target.url,
            name=target.name,
            method=target.method,
            headers=target.headers,
            timeout=target.timeout,
            session_store=session_store,
        )
    if target.type == "file":
        return FileStrategy(
            kind,
            output_dir=target.output_dir,
            name=target.name,
            session_store=session_store,
        )
    raise ValueError(f"Unknown target type: {target.type}")


def build_registry(
    settings: Settings,
    session_store: SessionStore | None = None,
) -> StrategyRegistry:
    """Register a lazy factory for every enabled target in settings."""
    registry = StrategyRegistry()
    store = session_store if settings.storage.save_sessions else None

    for kind, target in settings.targets.items():
        if not target.enabled:
            logger.debug(f"Skipping disabled target: {kind}")
            continue
        registry.register(kind, partial(create_strategy, kind, target, store))

    logger.info(f"Registered targets: {registry.supported_kinds()}")
    return registry
