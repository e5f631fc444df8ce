"""Publishing strategies and their registry."""

from publish_orchestrator.strategies.base import PlatformStatus, PublishStrategy
from publish_orchestrator.strategies.factory import build_registry, create_strategy
from publish_orchestrator.strategies.file import FileStrategy
from publish_orchestrator.strategies.registry import (
    StrategyFactory,
    StrategyRegistry,
    normalize_kind,
)
from publish_orchestrator.strategies.webhook import WebhookStrategy

__all__ = [
    # Base
    "PublishStrategy",
    "PlatformStatus",
    # Registry
    "StrategyRegistry",
    "StrategyFactory",
    "normalize_kind",
    "build_registry",
    "create_strategy",
    # Built-in strategies
    "WebhookStrategy",
    "FileStrategy",
]
