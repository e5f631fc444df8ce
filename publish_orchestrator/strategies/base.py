"""Base strategy class for publishing targets.

A strategy performs the actual publishing for one target kind. The
orchestrator only sees this interface:
- prepare(): acquire expensive resources (connections, sessions)
- publish(): publish one piece of content and return a PublishResult
- cleanup(): release whatever prepare() acquired

One prepared instance per kind is shared by every run, so publish() must
be safe to call concurrently.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from publish_orchestrator.models import PublishOptions, PublishResult
from publish_orchestrator.storage.session import SessionStore
from publish_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)


class PlatformStatus(str, Enum):
    """Registry-level readiness of a target kind."""

    NOT_SUPPORTED = "not_supported"
    NOT_PREPARED = "not_prepared"
    READY = "ready"


class PublishStrategy(ABC):
    """Abstract base class for target strategies."""

    def __init__(
        self,
        kind: str,
        name: str | None = None,
        session_store: SessionStore | None = None,
    ):
        """Initialize strategy.

        Args:
            kind: Target kind this strategy publishes to
            name: Human readable name (defaults to kind)
            session_store: Where session state is loaded from and saved to
        """
        self.kind = kind
        self.name = name or kind
        self.session_store = session_store
        self._prepared = False
        self.logger = get_logger(f"{__name__}.{kind}")

    @property
    def is_prepared(self) -> bool:
        return self._prepared

    async def prepare(self) -> None:
        """Acquire resources. Called once before the first publish."""
        self._prepared = True

    @abstractmethod
    async def publish(
        self,
        content: str,
        title: str,
        options: PublishOptions,
    ) -> PublishResult:
        """Publish content to the target.

        Implementations may raise; the orchestrator converts any exception
        into a failed result. They should let asyncio.CancelledError through.
        """

    async def cleanup(self) -> None:
        """Release resources acquired in prepare()."""
        self._prepared = False

    async def load_session(self) -> dict[str, Any] | None:
        """Load saved session state, None when there is none."""
        if self.session_store is None:
            return None
        return await self.session_store.load(self.kind)

    async def save_session(self, blob: dict[str, Any]) -> None:
        if self.session_store is None:
            return
        await self.session_store.save(self.kind, blob)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, prepared={self._prepared})"
