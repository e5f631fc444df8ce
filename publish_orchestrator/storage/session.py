"""Per-target session state persistence.

Strategies keep login cookies and similar state between runs. The blob is
opaque to the store; only the owning strategy interprets it.
"""

from typing import Any

from publish_orchestrator.storage.base import StorageBackend
from publish_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)


class SessionStore:
    """Loads and saves one opaque session blob per target kind."""

    CATEGORY = "sessions"

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    async def load(self, kind: str) -> dict[str, Any] | None:
        data = await self.storage.load(category=self.CATEGORY, key=kind)
        if data is not None and not isinstance(data, dict):
            logger.warning(f"Ignoring malformed session state for {kind}")
            return None
        return data

    async def save(self, kind: str, blob: dict[str, Any]) -> None:
        await self.storage.save(category=self.CATEGORY, key=kind, data=blob)
        logger.debug(f"Saved session state for {kind}")

    async def clear(self, kind: str) -> bool:
        return await self.storage.delete(category=self.CATEGORY, key=kind)

    async def clear_all(self) -> int:
        return await self.storage.clear_category(category=self.CATEGORY)

    async def kinds(self) -> list[str]:
        return await self.storage.list_keys(category=self.CATEGORY)
