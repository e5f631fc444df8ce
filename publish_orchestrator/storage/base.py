"""Base storage interface definitions."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from pydantic import BaseModel


class StorageMetadata(BaseModel):
    """Metadata for stored items."""

    key: str
    category: str
    created_at: datetime
    updated_at: datetime
    size_bytes: int = 0


class StorageBackend(ABC):
    """Abstract storage backend interface.

    Items are JSON-serializable values addressed by (category, key).
    """

    @abstractmethod
    async def save(self, category: str, key: str, data: Any) -> None:
        """Save data to storage.

        Raises:
            StorageError: If save fails
        """

    @abstractmethod
    async def load(self, category: str, key: str) -> Any | None:
        """Load data from storage, None if not found."""

    @abstractmethod
    async def exists(self, category: str, key: str) -> bool:
        """Check if data exists in storage."""

    @abstractmethod
    async def delete(self, category: str, key: str) -> bool:
        """Delete data from storage.

        Returns:
            True if deleted, False if not found
        """

    @abstractmethod
    async def list_keys(self, category: str) -> list[str]:
        """List all keys in a category."""

    @abstractmethod
    async def list_categories(self) -> list[str]:
        """List all categories."""

    @abstractmethod
    async def get_metadata(self, category: str, key: str) -> StorageMetadata | None:
        """Get metadata for a stored item."""

    @abstractmethod
    async def clear_category(self, category: str) -> int:
        """Clear all data in a category.

        Returns:
            Number of items deleted
        """

    @abstractmethod
    async def clear_all(self) -> int:
        """Clear all stored data.

        Returns:
            Number of items deleted
        """
