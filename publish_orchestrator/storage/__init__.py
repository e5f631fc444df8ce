"""Storage module for session state and task snapshots."""

from publish_orchestrator.exceptions import StorageError
from publish_orchestrator.storage.base import StorageBackend, StorageMetadata
from publish_orchestrator.storage.json_storage import JsonStorage
from publish_orchestrator.storage.session import SessionStore

__all__ = [
    "StorageBackend",
    "StorageMetadata",
    "StorageError",
    "JsonStorage",
    "SessionStore",
]
