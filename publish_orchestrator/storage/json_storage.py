"""JSON file-based storage implementation."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from publish_orchestrator.exceptions import StorageError
from publish_orchestrator.storage.base import StorageBackend, StorageMetadata
from publish_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)


class JsonStorage(StorageBackend):
    """JSON file-based storage backend.

    Stores data in JSON files organized by category directories.
    Structure:
        base_dir/
        ├── sessions/
        │   └── blog.json
        └── tasks/
            └── batch_20240101_120000_1a2b3c4d.json
    """

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _safe_name(name: str) -> str:
        return name.replace("/", "_").replace("\\", "_")

    def _get_category_path(self, category: str) -> Path:
        return self.base_dir / self._safe_name(category)

    def _get_file_path(self, category: str, key: str) -> Path:
        return self._get_category_path(category) / f"{self._safe_name(key)}.json"

    async def _read_envelope(self, file_path: Path) -> dict[str, Any] | None:
        try:
            async with aiofiles.open(file_path, encoding="utf-8") as f:
                return json.loads(await f.read())
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in {file_path}: {e}")
            return None

    async def save(self, category: str, key: str, data: Any) -> None:
        """Save data to a JSON file, preserving the original created_at."""
        file_path = self._get_file_path(category, key)
        now = datetime.now().isoformat()
        created_at = now

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)

            if file_path.exists():
                existing = await self._read_envelope(file_path)
                if existing and "_metadata" in existing:
                    created_at = existing["_metadata"].get("created_at", now)

            stored_data = {
                "_metadata": {
                    "key": key,
                    "category": category,
                    "created_at": created_at,
                    "updated_at": now,
                },
                "data": data,
            }

            async with aiofiles.open(file_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(stored_data, indent=2, ensure_ascii=False, default=str))

            logger.debug(f"Saved {category}/{key}")

        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to save {category}/{key}: {e}") from e

    async def load(self, category: str, key: str) -> Any | None:
        file_path = self._get_file_path(category, key)
        if not file_path.exists():
            return None

        try:
            stored_data = await self._read_envelope(file_path)
        except OSError as e:
            logger.error(f"Failed to load {category}/{key}: {e}")
            return None

        if stored_data is None:
            return None
        return stored_data.get("data")

    async def exists(self, category: str, key: str) -> bool:
        return self._get_file_path(category, key).exists()

    async def delete(self, category: str, key: str) -> bool:
        file_path = self._get_file_path(category, key)
        if not file_path.exists():
            return False

        try:
            await aiofiles.os.remove(file_path)
        except OSError as e:
            logger.error(f"Failed to delete {category}/{key}: {e}")
            return False

        logger.debug(f"Deleted {category}/{key}")
        self._remove_if_empty(self._get_category_path(category))
        return True

    async def list_keys(self, category: str) -> list[str]:
        category_path = self._get_category_path(category)
        if not category_path.exists():
            return []

        return sorted(
            p.stem for p in category_path.iterdir() if p.is_file() and p.suffix == ".json"
        )

    async def list_categories(self) -> list[str]:
        return sorted(
            p.name for p in self.base_dir.iterdir() if p.is_dir() and not p.name.startswith(".")
        )

    async def get_metadata(self, category: str, key: str) -> StorageMetadata | None:
        file_path = self._get_file_path(category, key)
        if not file_path.exists():
            return None

        stored_data = await self._read_envelope(file_path)
        if stored_data is None:
            return None

        metadata = stored_data.get("_metadata", {})
        fallback = datetime.fromtimestamp(file_path.stat().st_mtime).isoformat()
        return StorageMetadata(
            key=key,
            category=category,
            created_at=datetime.fromisoformat(metadata.get("created_at", fallback)),
            updated_at=datetime.fromisoformat(metadata.get("updated_at", fallback)),
            size_bytes=file_path.stat().st_size,
        )

    async def clear_category(self, category: str) -> int:
        category_path = self._get_category_path(category)
        if not category_path.exists():
            return 0

        count = 0
        for file_path in list(category_path.iterdir()):
            if file_path.is_file() and file_path.suffix == ".json":
                try:
                    await aiofiles.os.remove(file_path)
                    count += 1
                except OSError as e:
                    logger.error(f"Failed to delete {file_path}: {e}")

        self._remove_if_empty(category_path)
        logger.info(f"Cleared {count} items from category '{category}'")
        return count

    async def clear_all(self) -> int:
        total_count = 0
        for category in await self.list_categories():
            total_count += await self.clear_category(category)

        logger.info(f"Cleared total of {total_count} items")
        return total_count

    @staticmethod
    def _remove_if_empty(path: Path) -> None:
        if path.exists() and not any(path.iterdir()):
            path.rmdir()
