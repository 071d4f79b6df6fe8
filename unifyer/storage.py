"""
Persistent storage for Unifyer Calendar.

Abstract base class and implementations for storing record collections.
State is kept as independent collections (events, subscriptions, exams) of
flat records keyed by an opaque string id, namespaced by owner (the user or
session the data belongs to). Every write is flushed before returning.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


EVENTS = "events"
SUBSCRIPTIONS = "subscriptions"
EXAMS = "exams"


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    Implementations must handle persistence (JSON, SQLite, etc).
    """

    @abstractmethod
    def load_collection(self, owner: str, name: str) -> list[dict]:
        """Load all records of a collection (empty list if none)."""
        pass

    @abstractmethod
    def save_collection(self, owner: str, name: str, records: list[dict]) -> None:
        """Replace a collection with the given records."""
        pass

    @abstractmethod
    def list_collections(self, owner: str) -> list[str]:
        """List collection names holding data for an owner."""
        pass

    def close(self) -> None:
        """Release resources. Writes are already flushed."""
        pass


class MemoryStorage(StorageBackend):
    """Storage that lives only as long as the process. Used for tests."""

    def __init__(self):
        self._data: dict[tuple[str, str], list[dict]] = {}

    def load_collection(self, owner: str, name: str) -> list[dict]:
        # Copies, so callers cannot mutate stored state in place
        return [dict(r) for r in self._data.get((owner, name), [])]

    def save_collection(self, owner: str, name: str, records: list[dict]) -> None:
        self._data[(owner, name)] = [dict(r) for r in records]

    def list_collections(self, owner: str) -> list[str]:
        return sorted(name for (o, name) in self._data if o == owner)


class JsonStorage(StorageBackend):
    """
    JSON file-based storage.

    Structure:
    - {storage_dir}/{owner}/{collection}.json
    """

    def __init__(self, storage_dir: Path):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Initialized JSON storage at %s", self.storage_dir)

    @staticmethod
    def _safe_name(name: str) -> str:
        """Convert an owner or collection name to a safe path component."""
        return name.replace(":", "_").replace("/", "_").replace("\\", "_")

    def _collection_file(self, owner: str, name: str) -> Path:
        return self.storage_dir / self._safe_name(owner) / (self._safe_name(name) + ".json")

    def load_collection(self, owner: str, name: str) -> list[dict]:
        file_path = self._collection_file(owner, name)
        if not file_path.exists():
            return []

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Error loading %s for %s: %s", name, owner, e)
            return []

        records = data.get("records", []) if isinstance(data, dict) else []
        return [r for r in records if isinstance(r, dict)]

    def save_collection(self, owner: str, name: str, records: list[dict]) -> None:
        file_path = self._collection_file(owner, name)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "collection": name,
            "updated": datetime.now().isoformat(),
            "records": records,
        }

        tmp_path = file_path.with_suffix(".json.tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, file_path)
        logger.debug("Saved %d %s for %s", len(records), name, owner)

    def list_collections(self, owner: str) -> list[str]:
        owner_dir = self.storage_dir / self._safe_name(owner)
        if not owner_dir.is_dir():
            return []
        return sorted(f.stem for f in owner_dir.glob("*.json"))


def get_default_storage_dir() -> Path:
    """Get the default storage directory respecting XDG."""
    xdg_data = os.environ.get('XDG_DATA_HOME', os.path.expanduser('~/.local/share'))
    return Path(xdg_data) / 'unifyer-calendar' / 'storage'


def create_storage_backend(storage_dir: Optional[Path] = None) -> StorageBackend:
    """Factory function to create a storage backend."""
    if storage_dir is None:
        storage_dir = get_default_storage_dir()

    return JsonStorage(storage_dir)
