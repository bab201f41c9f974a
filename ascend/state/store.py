"""
Game storage abstraction.

Separates persistence from domain logic for testability. Records are plain
dicts grouped into named collections, each keyed by one field and
optionally indexed by others.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from .errors import PersistenceError

logger = logging.getLogger(__name__)


# Collection names
PLAYER = "player"
QUESTS = "quests"
SKILLS = "skills"
STATS = "stats"
HISTORY = "history"
KNOWLEDGE_SOURCES = "knowledgeSources"
ACHIEVEMENTS = "achievements"
JOURNAL = "journal"
PENDING_QUESTS = "pendingQuests"

# collection -> (key field, indexed fields)
COLLECTIONS: dict[str, tuple[str, tuple[str, ...]]] = {
    PLAYER: ("id", ()),
    QUESTS: ("id", ("status", "category")),
    SKILLS: ("id", ()),
    STATS: ("name", ()),
    HISTORY: ("id", ("timestamp", "type")),
    KNOWLEDGE_SOURCES: ("id", ("domain", "author")),
    ACHIEVEMENTS: ("id", ()),
    JOURNAL: ("id", ("timestamp", "analyzed")),
    PENDING_QUESTS: ("id", ("priority", "ready_to_deliver", "timestamp")),
}


def _key_field(collection: str) -> str:
    if collection not in COLLECTIONS:
        raise PersistenceError(f"Unknown collection: {collection}")
    return COLLECTIONS[collection][0]


def _record_key(collection: str, record: dict) -> str:
    key_field = _key_field(collection)
    if key_field not in record:
        raise PersistenceError(
            f"Record for {collection} is missing key field '{key_field}'"
        )
    return str(record[key_field])


def _check_index(collection: str, index_name: str) -> None:
    if index_name not in COLLECTIONS[collection][1]:
        raise PersistenceError(f"{collection} has no index '{index_name}'")


@runtime_checkable
class GameStore(Protocol):
    """
    Abstract key/object store for game records.

    Implementations:
    - JsonGameStore: File-based persistence (production)
    - MemoryGameStore: In-memory storage (testing)
    """

    def get(self, collection: str, key: str) -> dict | None:
        """Load a record by key. Returns None if not found."""
        ...

    def get_all(self, collection: str) -> list[dict]:
        """Load every record in a collection."""
        ...

    def put(self, collection: str, record: dict) -> None:
        """Insert or replace a record."""
        ...

    def get_by_index(self, collection: str, index_name: str, value) -> list[dict]:
        """Load records whose indexed field equals value."""
        ...

    def delete(self, collection: str, key: str) -> bool:
        """Delete a record. Returns True if deleted."""
        ...


class MemoryGameStore:
    """
    In-memory game storage for testing.

    No file I/O - all data lives in memory.
    """

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {
            name: {} for name in COLLECTIONS
        }

    def get(self, collection: str, key: str) -> dict | None:
        _key_field(collection)
        record = self.collections[collection].get(str(key))
        return dict(record) if record is not None else None

    def get_all(self, collection: str) -> list[dict]:
        _key_field(collection)
        return [dict(r) for r in self.collections[collection].values()]

    def put(self, collection: str, record: dict) -> None:
        key = _record_key(collection, record)
        self.collections[collection][key] = dict(record)

    def get_by_index(self, collection: str, index_name: str, value) -> list[dict]:
        _key_field(collection)
        _check_index(collection, index_name)
        return [
            dict(r) for r in self.collections[collection].values()
            if r.get(index_name) == value
        ]

    def delete(self, collection: str, key: str) -> bool:
        _key_field(collection)
        if str(key) in self.collections[collection]:
            del self.collections[collection][str(key)]
            return True
        return False

    def clear(self) -> None:
        """Clear all collections (test utility)."""
        for records in self.collections.values():
            records.clear()


class JsonGameStore:
    """
    File-based game storage using JSON.

    One file per collection, holding a key -> record mapping.

    Features:
    - Automatic backup on save
    - Corrupt files surface as PersistenceError instead of silently resetting
    """

    def __init__(self, data_dir: Path | str = "data"):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, collection: str) -> Path:
        _key_field(collection)
        return self.data_dir / f"{collection}.json"

    def _load(self, collection: str) -> dict[str, dict]:
        path = self._path(collection)
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Could not read {path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Malformed collection file {path}")
        return data

    def _save(self, collection: str, records: dict[str, dict]) -> None:
        path = self._path(collection)
        try:
            # Backup previous save
            if path.exists():
                backup = path.with_suffix(".json.bak")
                backup.write_text(path.read_text(encoding="utf-8"), encoding="utf-8")

            path.write_text(
                json.dumps(records, indent=2, default=_json_default),
                encoding="utf-8",
            )
        except OSError as e:
            raise PersistenceError(f"Could not write {path}: {e}") from e

    def get(self, collection: str, key: str) -> dict | None:
        return self._load(collection).get(str(key))

    def get_all(self, collection: str) -> list[dict]:
        return list(self._load(collection).values())

    def put(self, collection: str, record: dict) -> None:
        key = _record_key(collection, record)
        records = self._load(collection)
        records[key] = record
        self._save(collection, records)

    def get_by_index(self, collection: str, index_name: str, value) -> list[dict]:
        _check_index(collection, index_name)
        return [
            r for r in self._load(collection).values()
            if r.get(index_name) == value
        ]

    def delete(self, collection: str, key: str) -> bool:
        records = self._load(collection)
        if str(key) not in records:
            return False
        del records[str(key)]
        self._save(collection, records)
        return True


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
