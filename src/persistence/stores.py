"""
Durable stores for session snapshots.

Snapshots are plain JSON-compatible dicts keyed by a string (a session id,
or "manager" for the session manager). The engine treats every store as
best effort: failures surface as PersistenceError, which callers log.
"""

from __future__ import annotations

import copy
import json
import re
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

from src.core.errors import PersistenceError

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.\-]+$")


class DurableStore(Protocol):
    """Protocol for snapshot persistence backends."""

    def save(self, key: str, payload: dict[str, Any]) -> None:
        ...

    def load(self, key: str) -> dict[str, Any] | None:
        ...

    def delete(self, key: str) -> bool:
        ...

    def list_keys(self) -> list[str]:
        ...


class MemoryStore:
    """Process-local store, used in tests and when persistence is disabled."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def save(self, key: str, payload: dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(payload)

    def load(self, key: str) -> dict[str, Any] | None:
        payload = self._data.get(key)
        return copy.deepcopy(payload) if payload is not None else None

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def list_keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileStore:
    """
    Stores snapshots as JSON files.

    Files are named {key}.json inside the store directory. Writes go to a
    temporary file first and are renamed into place.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create snapshot directory {self.directory}: {e}") from e

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise PersistenceError(f"Invalid snapshot key: {key!r}")
        return self.directory / f"{key}.json"

    def save(self, key: str, payload: dict[str, Any]) -> None:
        """Save a snapshot to disk."""
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, default=str)
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to write snapshot {key}: {e}") from e

    def load(self, key: str) -> dict[str, Any] | None:
        """Load a snapshot by key, None if absent."""
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to read snapshot {key}: {e}") from e

    def delete(self, key: str) -> bool:
        """Delete a snapshot file."""
        path = self._path(key)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise PersistenceError(f"Failed to delete snapshot {key}: {e}") from e
        return True

    def list_keys(self) -> list[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))


def create_store(settings: Any) -> DurableStore:
    """Build the durable store selected in settings."""
    backend = settings.storage_backend
    if backend == "memory":
        return MemoryStore()
    if backend == "sql":
        from src.persistence.sql_store import SqlSnapshotStore

        if not settings.database_url:
            try:
                settings.data_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise PersistenceError(f"Cannot create data directory {settings.data_dir}: {e}") from e
        return SqlSnapshotStore(settings.get_database_url())

    logger.debug(f"Using JSON snapshot store at {settings.sessions_dir}")
    return JsonFileStore(settings.sessions_dir)
