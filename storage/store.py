"""
Per-session key-value store for JSON blobs.

Both tools persist their state as JSON blobs under fixed string keys, one
namespace per session. The store has two backends:

- JsonFileStore: one file per key under DATA_DIR/<session_id>/<key>.json
  (default, used when DATABASE_URL is not set)
- DatabaseStore: the kv_entries table from storage.db (used when DATABASE_URL is set)

Blobs are always replaced whole; there is no partial update.
"""

import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional

from api.config import StorageConfig

from .db import db_delete_value, db_get_value, db_is_enabled, db_list_keys, db_set_value

logger = logging.getLogger(__name__)

_SAFE_NAME = re.compile(r"[A-Za-z0-9_-][A-Za-z0-9_.-]*")


def is_safe_name(value: str) -> bool:
    """Letters, digits, "_", "-" and "." only, not starting with "."."""
    return bool(_SAFE_NAME.fullmatch(value))


def _safe_name(value: str) -> str:
    """
    Check that a session id or key can be used as a file or directory name.

    Each session id maps to its own directory; unsafe names raise instead of being rewritten.
    """
    if not is_safe_name(value):
        raise ValueError(f"Invalid storage name: {value!r}")
    return value


class KeyValueStore(ABC):
    """Abstract key-value store holding raw JSON text per (session, key)."""

    @abstractmethod
    def get_raw(self, session_id: str, key: str) -> Optional[str]:
        """Return the stored text, or None if the key is missing."""

    @abstractmethod
    def set_raw(self, session_id: str, key: str, value: str) -> None:
        """Replace the stored text for a key."""

    @abstractmethod
    def delete(self, session_id: str, key: str) -> None:
        """Delete a key. Missing keys are ignored."""

    @abstractmethod
    def keys(self, session_id: str) -> List[str]:
        """List stored keys for a session."""

    def load_json(self, session_id: str, key: str, default: Any = None) -> Any:
        """
        Load and parse a JSON blob.

        Missing keys, unreadable JSON and JSON null all return the default.
        """
        raw = self.get_raw(session_id, key)
        if not raw:
            return default
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.debug("Stored value for %s/%s is not valid JSON, using default: %s", session_id, key, e)
            return default
        return default if parsed is None else parsed

    def save_json(self, session_id: str, key: str, value: Any) -> None:
        """Serialize a value to JSON and store it."""
        self.set_raw(session_id, key, json.dumps(value, ensure_ascii=False))


class JsonFileStore(KeyValueStore):
    """File-backed store: DATA_DIR/<session_id>/<key>.json."""

    def __init__(self, root: Optional[Path] = None) -> None:
        self.root = Path(root) if root is not None else StorageConfig.get_data_dir()

    def _path(self, session_id: str, key: str) -> Path:
        return self.root / _safe_name(session_id) / f"{_safe_name(key)}.json"

    def get_raw(self, session_id: str, key: str) -> Optional[str]:
        path = self._path(session_id, key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_raw(self, session_id: str, key: str, value: str) -> None:
        path = self._path(session_id, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a temp file first so readers never see a half-written blob
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, session_id: str, key: str) -> None:
        self._path(session_id, key).unlink(missing_ok=True)

    def keys(self, session_id: str) -> List[str]:
        session_dir = self.root / _safe_name(session_id)
        if not session_dir.exists():
            return []
        return sorted(p.stem for p in session_dir.glob("*.json"))


class DatabaseStore(KeyValueStore):
    """SQL-backed store using the kv_entries table."""

    def get_raw(self, session_id: str, key: str) -> Optional[str]:
        return db_get_value(session_id, key)

    def set_raw(self, session_id: str, key: str, value: str) -> None:
        db_set_value(session_id, key, value)

    def delete(self, session_id: str, key: str) -> None:
        db_delete_value(session_id, key)

    def keys(self, session_id: str) -> List[str]:
        return db_list_keys(session_id)


_STORE: Optional[KeyValueStore] = None


def get_store() -> KeyValueStore:
    """
    Get the process-wide store.

    Uses the database store if DATABASE_URL is set, otherwise the JSON file store.
    """
    global _STORE
    if _STORE is None:
        _STORE = DatabaseStore() if db_is_enabled() else JsonFileStore()
    return _STORE


def set_store(store: Optional[KeyValueStore]) -> None:
    """Replace the process-wide store (None resets to automatic selection)."""
    global _STORE
    _STORE = store
