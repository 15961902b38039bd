"""
Durable string key-value storage used for the local session
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Optional

from core.logging_config import get_logger

logger = get_logger(__name__)


class KeyValueStore(ABC):
    """Abstract string key-value store"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent"""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value under a key"""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a key; removing an absent key is a no-op"""

    def set_many(self, values: Dict[str, str]) -> None:
        """Store several keys as one logical operation"""
        for key, value in values.items():
            self.set(key, value)

    def remove_many(self, keys: Iterable[str]) -> None:
        """Remove several keys as one logical operation"""
        for key in keys:
            self.remove(key)


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, lost on exit"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return set(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Store backed by a single JSON object on disk.

    Every write replaces the file atomically, and the batch operations
    write once, so a crash never leaves a partially applied batch.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._data = self._load()

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def remove(self, key: str) -> None:
        self.remove_many([key])

    def set_many(self, values: Dict[str, str]) -> None:
        updated = dict(self._data)
        updated.update(values)
        self._save(updated)

    def remove_many(self, keys: Iterable[str]) -> None:
        doomed = set(keys)
        updated = {k: v for k, v in self._data.items() if k not in doomed}
        if updated != self._data:
            self._save(updated)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable store file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring store file {self.path}: not a JSON object")
            return {}

        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: Dict[str, str]):
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".kv_", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        self._data = data
