"""
String-keyed, JSON-valued durable storage.

Mirrors a browser key-value store: values are strings, helpers encode JSON.
Reads of missing or corrupt values fall back to a default and never raise.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, Optional

log = logging.getLogger(__name__)


class KeyValueStore:
    """Base interface; subclasses implement the raw string operations."""

    def __init__(self):
        self._lock = RLock()

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            log.warning(f"Corrupt value under '{key}': {e}")
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, ensure_ascii=False))

    def update_json(self, key: str, fn: Callable[[Any], Any], default: Any = None) -> Any:
        """Read, transform and write back one value while holding the store lock."""
        with self._lock:
            value = fn(self.get_json(key, default))
            self.set_json(key, value)
            return value


class MemoryStore(KeyValueStore):
    """Process-local store, used in tests and one-off runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__()
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """
    Store backed by a single JSON object on disk.

    Every write is flushed immediately (temp file + atomic replace); every read
    goes back to the file, so separate processes observe each other's writes.
    """

    def __init__(self, path: "str | Path"):
        super().__init__()
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning(f"Unreadable store {self.path}: {e}; treating as empty")
            return {}
        if not isinstance(data, dict):
            log.warning(f"Store {self.path} is not a JSON object; treating as empty")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp, self.path)
        except Exception:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = str(value)
            self._save(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)
