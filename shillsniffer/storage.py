"""
Key-value persistence for user settings and the analysis cache.

Last write wins; there are no transactions. ``JsonFileStore`` keeps the whole
document in one versioned JSON file that is rewritten on every update.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class StoreError(RuntimeError):
    """Raised when the backing file cannot be written."""


class KeyValueStore(Protocol):
    def get_value(self, key: str, default: Any = None) -> Any:
        ...

    def set_value(self, key: str, value: Any) -> None:
        ...


class MemoryStore:
    """Process-local store. Values are deep-copied on the way in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})
        self._lock = threading.Lock()

    def get_value(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set_value(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)


class JsonFileStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def get_value(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._load().get(key, default)

    def set_value(self, key: str, value: Any) -> None:
        with self._lock:
            values = self._load()
            values[key] = value
            self._write(values)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            blob = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable store %s: %s", self.path, exc)
            return {}
        if not isinstance(blob, dict):
            return {}
        values = blob.get("values", {})
        return values if isinstance(values, dict) else {}

    def _write(self, values: Dict[str, Any]) -> None:
        payload = {"values": values, "version": STORE_VERSION}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=".store-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, default=str)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            logger.error("Persisting store %s failed: %s", self.path, exc)
            raise StoreError(f"Could not write {self.path}: {exc}") from exc
