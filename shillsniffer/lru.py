"""
Fixed-capacity cache with least-recently-used eviction.

TTL handling is left to callers (see ``bio_cache``); this layer only bounds memory.
"""
from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Generic, Iterator, List, Optional, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    def __init__(self, max_size: int) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._store: "OrderedDict[K, V]" = OrderedDict()
        self._lock = threading.RLock()

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            if key not in self._store:
                return None
            self._store.move_to_end(key)
            return self._store[key]

    def set(self, key: K, value: V) -> None:
        with self._lock:
            if key in self._store:
                self._store.move_to_end(key)
            self._store[key] = value
            while len(self._store) > self.max_size:
                self._store.popitem(last=False)

    def has(self, key: K) -> bool:
        """Membership test that does not refresh recency."""
        with self._lock:
            return key in self._store

    def delete(self, key: K) -> bool:
        with self._lock:
            if key not in self._store:
                return False
            del self._store[key]
            return True

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    @property
    def size(self) -> int:
        return len(self._store)

    def keys(self) -> List[K]:
        """Keys ordered from least to most recently used."""
        with self._lock:
            return list(self._store.keys())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return self.has(key)  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys())
