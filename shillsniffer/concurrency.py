"""
Per-key de-duplication of in-flight calls.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """
    Concurrent ``do(key, fn)`` calls for the same key share one execution of
    ``fn``. Its result, or the exception it raised, is handed to every caller.
    The key is released once the call finishes, so a later call runs again.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._inflight: Dict[Hashable, Future] = {}

    def do(self, key: Hashable, fn: Callable[[], T], timeout: Optional[float] = None) -> T:
        with self._lock:
            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[key] = future

        if not leader:
            logger.debug("Joining in-flight call for %s", key)
            return future.result(timeout=timeout)

        try:
            result = fn()
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._inflight.pop(key, None)

    def in_flight(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._inflight
