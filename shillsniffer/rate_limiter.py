"""
Fixed-window call limiter for the remote analysis path.
"""
from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict

from shillsniffer.models import RateLimitResult

MAX_CALLS_PER_WINDOW = 10
WINDOW_SECONDS = 60.0


class RateLimiter:
    def __init__(
        self,
        max_calls: int = MAX_CALLS_PER_WINDOW,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._calls: Deque[float] = deque()
        self._lock = threading.Lock()

    def _expire(self, now: float) -> None:
        while self._calls and now - self._calls[0] > self.window_seconds:
            self._calls.popleft()

    def check(self) -> RateLimitResult:
        """Record a call if the window has room, otherwise report how long to wait."""
        with self._lock:
            now = self._clock()
            self._expire(now)
            if len(self._calls) >= self.max_calls:
                wait = math.ceil(self._calls[0] + self.window_seconds - now)
                return RateLimitResult(allowed=False, wait_seconds=max(1, wait))
            self._calls.append(now)
            return RateLimitResult(allowed=True)

    def can_proceed(self) -> bool:
        with self._lock:
            self._expire(self._clock())
            return len(self._calls) < self.max_calls

    def record(self) -> None:
        with self._lock:
            self._calls.append(self._clock())

    def usage(self) -> Dict[str, float]:
        with self._lock:
            self._expire(self._clock())
            return {
                "calls_in_window": len(self._calls),
                "max_calls": self.max_calls,
                "window_seconds": self.window_seconds,
            }

    def reset(self) -> None:
        with self._lock:
            self._calls.clear()
