"""
Request/response messaging across an isolation boundary.

The sender only knows how to push a message out; replies come back through
``deliver`` and are matched to their waiter by correlation id. A waiter that
hears nothing before its timeout resolves to ``None``.
"""
from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass
class ChannelMessage:
    request_id: str
    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChannelReply:
    request_id: str
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class _Waiter:
    def __init__(self) -> None:
        self.event = threading.Event()
        self.reply: Optional[ChannelReply] = None


class RequestChannel:
    def __init__(
        self,
        send: Callable[[ChannelMessage], None],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._send = send
        self.timeout_seconds = timeout_seconds
        self._waiters: Dict[str, _Waiter] = {}
        self._lock = threading.Lock()
        self._counter = itertools.count(1)

    def _next_id(self, kind: str) -> str:
        return f"{kind}-{int(time.time() * 1000)}-{next(self._counter)}"

    def request(self, kind: str, payload: Dict[str, Any], timeout: Optional[float] = None) -> Optional[ChannelReply]:
        request_id = self._next_id(kind)
        wait_for = self.timeout_seconds if timeout is None else timeout
        waiter = _Waiter()
        with self._lock:
            self._waiters[request_id] = waiter
        try:
            self._send(ChannelMessage(request_id=request_id, kind=kind, payload=payload))
            if not waiter.event.wait(wait_for):
                logger.warning("No reply to %s within %.1fs", request_id, wait_for)
                return None
            return waiter.reply
        finally:
            with self._lock:
                self._waiters.pop(request_id, None)

    def deliver(self, reply: ChannelReply) -> bool:
        """Hand a reply to its waiter. Returns False for unknown or already-finished ids."""
        with self._lock:
            waiter = self._waiters.get(reply.request_id)
        if waiter is None:
            logger.debug("Dropping reply for unknown request %s", reply.request_id)
            return False
        waiter.reply = reply
        waiter.event.set()
        return True

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._waiters)
