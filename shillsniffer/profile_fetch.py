"""
On-demand author profile lookups.

Each handle is looked up at most once per session: after the first attempt,
whatever its outcome, the handle is remembered and later calls return ``None``
until ``force=True`` is passed or ``reset()`` is called.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable, Dict, Optional, Set

from shillsniffer.bio_cache import BioCache
from shillsniffer.channel import RequestChannel
from shillsniffer.concurrency import SingleFlight
from shillsniffer.extraction import ObservedUser, parse_profile_result
from shillsniffer.models import AuthorMetadata, UserBioData, VerifiedType, normalize_handle

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_SECONDS = 10.0
PROFILE_REQUEST_KIND = "fetch-profile"

ProfileLookup = Callable[[str], Optional[ObservedUser]]


def user_from_dict(data: Dict[str, Any], fallback_handle: str = "") -> ObservedUser:
    handle = data.get("handle") or fallback_handle
    verified = data.get("verified_type")
    return ObservedUser(
        handle=handle,
        name=data.get("name") or handle,
        bio=data.get("bio") or "",
        metadata=AuthorMetadata(
            verified_type=VerifiedType(verified) if verified else None,
            followers_count=data.get("followers_count"),
            professional_category=data.get("professional_category"),
            profile_url=data.get("profile_url"),
            affiliate_label=data.get("affiliate_label"),
        ),
    )


def user_from_reply(data: Dict[str, Any], fallback_handle: str = "") -> Optional[ObservedUser]:
    """
    Reply data is either a flat profile dict or the raw ``data.user.result``
    payload, optionally still wrapped in ``{"data": {"user": {"result": ...}}}``.
    """
    inner = data.get("data")
    if isinstance(inner, dict):
        return parse_profile_result((inner.get("user") or {}).get("result"))
    if "legacy" in data or "__typename" in data:
        return parse_profile_result(data)
    return user_from_dict(data, fallback_handle)


def channel_lookup(channel: RequestChannel) -> ProfileLookup:
    """Adapt a ``RequestChannel`` whose far side answers ``fetch-profile`` requests."""

    def lookup(handle: str) -> Optional[ObservedUser]:
        reply = channel.request(PROFILE_REQUEST_KIND, {"handle": handle})
        if reply is None:
            return None
        if not reply.success or not reply.data:
            logger.info("Profile fetch failed for @%s: %s", handle, reply.error)
            return None
        return user_from_reply(reply.data, handle)

    return lookup


class ProfileFetcher:
    def __init__(
        self,
        lookup: ProfileLookup,
        bio_cache: BioCache,
        timeout_seconds: float = FETCH_TIMEOUT_SECONDS,
        max_workers: int = 4,
    ) -> None:
        self._lookup = lookup
        self.bio_cache = bio_cache
        self.timeout_seconds = timeout_seconds
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="profile-fetch")
        self._flight: SingleFlight[Optional[UserBioData]] = SingleFlight()
        self._attempted: Set[str] = set()
        self._lock = threading.Lock()

    def has_attempted(self, handle: str) -> bool:
        with self._lock:
            return normalize_handle(handle) in self._attempted

    def fetch(self, handle: str, force: bool = False) -> Optional[UserBioData]:
        key = normalize_handle(handle)
        if not key:
            return None
        with self._lock:
            if force:
                self._attempted.discard(key)
            elif key in self._attempted:
                logger.debug("Already attempted fetch for @%s, skipping", key)
                return None
            self._attempted.add(key)
        return self._flight.do(key, lambda: self._fetch_once(key))

    def _fetch_once(self, handle: str) -> Optional[UserBioData]:
        future = self._executor.submit(self._lookup, handle)
        try:
            user = future.result(timeout=self.timeout_seconds)
        except FutureTimeout:
            future.cancel()
            logger.warning("Profile fetch timed out for @%s", handle)
            return None
        except Exception as exc:
            logger.warning("Profile fetch failed for @%s: %s", handle, exc)
            return None
        if user is None:
            return None
        return self.bio_cache.cache_bio(user.handle or handle, user.name, user.bio, user.metadata)

    def reset(self) -> None:
        with self._lock:
            self._attempted.clear()

    def close(self) -> None:
        self._executor.shutdown(wait=False)
