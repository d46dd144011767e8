"""
Memory-only cache of recently observed author bios and profile metadata.

Entries expire after ``ttl_seconds`` so a user who edits or deletes their bio is
re-fetched instead of being scored against stale text forever.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional

from shillsniffer.lru import LRUCache
from shillsniffer.models import AuthorMetadata, UserBioData, VerifiedType, normalize_handle

logger = logging.getLogger(__name__)

BIO_CACHE_LIMIT = 500
BIO_CACHE_TTL_SECONDS = 30 * 60


class BioCache:
    def __init__(
        self,
        max_entries: int = BIO_CACHE_LIMIT,
        ttl_seconds: float = BIO_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: LRUCache[str, UserBioData] = LRUCache(max_entries)

    def cache_bio(
        self,
        handle: str,
        name: str,
        bio: str,
        metadata: Optional[AuthorMetadata] = None,
    ) -> UserBioData:
        key = normalize_handle(handle)
        entry = UserBioData(
            handle=key,
            name=name,
            bio=bio or "",
            metadata=metadata or AuthorMetadata(),
            cached_at=self._clock(),
        )
        self._entries.set(key, entry)
        logger.debug("Cached bio for @%s%s: %r", key, _describe(entry.metadata), entry.bio[:50])
        return entry

    def get_bio(self, handle: str) -> Optional[str]:
        entry = self.get_user_data(handle)
        if entry is None:
            return None
        # An empty bio means "unknown", not "known to be empty".
        return entry.bio or None

    def get_user_data(self, handle: str) -> Optional[UserBioData]:
        key = normalize_handle(handle)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.cached_at > self.ttl_seconds:
            self._entries.delete(key)
            logger.debug("Bio for @%s expired", key)
            return None
        return entry

    def get_stats(self) -> Dict[str, object]:
        handles: List[str] = self._entries.keys()
        return {"count": len(handles), "handles": handles}

    def clear(self) -> None:
        self._entries.clear()


def _describe(metadata: AuthorMetadata) -> str:
    extras = []
    if metadata.verified_type and metadata.verified_type != VerifiedType.NONE:
        extras.append(metadata.verified_type.value)
    if metadata.followers_count:
        extras.append(f"{metadata.followers_count / 1000:.0f}K followers")
    if metadata.affiliate_label:
        extras.append(metadata.affiliate_label)
    return f" [{', '.join(extras)}]" if extras else ""
