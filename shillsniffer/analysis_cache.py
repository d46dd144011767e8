"""
Persisted cache of remote analysis verdicts.

Entries are keyed by author handle plus a short fingerprint of the post text so
near-identical posts from the same author are not sent to the model twice.
Collisions of the 32-bit fingerprint are accepted: a stale hit only costs a
slightly wrong cached verdict, never correctness of local scoring.
"""
from __future__ import annotations

import logging
import string
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from shillsniffer.models import AnalysisResult, CachedAnalysis, Confidence
from shillsniffer.storage import KeyValueStore

logger = logging.getLogger(__name__)

STORE_KEY = "analysis_cache"
MAX_CACHE_SIZE = 500
CACHE_TTL_SECONDS = 7 * 24 * 60 * 60
TOPIC_PREFIX_UNITS = 50

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _utf16_units(text: str) -> List[int]:
    data = text.encode("utf-16-le", "surrogatepass")
    return [int.from_bytes(data[i:i + 2], "little") for i in range(0, len(data), 2)]


def _prefix_units(text: str, count: int) -> str:
    data = text.encode("utf-16-le", "surrogatepass")[: count * 2]
    return data.decode("utf-16-le", "surrogatepass")


def hash_topic(text: str) -> str:
    """Rolling ``h * 31 + unit`` hash of the first 50 UTF-16 units, as unsigned base-36."""
    truncated = _prefix_units(text or "", TOPIC_PREFIX_UNITS).lower().strip()
    value = 0
    for unit in _utf16_units(truncated):
        value = ((value << 5) - value + unit) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 0x100000000
    return _to_base36(abs(value))


def cache_key(author_handle: str, text: str) -> str:
    return f"{(author_handle or '').lower()}:{hash_topic(text)}"


def cached_to_result(entry: CachedAnalysis) -> AnalysisResult:
    return AnalysisResult(
        confidence=entry.confidence,
        has_commercial_interest=entry.has_commercial_interest,
        is_disclosed=entry.is_disclosed,
        explanation=entry.explanation,
        business_connection=entry.business_connection,
    )


def _entry_to_dict(entry: CachedAnalysis) -> Dict[str, Any]:
    payload = entry.to_dict()
    payload["timestamp"] = entry.timestamp
    return payload


def _dict_to_entry(data: Dict[str, Any]) -> CachedAnalysis:
    try:
        confidence = Confidence(data.get("confidence"))
    except ValueError:
        confidence = Confidence.MEDIUM
    return CachedAnalysis(
        confidence=confidence,
        has_commercial_interest=bool(data.get("has_commercial_interest")),
        is_disclosed=bool(data.get("is_disclosed")),
        explanation=data.get("explanation") or "",
        business_connection=data.get("business_connection") or "",
        timestamp=float(data.get("timestamp", 0) or 0),
    )


class AnalysisCache:
    def __init__(
        self,
        store: KeyValueStore,
        max_entries: int = MAX_CACHE_SIZE,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()

    def _load_entries(self) -> Dict[str, Dict[str, Any]]:
        entries = self.store.get_value(STORE_KEY, {})
        return entries if isinstance(entries, dict) else {}

    def _is_valid(self, entry: Dict[str, Any], now: float) -> bool:
        return now - float(entry.get("timestamp", 0) or 0) < self.ttl_seconds

    def get_cached_result(self, author_handle: str, text: str) -> Optional[CachedAnalysis]:
        key = cache_key(author_handle, text)
        entry = self._load_entries().get(key)
        if entry is None:
            return None
        # Expired entries are left for prune_expired().
        if not self._is_valid(entry, self._clock()):
            logger.debug("Analysis cache expired: %s", key)
            return None
        logger.debug("Analysis cache hit: %s", key)
        return _dict_to_entry(entry)

    def cache_result(self, author_handle: str, text: str, result: AnalysisResult) -> CachedAnalysis:
        key = cache_key(author_handle, text)
        entry = CachedAnalysis(
            confidence=result.confidence,
            has_commercial_interest=result.has_commercial_interest,
            is_disclosed=result.is_disclosed,
            explanation=result.explanation,
            business_connection=result.business_connection,
            timestamp=self._clock(),
        )
        with self._lock:
            entries = self._load_entries()
            entries[key] = _entry_to_dict(entry)
            entries = self._prune_entries(entries)
            self.store.set_value(STORE_KEY, entries)
        logger.debug("Analysis cache stored: %s", key)
        return entry

    def _prune_entries(self, entries: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        overflow = len(entries) - self.max_entries
        if overflow <= 0:
            return entries
        oldest_first = sorted(entries.items(), key=lambda kv: float(kv[1].get("timestamp", 0) or 0))
        for key, _ in oldest_first[:overflow]:
            del entries[key]
        logger.debug("Analysis cache evicted %d old entries", overflow)
        return entries

    def prune_expired(self) -> int:
        """Delete every entry at or past the TTL. Returns how many were removed."""
        with self._lock:
            entries = self._load_entries()
            now = self._clock()
            removed = 0
            for key in list(entries.keys()):
                if not self._is_valid(entries[key], now):
                    del entries[key]
                    removed += 1
            if removed:
                self.store.set_value(STORE_KEY, entries)
                logger.info("Pruned %d expired analysis cache entries", removed)
        return removed

    def get_stats(self) -> Dict[str, Optional[int]]:
        entries = self._load_entries()
        if not entries:
            return {"count": 0, "oldest_age_days": None}
        oldest = min(float(entry.get("timestamp", 0) or 0) for entry in entries.values())
        return {
            "count": len(entries),
            "oldest_age_days": int((self._clock() - oldest) // (24 * 60 * 60)),
        }

    def clear(self) -> None:
        with self._lock:
            self.store.set_value(STORE_KEY, {})
        logger.info("Analysis cache cleared")
