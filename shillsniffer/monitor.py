"""
Feed-level orchestration: score posts as they appear, keep the working set,
rescore when an author's bio shows up late, and hand flagged posts to remote
analysis on request.

Local verdicts only ever move up. A remote verdict replaces the local one and
later local rescoring no longer publishes over it.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from shillsniffer.analyzer import RemoteAnalyzer
from shillsniffer.bio_cache import BioCache
from shillsniffer.detectors import reply_has_promotional_signals
from shillsniffer.extraction import ObservedUser, harvest_users
from shillsniffer.lru import LRUCache
from shillsniffer.models import (
    AnalysisResult,
    AnalyzeRequest,
    CONFIDENCE_RANK,
    Confidence,
    Post,
    PostType,
    ScoredHeuristicResult,
    normalize_handle,
)
from shillsniffer.profile_fetch import ProfileFetcher
from shillsniffer.rate_limiter import RateLimiter
from shillsniffer.scoring import analyze_with_score, indicator_summary
from shillsniffer.self_reply import (
    analyze_self_replies,
    apply_self_reply_after_scoring,
    apply_self_reply_before_scoring,
)

logger = logging.getLogger(__name__)

POST_CACHE_SIZE = 200
SCORE_CACHE_SIZE = 200
PREFETCH_CALLS = 5
PREFETCH_WINDOW_SECONDS = 10

SOURCE_LOCAL = "local"
SOURCE_REMOTE = "remote"
SOURCE_CACHED = "cached"
SOURCE_ERROR = "error"
SOURCE_PASSIVE = "passive"


def _rank(confidence: Optional[Confidence]) -> int:
    return CONFIDENCE_RANK[confidence] if confidence is not None else -1


@dataclass
class Verdict:
    post_id: str
    source: str
    confidence: Optional[Confidence] = None
    reasons: List[str] = field(default_factory=list)
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None

    @property
    def is_remote(self) -> bool:
        return self.source in (SOURCE_REMOTE, SOURCE_CACHED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "post_id": self.post_id,
            "source": self.source,
            "confidence": self.confidence.value if self.confidence else None,
            "reasons": list(self.reasons),
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }


class PostMonitor:
    def __init__(
        self,
        bio_cache: BioCache,
        analyzer: Optional[RemoteAnalyzer] = None,
        profile_fetcher: Optional[ProfileFetcher] = None,
        prefetch_limiter: Optional[RateLimiter] = None,
        on_verdict: Optional[Callable[[Verdict], None]] = None,
        post_cache_size: int = POST_CACHE_SIZE,
        score_cache_size: int = SCORE_CACHE_SIZE,
        executor: Optional[Executor] = None,
        show_passive_indicators: bool = True,
    ) -> None:
        self.bio_cache = bio_cache
        self.analyzer = analyzer
        self.profile_fetcher = profile_fetcher
        self.prefetch_limiter = prefetch_limiter or RateLimiter(PREFETCH_CALLS, PREFETCH_WINDOW_SECONDS)
        self.on_verdict = on_verdict
        self._executor = executor
        self.show_passive_indicators = show_passive_indicators
        self.posts: LRUCache[str, Post] = LRUCache(post_cache_size)
        self.scores: LRUCache[str, ScoredHeuristicResult] = LRUCache(score_cache_size)
        self.verdicts: LRUCache[str, Verdict] = LRUCache(score_cache_size)
        self._needs_bio: Dict[str, List[str]] = {}
        self._prefetching: set = set()
        self._lock = threading.RLock()

    # -- scoring -----------------------------------------------------------

    def _bio_for(self, post: Post) -> Optional[str]:
        return post.author.bio or self.bio_cache.get_bio(post.author.handle)

    def handle_post(self, post: Post, self_replies: Iterable[Post] = ()) -> Optional[ScoredHeuristicResult]:
        """Score a newly seen post. Returns the stored score, or None when nothing was flagged."""
        if post.post_type == PostType.REPOST:
            return None

        bio = self._bio_for(post)
        handle = post.author.handle
        if post.post_type == PostType.REPLY and not reply_has_promotional_signals(post.text, bio, handle):
            logger.debug("Skipping conversational reply %s from @%s", post.id, normalize_handle(handle))
            return None

        replies = list(self_replies)
        scored = analyze_with_score(post.text, post.author.name, handle, bio, post.post_type)

        inspect_replies = post.post_type in (PostType.ORIGINAL, PostType.QUOTE) and bool(replies)
        if inspect_replies and not scored.has_indicators:
            scored = apply_self_reply_before_scoring(scored, analyze_self_replies(post, replies, bio))

        previous = self.scores.get(post.id)
        if previous is not None and scored.score <= previous.score:
            # Seen before with a better score; only self-replies may still add to it.
            logger.debug("Post %s already scored %d, keeping it over %d", post.id, previous.score, scored.score)
            if inspect_replies:
                return self.inspect_self_replies(post.id, replies) or previous
            return previous

        if not scored.has_indicators:
            return None

        logger.info(
            "Flagged post %s by @%s (%s): score=%d confidence=%s",
            post.id, normalize_handle(handle), post.post_type.value, scored.score,
            scored.suggested_confidence.value if scored.suggested_confidence else None,
        )
        with self._lock:
            self.posts.set(post.id, post)
            self.scores.set(post.id, scored)
            if not bio:
                self._track_needs_bio(post.id, handle)
        self._publish_local(post.id, scored)

        if not bio:
            self.prefetch_bio(handle)
        if inspect_replies:
            scored = self.inspect_self_replies(post.id, replies) or scored
        return scored

    def _track_needs_bio(self, post_id: str, handle: str) -> None:
        waiting = self._needs_bio.setdefault(normalize_handle(handle), [])
        if post_id not in waiting:
            waiting.append(post_id)

    def rescore_with_bio(self, post_id: str, bio: str) -> Optional[ScoredHeuristicResult]:
        """Rescore a tracked post now that its author's bio is known. Lower scores are discarded."""
        with self._lock:
            post = self.posts.get(post_id)
            old = self.scores.get(post_id)
        if post is None:
            return None

        new = analyze_with_score(post.text, post.author.name, post.author.handle, bio, post.post_type)
        if old is not None and old.self_reply_analysis is not None:
            if new.has_indicators:
                new = apply_self_reply_after_scoring(new, old.self_reply_analysis)
            else:
                new = apply_self_reply_before_scoring(new, old.self_reply_analysis)

        old_score = old.score if old else 0
        if new.score <= old_score:
            logger.debug("Rescore of %s with bio did not improve (%d <= %d)", post_id, new.score, old_score)
            return old
        logger.debug("Score improved for %s: %d -> %d", post_id, old_score, new.score)
        with self._lock:
            self.scores.set(post_id, new)
        self._publish_local(post_id, new)
        return new

    def inspect_self_replies(self, post_id: str, replies: Iterable[Post]) -> Optional[ScoredHeuristicResult]:
        with self._lock:
            post = self.posts.get(post_id)
            scored = self.scores.get(post_id)
        if post is None or scored is None:
            return None

        analysis = analyze_self_replies(post, replies, self._bio_for(post))
        if analysis is None:
            return scored
        updated = apply_self_reply_after_scoring(scored, analysis)
        with self._lock:
            self.scores.set(post_id, updated)
        if updated.score != scored.score:
            logger.info("Self-reply raised score of %s: %d -> %d", post_id, scored.score, updated.score)
        self._publish_local(post_id, updated)
        return updated

    # -- bios --------------------------------------------------------------

    def observe_users(self, users: Iterable[ObservedUser]) -> int:
        """Cache bios seen elsewhere in the feed and rescore posts that were waiting on them."""
        arrived = []
        for user in users:
            if not user.bio.strip():
                continue
            had_bio = self.bio_cache.get_bio(user.handle) is not None
            self.bio_cache.cache_bio(user.handle, user.name, user.bio, user.metadata)
            if not had_bio:
                arrived.append(user)
        self._bios_arrived(arrived)
        return len(arrived)

    def observe_payload(self, payload: Any) -> int:
        with self._lock:
            waiting = set(self._needs_bio)
        harvested = harvest_users(payload, self.bio_cache)
        self._bios_arrived([user for user in harvested if normalize_handle(user.handle) in waiting])
        return len(harvested)

    def _bios_arrived(self, users: Iterable[ObservedUser]) -> None:
        for user in users:
            key = normalize_handle(user.handle)
            with self._lock:
                post_ids = self._needs_bio.pop(key, [])
                self._prefetching.discard(key)
            if post_ids:
                logger.debug("Bio arrived for @%s, rescoring %d post(s)", key, len(post_ids))
            for post_id in post_ids:
                self.rescore_with_bio(post_id, user.bio)

    def prefetch_bio(self, handle: str) -> bool:
        """Ask the profile fetcher for a missing bio, throttled. Returns True when a fetch was started."""
        if self.profile_fetcher is None:
            return False
        key = normalize_handle(handle)
        if self.bio_cache.get_bio(key) or self.profile_fetcher.has_attempted(key):
            return False
        with self._lock:
            if key in self._prefetching:
                return False
            if not self.prefetch_limiter.can_proceed():
                logger.debug("Prefetch throttled for @%s", key)
                return False
            self._prefetching.add(key)
            self.prefetch_limiter.record()

        if self._executor is not None:
            self._executor.submit(self._prefetch, key)
        else:
            self._prefetch(key)
        return True

    def _prefetch(self, handle: str) -> None:
        try:
            data = self.profile_fetcher.fetch(handle)
        finally:
            with self._lock:
                self._prefetching.discard(handle)
        if data is not None and data.bio:
            self._bios_arrived([ObservedUser(data.handle, data.name, data.bio, data.metadata)])

    # -- verdicts ----------------------------------------------------------

    def _publish(self, verdict: Verdict) -> None:
        if self.on_verdict is not None:
            self.on_verdict(verdict)

    def _publish_local(self, post_id: str, scored: ScoredHeuristicResult) -> None:
        """
        Publish the local verdict for a score, or a passive indicator badge when the
        score is below the verdict threshold. A shown confidence is never lowered.
        """
        with self._lock:
            current = self.verdicts.get(post_id)
            if current is not None and current.is_remote:
                return
            if scored.can_show_local_verdict and scored.suggested_confidence is not None:
                if current is not None and _rank(current.confidence) > _rank(scored.suggested_confidence):
                    logger.debug("Keeping %s verdict for %s", current.confidence.value, post_id)
                    return
                verdict = Verdict(
                    post_id=post_id,
                    source=SOURCE_LOCAL,
                    confidence=scored.suggested_confidence,
                    reasons=list(scored.verdict_reasons),
                )
            elif self.show_passive_indicators and scored.has_indicators and current is None:
                verdict = Verdict(post_id=post_id, source=SOURCE_PASSIVE, reasons=[indicator_summary(scored)])
            else:
                return
            self.verdicts.set(post_id, verdict)
        self._publish(verdict)

    def request_analysis(self, post_id: str) -> Verdict:
        with self._lock:
            post = self.posts.get(post_id)
            scored = self.scores.get(post_id)
        if post is None:
            verdict = Verdict(post_id=post_id, source=SOURCE_ERROR, error="Post is no longer tracked")
            self._publish(verdict)
            return verdict
        if self.analyzer is None:
            verdict = Verdict(post_id=post_id, source=SOURCE_ERROR, error="AI analysis is not configured")
            self._publish(verdict)
            return verdict

        handle = post.author.handle
        bio = self._bio_for(post)
        if not bio and self.profile_fetcher is not None:
            fetched = self.profile_fetcher.fetch(handle)
            if fetched is not None and fetched.bio:
                bio = fetched.bio
        user_data = self.bio_cache.get_user_data(handle)

        response = self.analyzer.analyze(AnalyzeRequest(
            post_id=post.id,
            text=post.text,
            author_name=post.author.name,
            author_handle=handle,
            author_bio=bio,
            author_metadata=user_data.metadata if user_data else None,
            flagged_indicators=list(scored.matches) if scored else [],
        ))

        if not response.success or response.result is None:
            # The stored local verdict stays in place.
            verdict = Verdict(post_id=post_id, source=SOURCE_ERROR, error=response.error)
            self._publish(verdict)
            return verdict

        verdict = Verdict(
            post_id=post_id,
            source=SOURCE_CACHED if response.cached else SOURCE_REMOTE,
            confidence=response.result.confidence,
            reasons=[response.result.explanation],
            result=response.result,
        )
        with self._lock:
            self.verdicts.set(post_id, verdict)
        self._publish(verdict)
        return verdict

    def score_for(self, post_id: str) -> Optional[ScoredHeuristicResult]:
        return self.scores.get(post_id)

    def verdict_for(self, post_id: str) -> Optional[Verdict]:
        return self.verdicts.get(post_id)
