"""
Public API for shillsniffer: local scoring of posts for undisclosed promotion,
plus optional remote analysis.

Nothing is constructed at import time; callers build one set of components
with ``build_components`` and share it for the life of the process.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from shillsniffer.analysis_cache import AnalysisCache
from shillsniffer.analyzer import RemoteAnalyzer
from shillsniffer.bio_cache import BioCache
from shillsniffer.llm_client import LLMClient
from shillsniffer.models import Author, Post, PostType, ScoredHeuristicResult
from shillsniffer.monitor import PostMonitor, Verdict
from shillsniffer.profile_fetch import ProfileFetcher, ProfileLookup
from shillsniffer.rate_limiter import RateLimiter
from shillsniffer.scoring import analyze_with_score, indicator_summary
from shillsniffer.settings import SnifferSettings, load_analysis_settings, load_settings
from shillsniffer.storage import JsonFileStore, KeyValueStore

__all__ = [
    "Author",
    "Components",
    "Post",
    "PostType",
    "ScoredHeuristicResult",
    "Verdict",
    "analyze_with_score",
    "build_components",
    "build_monitor",
    "indicator_summary",
]


@dataclass
class Components:
    settings: SnifferSettings
    store: KeyValueStore
    bio_cache: BioCache
    analysis_cache: AnalysisCache
    rate_limiter: RateLimiter
    analyzer: RemoteAnalyzer


def build_components(
    settings: Optional[SnifferSettings] = None,
    store: Optional[KeyValueStore] = None,
    client: Optional[LLMClient] = None,
) -> Components:
    settings = settings or load_settings()
    store = store if store is not None else JsonFileStore(settings.store_path)
    analysis_cache = AnalysisCache(
        store,
        max_entries=settings.analysis_cache_max_entries,
        ttl_seconds=settings.analysis_cache_ttl_seconds,
    )
    rate_limiter = RateLimiter(settings.rate_limit_calls, settings.rate_limit_window_seconds)
    analyzer = RemoteAnalyzer(
        lambda: load_analysis_settings(store),
        analysis_cache,
        rate_limiter,
        client or LLMClient(timeout=settings.llm_timeout_seconds),
    )
    return Components(
        settings=settings,
        store=store,
        bio_cache=BioCache(settings.bio_cache_max_entries, settings.bio_cache_ttl_seconds),
        analysis_cache=analysis_cache,
        rate_limiter=rate_limiter,
        analyzer=analyzer,
    )


def build_monitor(
    components: Components,
    profile_lookup: Optional[ProfileLookup] = None,
    on_verdict: Optional[Callable[[Verdict], None]] = None,
    show_passive_indicators: Optional[bool] = None,
) -> PostMonitor:
    settings = components.settings
    if show_passive_indicators is None:
        show_passive_indicators = load_analysis_settings(components.store).show_passive_indicators
    fetcher = None
    if profile_lookup is not None:
        fetcher = ProfileFetcher(
            profile_lookup,
            components.bio_cache,
            timeout_seconds=settings.profile_fetch_timeout_seconds,
        )
    return PostMonitor(
        components.bio_cache,
        analyzer=components.analyzer,
        profile_fetcher=fetcher,
        prefetch_limiter=RateLimiter(settings.prefetch_calls, settings.prefetch_window_seconds),
        on_verdict=on_verdict,
        post_cache_size=settings.post_cache_size,
        score_cache_size=settings.score_cache_size,
        show_passive_indicators=show_passive_indicators,
    )
