"""
Status helpers for the CLI.

The payload is JSON-serialisable and never includes raw API keys.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from shillsniffer.analysis_cache import AnalysisCache
from shillsniffer.bio_cache import BioCache
from shillsniffer.rate_limiter import RateLimiter
from shillsniffer.security import is_configured_key, mask_key
from shillsniffer.settings import AnalysisSettings, SnifferSettings


def build_status(
    bio_cache: BioCache,
    analysis_cache: AnalysisCache,
    rate_limiter: RateLimiter,
    settings: SnifferSettings,
    analysis_settings: AnalysisSettings,
) -> Dict[str, Any]:
    bio_stats = bio_cache.get_stats()
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "bio_cache": {
            "count": bio_stats["count"],
            "ttl_seconds": settings.bio_cache_ttl_seconds,
            "max_entries": settings.bio_cache_max_entries,
        },
        "analysis_cache": analysis_cache.get_stats(),
        "rate_limiter": rate_limiter.usage(),
        "config": {
            "store_path": str(settings.store_path),
            "llm_provider": analysis_settings.llm_provider.value,
            "api_key_configured": is_configured_key(analysis_settings.api_key),
            "api_key_hint": mask_key(analysis_settings.api_key),
            "ollama_url": analysis_settings.ollama_url,
            "ollama_model": analysis_settings.ollama_model,
            "show_passive_indicators": analysis_settings.show_passive_indicators,
            "enable_ai_analysis": analysis_settings.enable_ai_analysis,
            "analysis_cache_ttl_seconds": settings.analysis_cache_ttl_seconds,
            "analysis_cache_max_entries": settings.analysis_cache_max_entries,
            "log_level": settings.log_level,
        },
    }
