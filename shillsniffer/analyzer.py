"""
Remote analysis: configuration checks, cache lookup, rate limiting, the model
call and cache write-back.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from shillsniffer.analysis_cache import AnalysisCache, cache_key, cached_to_result
from shillsniffer.concurrency import SingleFlight
from shillsniffer.llm_client import LLMClient, LLMError
from shillsniffer.models import AnalysisResult, AnalyzeRequest, AnalyzeResponse, LLMProvider
from shillsniffer.prompt import build_analysis_prompt, parse_analysis_response
from shillsniffer.rate_limiter import RateLimiter
from shillsniffer.security import redact_secrets
from shillsniffer.settings import AnalysisSettings
from shillsniffer.storage import StoreError

logger = logging.getLogger(__name__)

MISSING_API_KEY = "No API key configured. Run `shillsniffer configure --api-key ...` to add your Groq API key."
MISSING_OLLAMA_URL = "Ollama URL not configured. Run `shillsniffer configure --ollama-url ...` to configure."
AI_DISABLED = "AI analysis is disabled in settings."


@dataclass
class _Outcome:
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    cached: bool = False


def configuration_error(settings: AnalysisSettings) -> Optional[str]:
    if settings.llm_provider == LLMProvider.GROQ and not settings.api_key:
        return MISSING_API_KEY
    if settings.llm_provider == LLMProvider.OLLAMA and not settings.ollama_url:
        return MISSING_OLLAMA_URL
    if not settings.enable_ai_analysis:
        return AI_DISABLED
    return None


class RemoteAnalyzer:
    def __init__(
        self,
        settings_provider: Callable[[], AnalysisSettings],
        cache: AnalysisCache,
        rate_limiter: RateLimiter,
        client: LLMClient,
    ) -> None:
        self._settings_provider = settings_provider
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.client = client
        self._flight: SingleFlight[_Outcome] = SingleFlight()

    def analyze(self, request: AnalyzeRequest) -> AnalyzeResponse:
        settings = self._settings_provider()
        problem = configuration_error(settings)
        if problem:
            return AnalyzeResponse(post_id=request.post_id, success=False, error=problem)

        key = cache_key(request.author_handle, request.text)
        outcome = self._flight.do(key, lambda: self._resolve(request, settings))
        if outcome.result is None:
            return AnalyzeResponse(post_id=request.post_id, success=False, error=outcome.error)
        return AnalyzeResponse(
            post_id=request.post_id,
            success=True,
            result=outcome.result,
            cached=outcome.cached,
        )

    def _resolve(self, request: AnalyzeRequest, settings: AnalysisSettings) -> _Outcome:
        cached = self.cache.get_cached_result(request.author_handle, request.text)
        if cached is not None:
            logger.debug("Cache hit for @%s", request.author_handle)
            return _Outcome(result=cached_to_result(cached), cached=True)

        # Local models are not metered.
        if settings.llm_provider == LLMProvider.GROQ:
            limit = self.rate_limiter.check()
            if not limit.allowed:
                return _Outcome(error=f"Slow down! Rate limited. Try again in {limit.wait_seconds} seconds.")

        prompt = build_analysis_prompt(
            request.text,
            request.author_name,
            request.author_handle,
            request.author_bio,
            request.flagged_indicators,
            request.author_metadata,
        )
        try:
            raw = self.client.call(
                settings.llm_provider,
                prompt,
                api_key=settings.api_key,
                ollama_url=settings.ollama_url,
                ollama_model=settings.ollama_model,
            )
        except LLMError as exc:
            logger.error("Analysis failed for post %s: %s", request.post_id, exc)
            return _Outcome(error=redact_secrets(str(exc)))

        result = parse_analysis_response(raw)
        try:
            self.cache.cache_result(request.author_handle, request.text, result)
        except StoreError as exc:
            logger.warning("Could not cache analysis for post %s: %s", request.post_id, exc)
        logger.info(
            "Analysis complete for post %s via %s: %s (%s)",
            request.post_id, settings.llm_provider.value, result.confidence.value, result.explanation,
        )
        return _Outcome(result=result)
