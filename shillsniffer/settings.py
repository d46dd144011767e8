"""
Centralised settings (env-first, code-light).

Two layers live here:

* ``SnifferSettings``: process tunables read once at start-up. Precedence is
  ``SHILLSNIFFER_*`` environment variables, then the optional YAML file, then
  the defaults below.
* ``AnalysisSettings``: the user's remote-analysis choices, persisted in the
  key-value store under ``"settings"`` and edited through the CLI.
"""
from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from shillsniffer.config_loader import load_config_file
from shillsniffer.models import LLMProvider
from shillsniffer.storage import KeyValueStore

logger = logging.getLogger(__name__)

SETTINGS_STORE_KEY = "settings"
DEFAULT_STORE_PATH = Path.home() / ".shillsniffer" / "store.json"


@dataclass
class SnifferSettings:
    store_path: Path
    bio_cache_ttl_seconds: int
    bio_cache_max_entries: int
    analysis_cache_ttl_seconds: int
    analysis_cache_max_entries: int
    rate_limit_calls: int
    rate_limit_window_seconds: int
    prefetch_calls: int
    prefetch_window_seconds: int
    profile_fetch_timeout_seconds: int
    post_cache_size: int
    score_cache_size: int
    llm_timeout_seconds: int
    log_level: str


def _int_from_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(raw)
        return value if value > 0 else default
    except ValueError:
        logger.warning("Invalid int value for %s=%s; using default %s", key, raw, default)
        return default


def _int_from_file(file_values: Dict[str, Any], key: str, default: int) -> int:
    raw = file_values.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
        return value if value > 0 else default
    except (TypeError, ValueError):
        logger.warning("Invalid int value for %s=%r in settings file; using default %s", key, raw, default)
        return default


def load_settings(config_path: Optional[Path] = None) -> SnifferSettings:
    file_values = load_config_file(config_path)

    def pick(name: str, default: int) -> int:
        return _int_from_env(f"SHILLSNIFFER_{name.upper()}", _int_from_file(file_values, name, default))

    store_path = os.getenv("SHILLSNIFFER_STORE_PATH") or file_values.get("store_path")
    return SnifferSettings(
        store_path=Path(store_path).expanduser() if store_path else DEFAULT_STORE_PATH,
        bio_cache_ttl_seconds=pick("bio_cache_ttl_seconds", 30 * 60),
        bio_cache_max_entries=pick("bio_cache_max_entries", 500),
        analysis_cache_ttl_seconds=pick("analysis_cache_ttl_seconds", 7 * 24 * 60 * 60),
        analysis_cache_max_entries=pick("analysis_cache_max_entries", 500),
        rate_limit_calls=pick("rate_limit_calls", 10),
        rate_limit_window_seconds=pick("rate_limit_window_seconds", 60),
        prefetch_calls=pick("prefetch_calls", 5),
        prefetch_window_seconds=pick("prefetch_window_seconds", 10),
        profile_fetch_timeout_seconds=pick("profile_fetch_timeout_seconds", 10),
        post_cache_size=pick("post_cache_size", 200),
        score_cache_size=pick("score_cache_size", 200),
        llm_timeout_seconds=pick("llm_timeout_seconds", 30),
        log_level=(os.getenv("SHILLSNIFFER_LOG_LEVEL") or str(file_values.get("log_level") or "INFO")).upper(),
    )


@dataclass
class AnalysisSettings:
    llm_provider: LLMProvider = LLMProvider.GROQ
    api_key: str = ""
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"
    show_passive_indicators: bool = True
    enable_ai_analysis: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["llm_provider"] = self.llm_provider.value
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AnalysisSettings":
        defaults = cls()
        data = data or {}
        raw_provider = data.get("llm_provider", defaults.llm_provider.value)
        try:
            provider = LLMProvider(raw_provider)
        except ValueError:
            logger.warning("Unknown llm_provider %r in stored settings; using %s", raw_provider, defaults.llm_provider.value)
            provider = defaults.llm_provider
        return cls(
            llm_provider=provider,
            api_key=str(data.get("api_key") or ""),
            ollama_url=str(data.get("ollama_url", defaults.ollama_url) or ""),
            ollama_model=str(data.get("ollama_model", defaults.ollama_model) or ""),
            show_passive_indicators=bool(data.get("show_passive_indicators", defaults.show_passive_indicators)),
            enable_ai_analysis=bool(data.get("enable_ai_analysis", defaults.enable_ai_analysis)),
        )


def load_analysis_settings(store: KeyValueStore) -> AnalysisSettings:
    settings = AnalysisSettings.from_dict(store.get_value(SETTINGS_STORE_KEY, {}))
    if not settings.api_key:
        settings.api_key = os.getenv("GROQ_API_KEY", "")
    return settings


def save_analysis_settings(store: KeyValueStore, settings: AnalysisSettings) -> None:
    store.set_value(SETTINGS_STORE_KEY, settings.to_dict())
