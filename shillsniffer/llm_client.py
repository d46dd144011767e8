"""
Chat-completions client for the two supported model backends.

Retries are off by default: a failed call is reported to the caller, who
decides whether to ask again.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests
from urllib3.util.retry import Retry

from shillsniffer.models import LLMProvider
from shillsniffer.security import redact_secrets

logger = logging.getLogger(__name__)

GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"
GROQ_MODEL = "llama-3.3-70b-versatile"
MAX_TOKENS = 256
OLLAMA_UNREACHABLE = "Cannot connect to Ollama. Is it running? Start with: ollama serve"


class LLMError(RuntimeError):
    """A remote model call failed; the message is safe to show and log."""


class ConfigurationError(LLMError):
    """Required provider settings are missing."""


class LLMClient:
    def __init__(self, timeout: int = 30, max_retries: int = 0, user_agent: Optional[str] = None):
        self.timeout = timeout
        self.session = requests.Session()
        retry = Retry(
            total=max_retries,
            backoff_factor=0.6,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"],
        )
        adapter = requests.adapters.HTTPAdapter(max_retries=retry)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self.session.headers.update({
            "User-Agent": user_agent or "ShillSniffer/0.1",
            "Content-Type": "application/json",
        })

    def call(
        self,
        provider: LLMProvider,
        prompt: str,
        api_key: Optional[str] = None,
        ollama_url: Optional[str] = None,
        ollama_model: Optional[str] = None,
    ) -> str:
        if provider == LLMProvider.OLLAMA:
            if not ollama_url or not ollama_model:
                raise ConfigurationError("Ollama URL and model are required")
            return self.call_ollama(ollama_url, ollama_model, prompt)
        if not api_key:
            raise ConfigurationError("Groq API key is required")
        return self.call_groq(api_key, prompt)

    def call_groq(self, api_key: str, prompt: str) -> str:
        try:
            resp = self.session.post(
                GROQ_API_URL,
                json=_chat_body(GROQ_MODEL, prompt),
                headers={"Authorization": f"Bearer {api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Groq request failed: %s", redact_secrets(str(exc)))
            raise LLMError(f"Groq request failed: {redact_secrets(str(exc))}") from exc
        if not resp.ok:
            raise _api_error("Groq", resp)
        return _first_message(resp, "Groq")

    def call_ollama(self, base_url: str, model: str, prompt: str) -> str:
        url = f"{base_url.rstrip('/')}/v1/chat/completions"
        try:
            resp = self.session.post(url, json=_chat_body(model, prompt), timeout=self.timeout)
        except requests.ConnectionError as exc:
            logger.error("Ollama unreachable at %s: %s", base_url, exc)
            raise LLMError(OLLAMA_UNREACHABLE) from exc
        except requests.RequestException as exc:
            logger.error("Ollama request failed: %s", exc)
            raise LLMError(f"Ollama request failed: {exc}") from exc
        if not resp.ok:
            raise _api_error("Ollama", resp)
        return _first_message(resp, "Ollama")


def _chat_body(model: str, prompt: str) -> Dict[str, Any]:
    messages: List[Dict[str, str]] = [{"role": "user", "content": prompt}]
    return {"model": model, "max_tokens": MAX_TOKENS, "messages": messages}


def _api_error(provider: str, resp: requests.Response) -> LLMError:
    body = redact_secrets(resp.text[:500])
    logger.error("%s API error %s: %s", provider, resp.status_code, body)
    return LLMError(f"{provider} API error: {resp.status_code} - {body}")


def _first_message(resp: requests.Response, provider: str) -> str:
    try:
        return resp.json()["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        logger.error("Unexpected %s response shape: %s", provider, redact_secrets(resp.text[:200]))
        raise LLMError(f"{provider} API returned an unexpected response") from exc
