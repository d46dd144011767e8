"""
Keep API keys out of logs, error messages and status output.
"""
import re

_SECRET_PATTERNS = [
    # api_key=..., token=... in query strings or echoed request bodies
    (re.compile(r"(?i)(api[_-]?key|key|token|secret)=([^&\s]+)"), r"\1=***REDACTED***"),
    (re.compile(r"(?i)Authorization:\s*Bearer\s+[A-Za-z0-9._\-]+"), "Authorization: Bearer ***REDACTED***"),
    (re.compile(r"(?i)Bearer\s+[A-Za-z0-9._\-]+"), "Bearer ***REDACTED***"),
    # Groq keys echoed back in provider error bodies
    (re.compile(r"gsk_[A-Za-z0-9]{8,}"), "gsk_***REDACTED***"),
]

_PLACEHOLDER_MARKERS = ("YOUR_", "your_")


def redact_secrets(text: str) -> str:
    if not isinstance(text, str):
        return text
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def mask_key(value: str) -> str:
    """Short hint of a configured key for status output, e.g. ``gsk_…9f2a``."""
    if not is_configured_key(value):
        return ""
    key = value.strip()
    if len(key) <= 8:
        return "***"
    return f"{key[:4]}…{key[-4:]}"


def is_configured_key(value: str) -> bool:
    """False for empty keys and template placeholders such as ``YOUR_GROQ_KEY``."""
    key = (value or "").strip()
    return bool(key) and not any(marker in key for marker in _PLACEHOLDER_MARKERS)
