"""
Load the optional YAML settings file with ``${ENV}`` expansion.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "shillsniffer.yaml"


def load_config_file(path: Optional[Path] = None) -> Dict[str, Any]:
    config_path = Path(path) if path else Path(os.getenv("SHILLSNIFFER_CONFIG") or DEFAULT_CONFIG_PATH)
    if not config_path.exists():
        logger.debug("No settings file at %s", config_path)
        return {}
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top level must be a mapping", config_path)
        return {}
    return _expand_env(data)


def _expand_env(data: Dict[str, Any]) -> Dict[str, Any]:
    def replace(value: Any) -> Any:
        if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
            env_key = value[2:-1]
            return os.getenv(env_key, "")
        if isinstance(value, dict):
            return {k: replace(v) for k, v in value.items()}
        if isinstance(value, list):
            return [replace(item) for item in value]
        return value

    return replace(data)  # type: ignore[return-value]
