"""
Command-line entry point.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from dotenv import load_dotenv
from pydantic import ValidationError

from shillsniffer import Components, build_components, build_monitor
from shillsniffer.models import AnalyzeRequest, LLMProvider, PostType
from shillsniffer.schemas import FeedIn
from shillsniffer.scoring import analyze_with_score, indicator_summary
from shillsniffer.security import mask_key
from shillsniffer.settings import (
    SETTINGS_STORE_KEY,
    AnalysisSettings,
    load_analysis_settings,
    load_settings,
    save_analysis_settings,
)
from shillsniffer.status import build_status
from shillsniffer.storage import StoreError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
POST_TYPES = [t.value for t in PostType]


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="YAML settings file (defaults to $SHILLSNIFFER_CONFIG or config/shillsniffer.yaml).")
@click.option("--store", "store_path", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="JSON store for settings and cached analyses.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], store_path: Optional[Path]):
    load_dotenv(os.getenv("SHILLSNIFFER_DOTENV", ".env"))
    settings = load_settings(config_path)
    if store_path is not None:
        settings.store_path = store_path
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO), format=LOG_FORMAT)

    components = build_components(settings)
    try:
        components.analysis_cache.prune_expired()
    except StoreError as exc:
        logger.warning("Start-up cache sweep failed: %s", exc)
    ctx.obj = components


@cli.command()
@click.option("--text", required=True)
@click.option("--handle", required=True)
@click.option("--name", default="")
@click.option("--bio", default=None)
@click.option("--type", "post_type", type=click.Choice(POST_TYPES), default=PostType.ORIGINAL.value)
def score(text: str, handle: str, name: str, bio: Optional[str], post_type: str):
    """Score one post locally."""
    result = analyze_with_score(text, name or handle, handle, bio, PostType(post_type))
    payload = result.to_dict()
    payload["summary"] = indicator_summary(result)
    _echo_json(payload)


@cli.command()
@click.option("--text", required=True)
@click.option("--handle", required=True)
@click.option("--name", default="")
@click.option("--bio", default=None)
@click.option("--post-id", default="cli")
@click.pass_obj
def analyze(components: Components, text: str, handle: str, name: str, bio: Optional[str], post_id: str):
    """Send one post for remote analysis (cached results are reused)."""
    local = analyze_with_score(text, name or handle, handle, bio)
    response = components.analyzer.analyze(AnalyzeRequest(
        post_id=post_id,
        text=text,
        author_name=name or handle,
        author_handle=handle,
        author_bio=bio,
        flagged_indicators=list(local.matches),
    ))
    _echo_json(response.to_dict())
    if not response.success:
        sys.exit(1)


@cli.command()
@click.argument("feed_file", type=click.File("r", encoding="utf-8"))
@click.option("--remote/--no-remote", default=False, help="Request remote analysis for posts with a local verdict.")
@click.pass_obj
def feed(components: Components, feed_file, remote: bool):
    """Run a JSON feed file of payloads and posts through the monitor."""
    try:
        data = FeedIn.model_validate(json.load(feed_file))
    except (ValueError, ValidationError) as exc:
        raise click.ClickException(f"Invalid feed file: {exc}")

    verdicts: List[Dict[str, Any]] = []
    monitor = build_monitor(components, on_verdict=lambda verdict: verdicts.append(verdict.to_dict()))
    for payload in data.payloads:
        monitor.observe_payload(payload)

    flagged: List[Dict[str, Any]] = []
    for item in data.posts:
        post = item.to_post()
        scored = monitor.handle_post(post, [reply.to_post() for reply in item.self_replies])
        if scored is None:
            continue
        if not scored.can_show_local_verdict and not monitor.show_passive_indicators:
            continue
        flagged.append({"post_id": post.id, "summary": indicator_summary(scored), **scored.to_dict()})
        if remote and scored.can_show_local_verdict:
            monitor.request_analysis(post.id)

    _echo_json({"flagged": flagged, "verdicts": verdicts})


@cli.command()
@click.pass_obj
def status(components: Components):
    """Show cache, limiter and configuration status."""
    _echo_json(build_status(
        components.bio_cache,
        components.analysis_cache,
        components.rate_limiter,
        components.settings,
        load_analysis_settings(components.store),
    ))


@cli.command()
@click.option("--provider", type=click.Choice([p.value for p in LLMProvider]), default=None)
@click.option("--api-key", default=None)
@click.option("--ollama-url", default=None)
@click.option("--ollama-model", default=None)
@click.option("--passive/--no-passive", "show_passive", default=None)
@click.option("--ai/--no-ai", "enable_ai", default=None)
@click.pass_obj
def configure(components: Components, provider, api_key, ollama_url, ollama_model, show_passive, enable_ai):
    """Update the persisted analysis settings."""
    # Read the stored values only so an env-provided key is never written to disk.
    current = AnalysisSettings.from_dict(components.store.get_value(SETTINGS_STORE_KEY, {}))
    if provider is not None:
        current.llm_provider = LLMProvider(provider)
    if api_key is not None:
        current.api_key = api_key.strip()
    if ollama_url is not None:
        current.ollama_url = ollama_url.strip()
    if ollama_model is not None:
        current.ollama_model = ollama_model.strip()
    if show_passive is not None:
        current.show_passive_indicators = show_passive
    if enable_ai is not None:
        current.enable_ai_analysis = enable_ai
    try:
        save_analysis_settings(components.store, current)
    except StoreError as exc:
        raise click.ClickException(str(exc))

    shown = current.to_dict()
    shown["api_key"] = mask_key(current.api_key)
    _echo_json(shown)


@cli.command("cache-stats")
@click.pass_obj
def cache_stats(components: Components):
    _echo_json(components.analysis_cache.get_stats())


@cli.command("prune-cache")
@click.pass_obj
def prune_cache(components: Components):
    removed = components.analysis_cache.prune_expired()
    _echo_json({"removed": removed})


@cli.command("clear-cache")
@click.confirmation_option(prompt="Delete every cached analysis?")
@click.pass_obj
def clear_cache(components: Components):
    components.analysis_cache.clear()
    click.echo("Analysis cache cleared.")


if __name__ == "__main__":  # pragma: no cover
    cli()
