"""
Prompt construction for remote analysis and tolerant parsing of the model's reply.
"""
from __future__ import annotations

import json
import logging
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from shillsniffer.models import AnalysisResult, AuthorMetadata, Confidence, VerifiedType

logger = logging.getLogger(__name__)

DEFAULT_EXPLANATION = "Analysis complete"
DEFAULT_BUSINESS_CONNECTION = "Unable to determine from available info"

PARSE_FAILURE_EXPLANATION = "Could not parse AI response"

VERIFIED_LABELS = {
    VerifiedType.BLUE: "Blue verified (subscriber)",
    VerifiedType.GOLD: "Gold verified (business/org)",
    VerifiedType.GRAY: "Gray verified (government)",
}

_JSON_BLOCK_RE = re.compile(r"\{.*\}", re.DOTALL)

PROMPT_TEMPLATE = """You detect undisclosed commercial interest in posts.

AUTHOR: {author_name} (@{author_handle})
{bio_section}
{metadata_section}
{indicators}

POST: "{text}"

TASK: Does this post promote the author's commercial interests?

IMPORTANT CONTEXT:
- Empty bio + high followers (100K+) + promoting specific product = likely a major account hiding affiliation
- Gold verified (business) accounts are official company accounts
- Profile URL often reveals company affiliation even if bio is empty
- Affiliate/employer labels are platform-verified employment relationships

STRICT RULES:
1. BE CONFIDENT about bio facts: if bio says "building @X" or "founder @X", state it directly
2. Never invent affiliations not in the bio, but DO trust what the bio explicitly states
3. Personal opinions about an industry are not promotional unless pushing their specific product
4. Recommending competitors is usually NOT self-serving
5. ASKING QUESTIONS about a product is NOT promotional
6. Only flag as promotional if they're RECOMMENDING, PRAISING, or SELLING, not merely mentioning or asking about

DISCLOSURE LEVELS:
- "disclosed in post": Post explicitly says "my company", "we built", "our product", etc.
- "disclosed in bio only": Bio shows ownership but the post doesn't mention it
- "undisclosed": No clear connection visible in bio or post

CONFIDENCE GUIDE:
- HIGH: Bio/profile EXPLICITLY shows they own/work for the promoted product
- MEDIUM: Promotional patterns detected but NO confirmed affiliation in bio
- LOW: Discussing their industry without pushing specific product, OR fully disclosed promotion

DO NOT HALLUCINATE:
- NEVER claim someone is "affiliated" or "connected" unless their bio EXPLICITLY states it
- If bio doesn't mention the promoted product, say "No visible affiliation in bio"

Respond with ONLY this JSON:
{{
  "confidence": "low" | "medium" | "high",
  "hasCommercialInterest": true/false,
  "isDisclosed": true/false,
  "explanation": "Factual sentence including the bio connection if relevant",
  "businessConnection": "Direct statement from bio (e.g., 'builds @company', 'founder @startup')"
}}"""


def fallback_result() -> AnalysisResult:
    return AnalysisResult(
        confidence=Confidence.MEDIUM,
        has_commercial_interest=True,
        is_disclosed=False,
        explanation=PARSE_FAILURE_EXPLANATION,
        business_connection="Unknown",
    )


def format_followers(count: int) -> str:
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1000:
        return f"{count / 1000:.0f}K"
    return str(count)


def _metadata_lines(metadata: Optional[AuthorMetadata]) -> List[str]:
    if metadata is None:
        return []
    lines = []
    if metadata.verified_type in VERIFIED_LABELS:
        lines.append(f"Verification: {VERIFIED_LABELS[metadata.verified_type]}")
    if metadata.followers_count:
        lines.append(f"Followers: {format_followers(metadata.followers_count)}")
    if metadata.affiliate_label:
        lines.append(f"Affiliate/Employer label: {metadata.affiliate_label}")
    if metadata.professional_category:
        lines.append(f"Professional category: {metadata.professional_category}")
    if metadata.profile_url:
        lines.append(f"Profile URL: {metadata.profile_url}")
    return lines


def build_analysis_prompt(
    text: str,
    author_name: str,
    author_handle: str,
    author_bio: Optional[str] = None,
    flagged_indicators: Optional[List[str]] = None,
    metadata: Optional[AuthorMetadata] = None,
) -> str:
    lines = _metadata_lines(metadata)
    return PROMPT_TEMPLATE.format(
        author_name=author_name,
        author_handle=author_handle.lstrip("@"),
        bio_section=f"BIO: {author_bio}" if author_bio else "BIO: Empty/not set",
        metadata_section="\n" + "\n".join(lines) if lines else "",
        indicators=f"DETECTED INDICATORS: {', '.join(flagged_indicators)}" if flagged_indicators else "",
        text=text,
    )


def sanitize_output(value: Optional[str]) -> str:
    """Collapse whitespace and scrub template leftovers; anything under 3 chars counts as empty."""
    if not value:
        return ""
    cleaned = re.sub(r"@\s*undefined", "", value, flags=re.IGNORECASE)
    cleaned = re.sub(r"undefined", "unknown", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned if len(cleaned) >= 3 else ""


class ModelVerdict(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    confidence: Confidence = Confidence.MEDIUM
    has_commercial_interest: bool = Field(False, alias="hasCommercialInterest")
    is_disclosed: bool = Field(False, alias="isDisclosed")
    explanation: str = ""
    business_connection: str = Field("", alias="businessConnection")

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: object) -> Confidence:
        if isinstance(value, str) and value in ("low", "medium", "high"):
            return Confidence(value)
        return Confidence.MEDIUM

    @field_validator("has_commercial_interest", "is_disclosed", mode="before")
    @classmethod
    def _truthy(cls, value: object) -> bool:
        return bool(value)

    @field_validator("explanation", "business_connection", mode="before")
    @classmethod
    def _clean_text(cls, value: object) -> str:
        return sanitize_output(value) if isinstance(value, str) else ""


def parse_analysis_response(content: str) -> AnalysisResult:
    """Never raises: an unusable reply degrades to ``fallback_result()``."""
    match = _JSON_BLOCK_RE.search(content or "")
    if not match:
        logger.error("Failed to parse AI response: no JSON object found")
        return fallback_result()
    try:
        raw = json.loads(match.group(0))
        if not isinstance(raw, dict):
            raise ValueError("response JSON is not an object")
        verdict = ModelVerdict.model_validate(raw)
    except (ValueError, ValidationError) as exc:
        logger.error("Failed to parse AI response: %s", exc)
        return fallback_result()

    return AnalysisResult(
        confidence=verdict.confidence,
        has_commercial_interest=verdict.has_commercial_interest,
        is_disclosed=verdict.is_disclosed,
        explanation=verdict.explanation or DEFAULT_EXPLANATION,
        business_connection=verdict.business_connection or DEFAULT_BUSINESS_CONNECTION,
    )
