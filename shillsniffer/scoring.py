"""
Weighted promotional-intent scoring on top of the pure detectors.
"""
from __future__ import annotations

from typing import List, Optional, Tuple

from shillsniffer.detectors import (
    analyze_text,
    detect_affiliate_links,
    detect_engagement_bait,
    detect_own_links,
    detect_promo_code,
    detect_question,
    detect_recommending_others,
    detect_self_promo_phrase,
    detect_topic_match,
)
from shillsniffer.keywords import ROLE_LABELS
from shillsniffer.models import (
    Confidence,
    HeuristicResult,
    IndicatorCategory,
    PostType,
    ScoreBreakdown,
    ScoredHeuristicResult,
)

BASE_INDICATOR_POINTS = 30
TOPIC_MATCH_POINTS = 40
SELF_PROMO_POINTS = 20
OWN_LINK_POINTS = 30
ENGAGEMENT_BAIT_POINTS = 10
PROMO_CODE_POINTS = 35
OWN_AFFILIATE_POINTS = 25
TRACKING_LINK_POINTS = 15
REPLY_PENALTY = -20
QUESTION_PENALTY = -15
RECOMMENDING_OTHERS_PENALTY = -20

LOCAL_VERDICT_THRESHOLD = 50
HIGH_CONFIDENCE_THRESHOLD = 80


def verdict_for_score(score: int) -> Tuple[bool, Optional[Confidence]]:
    """Map a clamped score to ``(can_show_local_verdict, suggested_confidence)``."""
    if score >= HIGH_CONFIDENCE_THRESHOLD:
        return True, Confidence.HIGH
    if score >= LOCAL_VERDICT_THRESHOLD:
        return True, Confidence.MEDIUM
    return False, None


def _base_indicators(text: str, author_name: str, author_bio: Optional[str]) -> HeuristicResult:
    for source in (author_name, author_bio, text):
        result = analyze_text(source)
        if result.has_indicators:
            return result

    self_promo = detect_self_promo_phrase(text)
    bait = detect_engagement_bait(text)
    if self_promo.found or bait.found:
        return HeuristicResult(
            has_indicators=True,
            matches=self_promo.phrases + bait.phrases,
            category=IndicatorCategory.ACTION,
        )
    return HeuristicResult()


def analyze_with_score(
    text: str,
    author_name: str,
    author_handle: str,
    author_bio: Optional[str] = None,
    post_type: PostType = PostType.ORIGINAL,
) -> ScoredHeuristicResult:
    """
    Score a post for undisclosed promotion.

    Deterministic and side-effect free. Contributions are evaluated in a fixed
    order and the verdict reasons follow that order; the total is clamped at 0.
    """
    text = text or ""
    base = _base_indicators(text, author_name or "", author_bio)
    breakdown = ScoreBreakdown()
    reasons: List[str] = []

    if base.has_indicators:
        breakdown.bio_role = BASE_INDICATOR_POINTS
        reasons.append(f"Author has commercial indicators: {', '.join(base.matches[:2])}")

    if author_bio:
        topic = detect_topic_match(text, author_bio)
        if topic.matches:
            breakdown.topic_match = TOPIC_MATCH_POINTS
            reasons.append(f"Post topic ({topic.industry}) matches their business")

    self_promo = detect_self_promo_phrase(text)
    if self_promo.found:
        breakdown.self_promo = SELF_PROMO_POINTS
        reasons.append(f'Self-promotional language: "{self_promo.phrases[0]}"')

    if author_bio:
        own_links = detect_own_links(text, author_bio, author_handle)
        if own_links.found:
            breakdown.own_link = OWN_LINK_POINTS
            reasons.append(f"Mentions their own product: {', '.join(own_links.links[:2])}")

    bait = detect_engagement_bait(text)
    if bait.found:
        breakdown.engagement_bait = ENGAGEMENT_BAIT_POINTS
        reasons.append(f'Engagement pattern: "{bait.phrases[0]}"')

    promo = detect_promo_code(text)
    if promo.found:
        breakdown.promo_code = PROMO_CODE_POINTS
        reasons.append(f"Promo code detected: {(promo.codes or promo.phrases)[0]}")
        if not base.has_indicators:
            base = HeuristicResult(
                has_indicators=True,
                matches=base.matches + ["promo code"],
                category=IndicatorCategory.ACTION,
            )

    affiliate = detect_affiliate_links(text, author_bio, author_handle)
    if affiliate.found:
        if affiliate.matches_author_business:
            breakdown.affiliate_link = OWN_AFFILIATE_POINTS
            target = affiliate.domains[0] if affiliate.domains else affiliate.patterns[0]
            reasons.append(f"Affiliate link to own product: {target}")
        elif base.has_indicators or promo.found or self_promo.found:
            # A lone tracking link with nothing else suspicious is not counted.
            breakdown.affiliate_link = TRACKING_LINK_POINTS
            reasons.append(f"Tracking link detected: {affiliate.patterns[0]}")

    if post_type == PostType.REPLY:
        breakdown.reply_penalty = REPLY_PENALTY
        reasons.append("Reply (lower suspicion)")

    question = detect_question(text)
    if question.is_question and not self_promo.found:
        breakdown.question_bonus = QUESTION_PENALTY
        reasons.append("Asking a question (lower suspicion)")

    if author_bio:
        others = detect_recommending_others(text, author_bio, author_handle)
        if others.found and not self_promo.found and breakdown.own_link == 0:
            breakdown.competitor_mention = RECOMMENDING_OTHERS_PENALTY
            reasons.append(f"Mentioning others: {', '.join(others.mentions[:2])}")

    score = max(0, breakdown.total())
    can_show, confidence = verdict_for_score(score)
    return ScoredHeuristicResult(
        has_indicators=base.has_indicators,
        matches=list(base.matches),
        category=base.category,
        score=score,
        score_breakdown=breakdown,
        can_show_local_verdict=can_show,
        suggested_confidence=confidence,
        verdict_reasons=reasons,
    )


def _format_role(role: str) -> str:
    return ROLE_LABELS.get(role.lower(), role)


def indicator_summary(result: HeuristicResult) -> str:
    """One-line label for a passive indicator badge."""
    if not result.has_indicators or not result.matches:
        return ""

    first = result.matches[0]
    if not first.strip() or first == "@":
        return "Commercial interest detected"

    if result.category == IndicatorCategory.ROLE:
        formatted = _format_role(first)
        if formatted == first:
            return f"Author is a {first[:1].upper()}{first[1:]}"
        return f"Author is {formatted}"

    if result.category == IndicatorCategory.ACTION:
        if first in ("built", "created", "launched", "started", "made"):
            return f"Author has {first} something"
        if first in ("building", "making", "working on", "running", "leading", "scaling",
                     "growing", "launching", "starting"):
            return f"Author is {first} something"
        if first == "creator of":
            return "Author is a creator"
        return "Author is actively building"

    if result.category == IndicatorCategory.FUNDING:
        if first in ("yc", "y combinator"):
            return "Y Combinator affiliated"
        if first in ("a16z", "andreessen"):
            return "a16z affiliated"
        if first == "sequoia":
            return "Sequoia affiliated"
        if "series" in first:
            return f"Has raised {first.upper()} funding"
        if first in ("raised", "funded", "funding"):
            return "Has raised funding"
        if first in ("seed", "pre-seed"):
            return f"{first[:1].upper()}{first[1:]}-funded"
        if first == "backed by":
            return "VC-backed"
        return "Has funding ties"

    if result.category == IndicatorCategory.COMPANY:
        if len(first) > 1:
            return f"Linked to {first}"
        return "Has company ties"

    return "Commercial interest detected"
