"""
Promotional self-replies: an author posting a clean parent and dropping the
link, code or product pitch in a reply underneath it.

Replies may be discovered before the parent has been scored or after its
verdict is already shown. Both entry points apply the same single bonus to
``score_breakdown.self_reply_promo`` so they converge on the same result.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import replace
from typing import Iterable, Optional

from shillsniffer.detectors import (
    detect_affiliate_links,
    detect_own_links,
    detect_promo_code,
    detect_self_promo_phrase,
)
from shillsniffer.models import (
    CONFIDENCE_RANK,
    IndicatorCategory,
    Post,
    PromoStrength,
    PromotionalContentResult,
    ScoredHeuristicResult,
    SelfReplyAnalysis,
    normalize_handle,
)
from shillsniffer.scoring import verdict_for_score

logger = logging.getLogger(__name__)

STRONG_SELF_REPLY_BONUS = 50
SELF_REPLY_BONUS = 40
SELF_REPLY_MATCH = "promotional self-reply"
SELF_REPLY_REASON_PREFIX = "Promotional self-reply: "

_STRENGTH_RANK = {
    PromoStrength.NONE: 0,
    PromoStrength.WEAK: 1,
    PromoStrength.MODERATE: 2,
    PromoStrength.STRONG: 3,
}


def _at_least(current: PromoStrength, floor: PromoStrength) -> PromoStrength:
    return current if _STRENGTH_RANK[current] >= _STRENGTH_RANK[floor] else floor


def has_promotional_content(
    text: Optional[str],
    bio: Optional[str] = None,
    author_handle: Optional[str] = None,
) -> PromotionalContentResult:
    """
    Classify one reply. Strength priority: promo code (strong) > affiliate link
    to the author's own business (moderate) > any other tracking link or a
    self-promo phrase (weak); an own-product mention lifts weak to moderate.
    """
    result = PromotionalContentResult()
    if not text:
        return result

    promo = detect_promo_code(text)
    if promo.found:
        result.is_promotional = True
        result.promo_codes = list(promo.codes)
        result.signals.append(f"promo code: {promo.phrases[0]}")
        result.strength = PromoStrength.STRONG

    affiliate = detect_affiliate_links(text, bio, author_handle)
    if affiliate.found:
        result.is_promotional = True
        result.affiliate_links = list(affiliate.domains)
        result.signals.extend(f"affiliate: {pattern}" for pattern in affiliate.patterns)
        if affiliate.matches_author_business:
            result.signals.append("links to own product")
            result.strength = _at_least(result.strength, PromoStrength.MODERATE)
        else:
            result.strength = _at_least(result.strength, PromoStrength.WEAK)

    self_promo = detect_self_promo_phrase(text)
    if self_promo.found:
        result.is_promotional = True
        result.signals.append(f"self-promo: {self_promo.phrases[0]}")
        result.strength = _at_least(result.strength, PromoStrength.WEAK)

    if bio:
        own_links = detect_own_links(text, bio, author_handle)
        if own_links.found:
            result.is_promotional = True
            result.signals.append(f"mentions own product: {own_links.links[0]}")
            result.strength = _at_least(result.strength, PromoStrength.MODERATE)

    return result


def analyze_self_replies(
    parent: Post,
    replies: Iterable[Post],
    bio: Optional[str] = None,
) -> Optional[SelfReplyAnalysis]:
    """
    Check the replies under ``parent`` that were written by the same author.

    Returns ``None`` when none of them is promotional.
    """
    author = normalize_handle(parent.author.handle)
    analysis = SelfReplyAnalysis()

    for reply in replies:
        if reply.id == parent.id or normalize_handle(reply.author.handle) != author:
            continue
        check = has_promotional_content(reply.text, bio, parent.author.handle)
        if not check.is_promotional:
            continue
        analysis.has_promotional_self_reply = True
        analysis.promotional_content.append(check)
        analysis.promotional_reply_ids.append(reply.id)
        analysis.all_signals.extend(check.signals)
        logger.debug(
            "Promotional self-reply %s under %s by @%s (%s): %s",
            reply.id, parent.id, author, check.strength.value, check.signals,
        )

    if not analysis.has_promotional_self_reply:
        return None
    return analysis


def self_reply_bonus(analysis: SelfReplyAnalysis) -> int:
    if any(item.strength == PromoStrength.STRONG for item in analysis.promotional_content):
        return STRONG_SELF_REPLY_BONUS
    return SELF_REPLY_BONUS


def _merge(result: ScoredHeuristicResult, analysis: SelfReplyAnalysis) -> ScoredHeuristicResult:
    breakdown = copy.copy(result.score_breakdown)
    breakdown.self_reply_promo = max(breakdown.self_reply_promo, self_reply_bonus(analysis))
    score = max(0, breakdown.total())

    reasons = [reason for reason in result.verdict_reasons if not reason.startswith(SELF_REPLY_REASON_PREFIX)]
    reasons.append(SELF_REPLY_REASON_PREFIX + ", ".join(analysis.all_signals[:2]))

    can_show, confidence = verdict_for_score(score)
    if result.can_show_local_verdict and not can_show:
        can_show, confidence = True, result.suggested_confidence
    # Keep a higher confidence that was already on screen.
    if result.suggested_confidence is not None and confidence is not None:
        if CONFIDENCE_RANK[result.suggested_confidence] > CONFIDENCE_RANK[confidence]:
            confidence = result.suggested_confidence

    return replace(
        result,
        score=score,
        score_breakdown=breakdown,
        can_show_local_verdict=can_show,
        suggested_confidence=confidence,
        verdict_reasons=reasons,
        self_reply_analysis=analysis,
    )


def apply_self_reply_before_scoring(
    result: ScoredHeuristicResult,
    analysis: Optional[SelfReplyAnalysis],
) -> ScoredHeuristicResult:
    """
    Flag a parent that had no indicators of its own because a self-reply is
    promotional. The parent's own breakdown is kept and the bonus added to it.
    """
    if analysis is None or not analysis.has_promotional_self_reply:
        return result
    if not result.has_indicators:
        result = replace(
            result,
            has_indicators=True,
            matches=[SELF_REPLY_MATCH],
            category=IndicatorCategory.ACTION,
        )
    return _merge(result, analysis)


def apply_self_reply_after_scoring(
    result: ScoredHeuristicResult,
    analysis: Optional[SelfReplyAnalysis],
) -> ScoredHeuristicResult:
    """Add the self-reply bonus to an already scored parent. May upgrade, never downgrade."""
    if analysis is None or not analysis.has_promotional_self_reply:
        return result
    return _merge(result, analysis)
