"""
Core data structures shared by the scoring engine, caches and remote analysis.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional


class PostType(str, Enum):
    ORIGINAL = "original"
    REPLY = "reply"
    QUOTE = "quote"
    REPOST = "repost"


class VerifiedType(str, Enum):
    BLUE = "blue"
    GOLD = "gold"
    GRAY = "gray"
    NONE = "none"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


class IndicatorCategory(str, Enum):
    ROLE = "role"
    ACTION = "action"
    FUNDING = "funding"
    COMPANY = "company"


class PromoStrength(str, Enum):
    NONE = "none"
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


class LLMProvider(str, Enum):
    GROQ = "groq"
    OLLAMA = "ollama"


@dataclass
class Author:
    name: str
    handle: str
    bio: Optional[str] = None


@dataclass
class Post:
    """
    A post as handed over by the page collaborator. The core never mutates it.
    """

    id: str
    text: str
    author: Author
    post_type: PostType = PostType.ORIGINAL
    replying_to: Optional[str] = None


@dataclass
class AuthorMetadata:
    verified_type: Optional[VerifiedType] = None
    followers_count: Optional[int] = None
    professional_category: Optional[str] = None
    profile_url: Optional[str] = None
    affiliate_label: Optional[str] = None


@dataclass
class UserBioData:
    handle: str
    name: str
    bio: str
    metadata: AuthorMetadata = field(default_factory=AuthorMetadata)
    cached_at: float = 0.0


@dataclass
class HeuristicResult:
    has_indicators: bool = False
    matches: List[str] = field(default_factory=list)
    category: Optional[IndicatorCategory] = None


@dataclass
class ScoreBreakdown:
    bio_role: int = 0
    topic_match: int = 0
    self_promo: int = 0
    own_link: int = 0
    engagement_bait: int = 0
    affiliate_link: int = 0
    promo_code: int = 0
    self_reply_promo: int = 0
    reply_penalty: int = 0
    question_bonus: int = 0
    competitor_mention: int = 0

    def total(self) -> int:
        return sum(getattr(self, f.name) for f in fields(self))

    def as_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class PromotionalContentResult:
    is_promotional: bool = False
    signals: List[str] = field(default_factory=list)
    promo_codes: List[str] = field(default_factory=list)
    affiliate_links: List[str] = field(default_factory=list)
    strength: PromoStrength = PromoStrength.NONE


@dataclass
class SelfReplyAnalysis:
    has_promotional_self_reply: bool = False
    promotional_content: List[PromotionalContentResult] = field(default_factory=list)
    promotional_reply_ids: List[str] = field(default_factory=list)
    all_signals: List[str] = field(default_factory=list)


@dataclass
class ScoredHeuristicResult:
    has_indicators: bool
    matches: List[str]
    category: Optional[IndicatorCategory]
    score: int
    score_breakdown: ScoreBreakdown
    can_show_local_verdict: bool
    suggested_confidence: Optional[Confidence]
    verdict_reasons: List[str] = field(default_factory=list)
    self_reply_analysis: Optional[SelfReplyAnalysis] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_indicators": self.has_indicators,
            "matches": list(self.matches),
            "category": self.category.value if self.category else None,
            "score": self.score,
            "score_breakdown": self.score_breakdown.as_dict(),
            "can_show_local_verdict": self.can_show_local_verdict,
            "suggested_confidence": self.suggested_confidence.value if self.suggested_confidence else None,
            "verdict_reasons": list(self.verdict_reasons),
            "self_reply_signals": list(self.self_reply_analysis.all_signals) if self.self_reply_analysis else [],
        }


@dataclass
class AnalysisResult:
    confidence: Confidence
    has_commercial_interest: bool
    is_disclosed: bool
    explanation: str
    business_connection: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence": self.confidence.value,
            "has_commercial_interest": self.has_commercial_interest,
            "is_disclosed": self.is_disclosed,
            "explanation": self.explanation,
            "business_connection": self.business_connection,
        }


@dataclass
class CachedAnalysis(AnalysisResult):
    timestamp: float = 0.0


@dataclass
class RateLimitResult:
    allowed: bool
    wait_seconds: Optional[int] = None


@dataclass
class AnalyzeRequest:
    post_id: str
    text: str
    author_name: str
    author_handle: str
    author_bio: Optional[str] = None
    author_metadata: Optional[AuthorMetadata] = None
    flagged_indicators: List[str] = field(default_factory=list)


@dataclass
class AnalyzeResponse:
    post_id: str
    success: bool
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    cached: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "post_id": self.post_id,
            "success": self.success,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
            "cached": self.cached,
        }


def normalize_handle(handle: Optional[str]) -> str:
    """Canonical cache key for an author handle: leading ``@`` stripped, lower-cased."""
    return (handle or "").strip().lstrip("@").lower()
