"""
Independent, pure signal detectors.

Every detector is a total function over arbitrary text: empty or missing inputs
simply produce "nothing found". None of them depends on another detector's output.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from shillsniffer.keywords import (
    ACTION_TRIGGERS,
    AFFILIATE_URL_PARAMS,
    COMPANY_STOPWORDS,
    CONVERSATIONAL_REPLIES,
    ENGAGEMENT_BAIT_PHRASES,
    FUNDING_TRIGGERS,
    INDUSTRY_KEYWORDS,
    LINK_IN_BIO_DOMAINS,
    QUESTION_PATTERNS,
    RECOMMENDING_OTHERS_PATTERNS,
    ROLE_TRIGGERS,
    SELF_PROMO_PHRASES,
)
from shillsniffer.models import HeuristicResult, IndicatorCategory, normalize_handle

COMPANY_PATTERNS = [
    ("handle", re.compile(r"@(\w{2,})", re.ASCII)),
    ("domain", re.compile(r"(\w+)\.(?:com|io|ai|co|xyz|dev|app)\b", re.ASCII | re.IGNORECASE)),
    ("entity", re.compile(r"\b(\w+)\s+(?:inc|llc|ltd|corp)\b", re.ASCII | re.IGNORECASE)),
]

_MENTION_RE = re.compile(r"@(\w+)", re.ASCII)
_BIO_DOMAIN_RE = re.compile(r"(\w+)\.(?:com|io|ai|co|xyz|dev|app)\b", re.ASCII | re.IGNORECASE)
_BIO_PRODUCT_RE = re.compile(
    r"(?:building|founder of|created|ceo of|cto of|working on)\s+@?(\w+)", re.ASCII | re.IGNORECASE
)
_URL_RE = re.compile(r"https?://[^\s<>\"{}|\\^`\[\]]+", re.IGNORECASE)
_URL_HOST_RE = re.compile(r"https?://(?:www\.)?([^/?]+)", re.IGNORECASE)
_BARE_DOMAIN_RE = re.compile(
    r"\b([a-z0-9][-a-z0-9]*\.(?:com|io|ai|co|app|link|store|shop|xyz|dev|to|me|bio))\b", re.IGNORECASE
)
_OWN_DOMAIN_RE = re.compile(
    r"(?:https?://)?(?:www\.)?([a-z0-9-]+)\s*\.\s*(?:com|io|ai|co|xyz|dev|app|link|sh)\b", re.IGNORECASE
)
_NAMED_RE = re.compile(r"\b(?:called|named|is)\s+([a-z0-9]+)", re.IGNORECASE)

# Code tokens are matched case-sensitively so ordinary words ("use code today") are not read as codes.
PROMO_CODE_PATTERNS = [
    re.compile(r"\b(?:use|with|code|coupon|promo|discount)[:\s]+[\"']?((?-i:[A-Z0-9]{3,20}))[\"']?\b", re.IGNORECASE),
    re.compile(
        r"\b(?:code|coupon)[:\s]*[\"']?((?-i:[A-Z0-9]{3,20}))[\"']?\s*(?:for|to get|saves?|off)\b", re.IGNORECASE
    ),
    re.compile(r"\b(\d{1,3})%?\s*off\s*(?:with|using|code)\b", re.IGNORECASE),
    re.compile(r"\bsave\s*(?:\$?\d+|\d+%)\s*(?:with|using|code)\b", re.IGNORECASE),
    re.compile(r"\b((?-i:[A-Z]{2,}\d{1,4}))\b.*?(?:\d{1,3}%|off|\$\d+)", re.IGNORECASE),
]
_EXPLICIT_CODE_RE = re.compile(r"\b(?:my|our|the|use)\s+code\b", re.IGNORECASE)


@dataclass
class PhraseMatch:
    found: bool = False
    phrases: List[str] = field(default_factory=list)


@dataclass
class TopicMatch:
    matches: bool = False
    industry: Optional[str] = None


@dataclass
class OwnLinkResult:
    found: bool = False
    links: List[str] = field(default_factory=list)


@dataclass
class AffiliateLinkResult:
    found: bool = False
    patterns: List[str] = field(default_factory=list)
    matches_author_business: bool = False
    domains: List[str] = field(default_factory=list)


@dataclass
class PromoCodeResult:
    found: bool = False
    codes: List[str] = field(default_factory=list)
    phrases: List[str] = field(default_factory=list)


@dataclass
class QuestionResult:
    is_question: bool = False
    patterns: List[str] = field(default_factory=list)


@dataclass
class MentionResult:
    found: bool = False
    mentions: List[str] = field(default_factory=list)


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def _phrases_in(text: Optional[str], phrases: List[str]) -> PhraseMatch:
    if not text:
        return PhraseMatch()
    lower = text.lower()
    found = [phrase for phrase in phrases if phrase in lower]
    return PhraseMatch(found=bool(found), phrases=found)


def analyze_text(text: Optional[str]) -> HeuristicResult:
    """Role, action, funding and company-mention indicators in a single piece of text."""
    if not text:
        return HeuristicResult()

    lower = text.lower()
    matches: List[str] = []
    category: Optional[IndicatorCategory] = None

    for family, triggers in (
        (IndicatorCategory.ROLE, ROLE_TRIGGERS),
        (IndicatorCategory.ACTION, ACTION_TRIGGERS),
        (IndicatorCategory.FUNDING, FUNDING_TRIGGERS),
    ):
        for trigger in triggers:
            if trigger in lower:
                matches.append(trigger)
                category = category or family

    for kind, pattern in COMPANY_PATTERNS:
        for match in pattern.finditer(text):
            name = match.group(1)
            if len(name) <= 1 or name.lower() in COMPANY_STOPWORDS:
                continue
            if kind == "handle":
                matches.append(f"@{name}")
            elif kind == "domain":
                matches.append(match.group(0))
            else:
                matches.append(name)
            category = category or IndicatorCategory.COMPANY

    return HeuristicResult(has_indicators=bool(matches), matches=_unique(matches), category=category)


def extract_bio_companies(bio: Optional[str]) -> List[str]:
    """
    Company tokens a bio claims: ``@handle`` mentions (kept with the ``@``),
    domain and legal-entity names, and "building X" / "founder of X" style names.
    All lower-cased.
    """
    if not bio:
        return []
    companies: List[str] = []
    for kind, pattern in COMPANY_PATTERNS:
        for match in pattern.finditer(bio):
            name = match.group(1).lower()
            if len(name) <= 1 or name in COMPANY_STOPWORDS or name in ("http", "https"):
                continue
            companies.append(f"@{name}" if kind == "handle" else name)
    for match in _BIO_PRODUCT_RE.finditer(bio):
        name = match.group(1).lower()
        if len(name) > 2:
            companies.append(name)
    return _unique(companies)


def bio_company_names(bio: Optional[str], author_handle: Optional[str]) -> List[str]:
    """Bare lower-case names the author owns: their handle plus bio mentions, domains and product names."""
    names: List[str] = []
    handle = normalize_handle(author_handle)
    if handle:
        names.append(handle)
    if bio:
        names.extend(match.group(1).lower() for match in _MENTION_RE.finditer(bio))
        for pattern in (_BIO_DOMAIN_RE, _BIO_PRODUCT_RE):
            names.extend(m.group(1).lower() for m in pattern.finditer(bio) if len(m.group(1)) > 2)
    return _unique(names)


def detect_self_promo_phrase(text: Optional[str]) -> PhraseMatch:
    return _phrases_in(text, SELF_PROMO_PHRASES)


def detect_engagement_bait(text: Optional[str]) -> PhraseMatch:
    return _phrases_in(text, ENGAGEMENT_BAIT_PHRASES)


def detect_topic_match(text: Optional[str], bio: Optional[str]) -> TopicMatch:
    """First industry (in table order) that both the bio and the post talk about."""
    if not text or not bio:
        return TopicMatch()
    text_lower = text.lower()
    bio_lower = bio.lower()
    for industry, keywords in INDUSTRY_KEYWORDS:
        if not any(keyword in bio_lower for keyword in keywords):
            continue
        if any(keyword in text_lower for keyword in keywords):
            return TopicMatch(matches=True, industry=industry)
    return TopicMatch()


def detect_own_links(text: Optional[str], bio: Optional[str], author_handle: Optional[str]) -> OwnLinkResult:
    """Does the post point at something the author's bio says they own?"""
    if not text or not bio:
        return OwnLinkResult()

    lower = text.lower()
    companies = extract_bio_companies(bio)
    names = [company.lstrip("@") for company in companies]
    found: List[str] = []

    for company, name in zip(companies, names):
        if name in lower:
            found.append(company)

    handle = normalize_handle(author_handle)
    if handle and f"@{handle}" in lower:
        found.append(f"@{handle}")

    for match in _OWN_DOMAIN_RE.finditer(text):
        domain = match.group(1).lower()
        if len(domain) > 2 and any(domain in name or name in domain for name in names):
            found.append(domain)

    for match in _NAMED_RE.finditer(text):
        name = match.group(1).lower()
        if name in names:
            found.append(name)

    links = _unique(found)
    return OwnLinkResult(found=bool(links), links=links)


def detect_affiliate_links(
    text: Optional[str],
    bio: Optional[str] = None,
    author_handle: Optional[str] = None,
) -> AffiliateLinkResult:
    result = AffiliateLinkResult()
    if not text:
        return result

    urls = _URL_RE.findall(text)
    bare_domains = [match.group(1) for match in _BARE_DOMAIN_RE.finditer(text)]
    companies = bio_company_names(bio, author_handle) if bio else []

    for url in urls:
        lower_url = url.lower()
        for param in AFFILIATE_URL_PARAMS:
            if param in lower_url:
                result.found = True
                result.patterns.append(param.rstrip("="))
                if any(company in lower_url for company in companies):
                    result.matches_author_business = True
        host = _URL_HOST_RE.match(url)
        if host:
            result.domains.append(host.group(1).lower())

    for candidate in urls + bare_domains:
        lower_candidate = candidate.lower()
        for aggregator in LINK_IN_BIO_DOMAINS:
            if aggregator in lower_candidate:
                result.found = True
                result.patterns.append("link-in-bio platform")
                result.domains.append(aggregator)

    for domain in result.domains:
        stem = domain.split(".")[0]
        for company in companies:
            if company in domain or (stem and stem in company):
                result.matches_author_business = True

    result.patterns = _unique(result.patterns)
    result.domains = _unique(result.domains)
    return result


def detect_promo_code(text: Optional[str]) -> PromoCodeResult:
    result = PromoCodeResult()
    if not text:
        return result

    for pattern in PROMO_CODE_PATTERNS:
        match = pattern.search(text)
        if match:
            result.found = True
            result.phrases.append(match.group(0))
            if match.groups() and match.group(1):
                result.codes.append(match.group(1))

    explicit = _EXPLICIT_CODE_RE.search(text)
    if explicit:
        result.found = True
        result.phrases.append(explicit.group(0))

    result.codes = _unique(result.codes)
    result.phrases = _unique(result.phrases)
    return result


def detect_question(text: Optional[str]) -> QuestionResult:
    if not text:
        return QuestionResult()
    lower = text.lower()
    found: List[str] = []
    for pattern in QUESTION_PATTERNS:
        if pattern == "?":
            if "?" in text:
                found.append("question mark")
        elif pattern in lower:
            found.append(pattern)
    return QuestionResult(is_question=bool(found), patterns=found)


def detect_recommending_others(
    text: Optional[str],
    bio: Optional[str],
    author_handle: Optional[str],
) -> MentionResult:
    """Mentions of accounts that are neither the author nor a company from the author's bio."""
    if not text:
        return MentionResult()

    lower = text.lower()
    own = set(bio_company_names(bio, author_handle))
    found: List[str] = []

    for pattern in RECOMMENDING_OTHERS_PATTERNS:
        index = lower.find(pattern)
        if index < 0:
            continue
        mention = _MENTION_RE.search(text, index)
        if mention and mention.group(1).lower() not in own:
            found.append(f"@{mention.group(1).lower()}")

    for mention in _MENTION_RE.finditer(text):
        handle = mention.group(1).lower()
        if handle not in own:
            found.append(f"@{handle}")

    mentions = _unique(found)
    return MentionResult(found=bool(mentions), mentions=mentions)


def reply_has_promotional_signals(
    text: Optional[str],
    bio: Optional[str],
    author_handle: Optional[str],
) -> bool:
    """Cheap gate deciding whether a reply is worth scoring at all."""
    if not text:
        return False
    lower = text.lower()

    if detect_self_promo_phrase(text).found:
        return True
    if bio and detect_own_links(text, bio, author_handle).found:
        return True
    if any(marker in lower for marker in ("http://", "https://", ".com", ".io")):
        return True
    if any(marker in lower for marker in ("check out", "try my", "try our")):
        return True

    if len(text) < 50 and any(phrase in lower for phrase in CONVERSATIONAL_REPLIES):
        return False

    if bio:
        handle = normalize_handle(author_handle)
        for company in bio_company_names(bio, author_handle):
            if company != handle and company in lower:
                return True
    return False
