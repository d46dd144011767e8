"""
Pull author profiles out of arbitrarily shaped platform JSON payloads.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from shillsniffer.models import AuthorMetadata, VerifiedType

logger = logging.getLogger(__name__)

MAX_DEPTH = 20
SKIP_KEYS = frozenset(
    ["entities", "extended_entities", "media", "urls", "hashtags", "symbols", "user_mentions"]
)


@dataclass
class ObservedUser:
    handle: str
    name: str
    bio: str
    metadata: AuthorMetadata = field(default_factory=AuthorMetadata)


def _verified_type(obj: Dict[str, Any]) -> VerifiedType:
    if obj.get("is_blue_verified") or obj.get("verified_type") == "Blue":
        return VerifiedType.BLUE
    if obj.get("verified_type") == "Business":
        return VerifiedType.GOLD
    if obj.get("verified_type") == "Government":
        return VerifiedType.GRAY
    if obj.get("verified") is True:
        return VerifiedType.BLUE
    return VerifiedType.NONE


def _profile_url(obj: Dict[str, Any]) -> Optional[str]:
    entities = obj.get("entities")
    if not isinstance(entities, dict):
        return None
    url = entities.get("url")
    if not isinstance(url, dict):
        return None
    urls = url.get("urls")
    if isinstance(urls, list) and urls and isinstance(urls[0], dict):
        return urls[0].get("expanded_url") or None
    return None


def _first_category(obj: Dict[str, Any]) -> Optional[str]:
    professional = obj.get("professional")
    if not isinstance(professional, dict):
        return None
    categories = professional.get("category")
    if isinstance(categories, list) and categories and isinstance(categories[0], dict):
        return categories[0].get("name") or None
    return None


def _affiliate_label(obj: Dict[str, Any]) -> Optional[str]:
    highlighted = obj.get("affiliates_highlighted_label")
    if isinstance(highlighted, dict) and isinstance(highlighted.get("label"), dict):
        label = highlighted["label"]
        badge = label.get("badge")
        if isinstance(badge, dict) and badge.get("description"):
            return badge["description"]
        if label.get("description"):
            return label["description"]
    return _first_category(obj)


def _int_or_none(value: Any) -> Optional[int]:
    return value if isinstance(value, int) and not isinstance(value, bool) else None


def _user_from_legacy(wrapper: Dict[str, Any], legacy: Dict[str, Any]) -> ObservedUser:
    handle = legacy["screen_name"]
    verified = _verified_type(legacy)
    if verified == VerifiedType.NONE:
        verified = _verified_type(wrapper)
    metadata = AuthorMetadata(
        verified_type=verified if verified != VerifiedType.NONE else None,
        followers_count=_int_or_none(legacy.get("followers_count")) or _int_or_none(wrapper.get("followers_count")),
        professional_category=_first_category(wrapper),
        profile_url=_profile_url(legacy) or _profile_url(wrapper),
        affiliate_label=_affiliate_label(wrapper) or _affiliate_label(legacy),
    )
    return ObservedUser(
        handle=handle,
        name=legacy.get("name") or handle,
        bio=legacy.get("description") or "",
        metadata=metadata,
    )


def _user_from_flat(obj: Dict[str, Any]) -> ObservedUser:
    handle = obj["screen_name"]
    verified = _verified_type(obj)
    metadata = AuthorMetadata(
        verified_type=verified if verified != VerifiedType.NONE else None,
        followers_count=_int_or_none(obj.get("followers_count")),
        profile_url=_profile_url(obj),
        affiliate_label=_affiliate_label(obj),
    )
    return ObservedUser(
        handle=handle,
        name=obj.get("name") or handle,
        bio=obj.get("description") or "",
        metadata=metadata,
    )


def find_users(payload: Any, max_depth: int = MAX_DEPTH) -> List[ObservedUser]:
    """
    Depth-first walk collecting every user object, first occurrence per handle
    (case-insensitive). Nothing below ``max_depth`` or under a skip key is visited.
    """
    users: List[ObservedUser] = []
    seen = set()

    def add(user: ObservedUser) -> None:
        key = user.handle.lower()
        if key not in seen:
            seen.add(key)
            users.append(user)

    def visit(node: Any, depth: int) -> None:
        if depth > max_depth or not node:
            return
        if isinstance(node, list):
            for item in node:
                visit(item, depth + 1)
            return
        if not isinstance(node, dict):
            return

        legacy = node.get("legacy")
        if isinstance(legacy, dict) and isinstance(legacy.get("screen_name"), str):
            add(_user_from_legacy(node, legacy))
            return
        screen_name = node.get("screen_name")
        if isinstance(screen_name, str) and screen_name:
            add(_user_from_flat(node))
            return

        for key, value in node.items():
            if key not in SKIP_KEYS and isinstance(value, (dict, list)):
                visit(value, depth + 1)

    visit(payload, 0)
    return users


def parse_profile_result(user_result: Any) -> Optional[ObservedUser]:
    """Single profile lookup payload (``data.user.result``) to an ``ObservedUser``."""
    if not isinstance(user_result, dict):
        return None
    if user_result.get("__typename") == "UserUnavailable":
        return None
    legacy = user_result.get("legacy")
    if not isinstance(legacy, dict):
        return None

    handle = legacy.get("screen_name")
    if not isinstance(handle, str) or not handle:
        return None
    if user_result.get("is_blue_verified"):
        verified: Optional[VerifiedType] = VerifiedType.BLUE
    elif legacy.get("verified_type") == "Business":
        verified = VerifiedType.GOLD
    elif legacy.get("verified_type") == "Government":
        verified = VerifiedType.GRAY
    else:
        verified = None
    return ObservedUser(
        handle=handle,
        name=legacy.get("name") or handle,
        bio=legacy.get("description") or "",
        metadata=AuthorMetadata(
            verified_type=verified,
            followers_count=_int_or_none(legacy.get("followers_count")),
            profile_url=_profile_url(legacy),
        ),
    )


def harvest_users(payload: Any, bio_cache) -> List[ObservedUser]:
    """Cache every user in ``payload`` that has a non-empty bio; return those users."""
    harvested = [user for user in find_users(payload) if user.bio.strip()]
    for user in harvested:
        bio_cache.cache_bio(user.handle, user.name, user.bio, user.metadata)
    if harvested:
        logger.debug("Harvested %d bios from payload", len(harvested))
    return harvested
