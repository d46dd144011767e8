"""
Pydantic models for feed files read by the CLI.
"""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, field_validator

from shillsniffer.models import Author, Post, PostType


class AuthorIn(BaseModel):
    name: str = ""
    handle: str
    bio: Optional[str] = None

    @field_validator("handle", mode="before")
    @classmethod
    def _trim_handle(cls, value: str) -> str:
        return (value or "").strip().lstrip("@")


class PostIn(BaseModel):
    id: str
    text: str = ""
    author: AuthorIn
    post_type: PostType = PostType.ORIGINAL
    replying_to: Optional[str] = None
    self_replies: List["PostIn"] = []

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> str:
        return str(value)

    def to_post(self) -> Post:
        return Post(
            id=self.id,
            text=self.text,
            author=Author(name=self.author.name or self.author.handle, handle=self.author.handle, bio=self.author.bio),
            post_type=self.post_type,
            replying_to=self.replying_to,
        )


class FeedIn(BaseModel):
    payloads: List[Any] = []
    posts: List[PostIn] = []
