"""Post-related Pydantic schemas."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from parley.core.constants import Archetype

if TYPE_CHECKING:
    from parley.models import Post


class PostCreate(BaseModel):
    """Schema for creating a post, a new topic or a private message."""

    raw: str = Field(..., description="Raw post body")
    title: str | None = Field(None, description="Title, required when starting a topic")
    category: int | None = Field(None, description="Category id for a new regular topic")
    topic_id: int | None = Field(None, description="Topic to reply to")
    reply_to_post_number: int | None = Field(
        None,
        ge=1,
        description="Post number within the topic this post answers",
    )
    archetype: Archetype = Field(Archetype.REGULAR, description="Topic archetype for new topics")
    target_usernames: str | None = Field(
        None,
        description="Comma separated participants of a private message",
    )
    is_warning: bool = Field(False, description="Mark a private message as an official warning")
    meta_data: dict[str, str] | None = Field(None, description="Free-form topic metadata")
    image_sizes: dict[str, str] | None = Field(
        None,
        description="Client-reported image dimensions passed to post processing",
    )


class PostUpdate(BaseModel):
    """Schema for editing a post."""

    raw: str | None = Field(None, description="New raw body")
    category_id: int | None = Field(None, description="Move the topic to this category")


class PostLockedUpdate(BaseModel):
    """Schema for locking or unlocking a post."""

    locked: bool


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: int
    topic_id: int
    user_id: int
    username: str
    post_number: int
    reply_to_post_number: int | None
    raw: str
    cooked: str | None
    locked: bool
    version: int
    url: str
    created_at: datetime.datetime
    topic_title: str
    archetype: Archetype
    category_id: int | None
    is_official_warning: bool

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_post(cls, post: Post) -> PostResponse:
        topic = post.topic
        return cls(
            id=post.id,
            topic_id=post.topic_id,
            user_id=post.user_id,
            username=post.user.username,
            post_number=post.post_number,
            reply_to_post_number=post.reply_to_post_number,
            raw=post.raw,
            cooked=post.cooked,
            locked=post.locked,
            version=post.version,
            url=post.url,
            created_at=post.created_at,
            topic_title=topic.title,
            archetype=Archetype(topic.archetype),
            category_id=topic.category_id,
            is_official_warning=topic.is_official_warning,
        )


class FeedItem(BaseModel):
    """Summary of a post as listed in feeds."""

    id: int
    topic_id: int
    topic_title: str
    post_number: int
    username: str
    url: str
    excerpt: str
    created_at: datetime.datetime
