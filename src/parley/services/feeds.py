"""Feed queries and RSS rendering.

Visibility follows the permission evaluator: posts in private topics are
listed only for staff and participants, posts in regular topics only when the
actor can read the topic's category.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable
from enum import StrEnum

import feedgenerator
from sqlalchemy import and_, false, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from parley.core.constants import Archetype
from parley.core.settings import settings
from parley.models import Category, Post, Topic, TopicAllowedUser, User
from parley.schemas.post import FeedItem
from parley.services.errors import Forbidden, NotFound
from parley.services.permissions import Actor, CategoryAccess, PermissionEvaluator

EXCERPT_LENGTH = 200


class FeedScope(StrEnum):
    """Which slice of posts a feed lists."""

    PUBLIC = "public"
    PRIVATE = "private"
    MINE = "mine"


def _readable_category_ids(
    db: Session, actor: Actor | None, evaluator: PermissionEvaluator
) -> list[int]:
    categories = db.query(Category).all()
    return [
        category.id
        for category in categories
        if evaluator.category_level(actor, CategoryAccess.from_category(category)) is not None
    ]


def _public_clause(
    db: Session, actor: Actor | None, evaluator: PermissionEvaluator
) -> ColumnElement[bool]:
    readable = _readable_category_ids(db, actor, evaluator)
    return and_(
        Topic.archetype == Archetype.REGULAR.value,
        or_(Topic.category_id.is_(None), Topic.category_id.in_(readable)),
    )


def _private_clause(actor: Actor | None) -> ColumnElement[bool]:
    if actor is None:
        return false()
    is_private = Topic.archetype == Archetype.PRIVATE_MESSAGE.value
    if actor.is_staff:
        return is_private
    participant_topics = select(TopicAllowedUser.topic_id).where(
        TopicAllowedUser.user_id == actor.id
    )
    return and_(is_private, Topic.id.in_(participant_topics))


def _clamp_limit(limit: int | None) -> int:
    if limit is None:
        limit = settings.feed_default_items
    return max(1, min(limit, settings.feed_max_items))


def _run(db: Session, *criteria: ColumnElement[bool], limit: int | None) -> list[Post]:
    return (
        db.query(Post)
        .join(Topic, Post.topic_id == Topic.id)
        .filter(Post.deleted.is_(False), *criteria)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(_clamp_limit(limit))
        .all()
    )


def list_feed(
    db: Session,
    user: User | None,
    scope: FeedScope,
    *,
    evaluator: PermissionEvaluator,
    limit: int | None = None,
) -> list[Post]:
    """Return the newest posts of `scope` that `user` may see.

    Raises:
        Forbidden: If an anonymous caller asks for the private or own feed.
    """
    actor = Actor.from_user(user)

    if scope is FeedScope.PUBLIC:
        return _run(db, _public_clause(db, actor, evaluator), limit=limit)

    if actor is None:
        raise Forbidden("You must be logged in to view this feed")

    if scope is FeedScope.PRIVATE:
        return _run(db, _private_clause(actor), limit=limit)

    visible = or_(_public_clause(db, actor, evaluator), _private_clause(actor))
    return _run(db, Post.user_id == actor.id, visible, limit=limit)


def list_user_activity(
    db: Session,
    user: User | None,
    username: str,
    *,
    evaluator: PermissionEvaluator,
    limit: int | None = None,
) -> tuple[User, list[Post]]:
    """Return `username`'s posts that `user` may see.

    Raises:
        NotFound: If no user has that username.
    """
    author = db.query(User).filter(User.username == username).first()
    if author is None:
        raise NotFound("User not found")

    actor = Actor.from_user(user)
    visible = or_(_public_clause(db, actor, evaluator), _private_clause(actor))
    return author, _run(db, Post.user_id == author.id, visible, limit=limit)


def absolute_url(path: str) -> str:
    return settings.base_url.rstrip("/") + path


def _excerpt(raw: str) -> str:
    text = " ".join(raw.split())
    if len(text) <= EXCERPT_LENGTH:
        return text
    return text[: EXCERPT_LENGTH - 1].rstrip() + "…"


def to_feed_item(post: Post) -> FeedItem:
    """Convert a Post ORM instance to a feed summary."""
    return FeedItem(
        id=post.id,
        topic_id=post.topic_id,
        topic_title=post.topic.title,
        post_number=post.post_number,
        username=post.user.username,
        url=absolute_url(post.url),
        excerpt=_excerpt(post.raw),
        created_at=post.created_at,
    )


def _aware(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value


def render_rss(title: str, link: str, description: str, posts: Iterable[Post]) -> str:
    """Render posts as an RSS 2.0 document."""
    feed = feedgenerator.Rss201rev2Feed(
        title=title,
        link=absolute_url(link),
        description=description,
        language="en",
    )
    for post in posts:
        feed.add_item(
            title=post.topic.title,
            link=absolute_url(post.url),
            description=post.cooked or post.raw,
            # without an email address the author is written as dc:creator
            author_name=post.user.username,
            pubdate=_aware(post.created_at),
            unique_id=f"{settings.app_name}-post-{post.id}",
            unique_id_is_permalink=False,
        )
    return feed.writeString("utf-8")
