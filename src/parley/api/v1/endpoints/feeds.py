"""RSS and activity feed endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, Response

from parley.api.v1.dependencies import (
    CurrentUserDep,
    EvaluatorDep,
    OptionalUserDep,
    SessionDep,
    raise_for_action_error,
)
from parley.core.settings import settings
from parley.schemas.post import FeedItem
from parley.services.errors import PostActionError
from parley.services.feeds import (
    FeedScope,
    list_feed,
    list_user_activity,
    render_rss,
    to_feed_item,
)

router = APIRouter(tags=["feeds"])

RSS_MEDIA_TYPE = "application/rss+xml"


def _rss_response(body: str) -> Response:
    return Response(content=body, media_type=RSS_MEDIA_TYPE)


@router.get("/posts.rss", response_class=Response)
async def public_posts_rss(
    db: SessionDep,
    current_user: OptionalUserDep,
    evaluator: EvaluatorDep,
    limit: int | None = Query(None, ge=1),
) -> Response:
    """Latest public posts as RSS."""
    posts = list_feed(db, current_user, FeedScope.PUBLIC, evaluator=evaluator, limit=limit)
    return _rss_response(
        render_rss(
            f"{settings.app_name} - Latest posts",
            "/posts.rss",
            "Latest posts",
            posts,
        )
    )


@router.get("/private-posts.rss", response_class=Response)
async def private_posts_rss(
    db: SessionDep,
    current_user: CurrentUserDep,
    evaluator: EvaluatorDep,
    limit: int | None = Query(None, ge=1),
) -> Response:
    """Latest private messages visible to the caller as RSS."""
    try:
        posts = list_feed(db, current_user, FeedScope.PRIVATE, evaluator=evaluator, limit=limit)
    except PostActionError as err:
        raise_for_action_error(err)
    return _rss_response(
        render_rss(
            f"{settings.app_name} - Private messages",
            "/private-posts.rss",
            "Latest private messages",
            posts,
        )
    )


@router.get("/u/{username}/activity", response_model=list[FeedItem])
async def user_activity(
    username: str,
    db: SessionDep,
    current_user: OptionalUserDep,
    evaluator: EvaluatorDep,
    limit: int | None = Query(None, ge=1),
) -> list[FeedItem]:
    """A user's posts that the caller may see."""
    try:
        _author, posts = list_user_activity(
            db, current_user, username, evaluator=evaluator, limit=limit
        )
    except PostActionError as err:
        raise_for_action_error(err)
    return [to_feed_item(post) for post in posts]


@router.get("/u/{username}/activity.rss", response_class=Response)
async def user_activity_rss(
    username: str,
    db: SessionDep,
    current_user: OptionalUserDep,
    evaluator: EvaluatorDep,
    limit: int | None = Query(None, ge=1),
) -> Response:
    """A user's visible posts as RSS."""
    try:
        author, posts = list_user_activity(
            db, current_user, username, evaluator=evaluator, limit=limit
        )
    except PostActionError as err:
        raise_for_action_error(err)
    return _rss_response(
        render_rss(
            f"{settings.app_name} - Activity of {author.username}",
            f"/u/{author.username}/activity.rss",
            f"Posts by {author.username}",
            posts,
        )
    )
