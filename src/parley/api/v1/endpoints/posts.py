"""Post-related endpoints for the Parley API."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from parley.api.v1.dependencies import (
    CurrentUserDep,
    EvaluatorDep,
    OptionalUserDep,
    SessionDep,
    raise_for_action_error,
)
from parley.schemas.post import (
    FeedItem,
    PostCreate,
    PostLockedUpdate,
    PostResponse,
    PostUpdate,
)
from parley.services import posts as post_service
from parley.services.errors import PostActionError
from parley.services.feeds import FeedScope, list_feed, to_feed_item

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    evaluator: EvaluatorDep,
) -> PostResponse:
    """Create a reply, a new topic or a private message."""
    try:
        post = post_service.create_post(db, current_user, post_data, evaluator=evaluator)
    except PostActionError as err:
        raise_for_action_error(err)
    return PostResponse.from_post(post)


@router.get("/latest", response_model=list[FeedItem])
async def latest_posts(
    db: SessionDep,
    current_user: OptionalUserDep,
    evaluator: EvaluatorDep,
    scope: FeedScope = FeedScope.PUBLIC,
    limit: int | None = Query(None, ge=1),
) -> list[FeedItem]:
    """List the newest posts visible to the caller."""
    try:
        posts = list_feed(db, current_user, scope, evaluator=evaluator, limit=limit)
    except PostActionError as err:
        raise_for_action_error(err)
    return [to_feed_item(post) for post in posts]


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    db: SessionDep,
    current_user: OptionalUserDep,
    evaluator: EvaluatorDep,
) -> PostResponse:
    """Get a specific post the caller may see."""
    try:
        post = post_service.get_post(db, current_user, post_id, evaluator=evaluator)
    except PostActionError as err:
        raise_for_action_error(err)
    return PostResponse.from_post(post)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    post_data: PostUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
    evaluator: EvaluatorDep,
) -> PostResponse:
    """Edit a post's body or move its topic to another category."""
    try:
        post = post_service.update_post(db, current_user, post_id, post_data, evaluator=evaluator)
    except PostActionError as err:
        raise_for_action_error(err)
    return PostResponse.from_post(post)


@router.put("/{post_id}/locked", response_model=PostResponse)
async def set_post_locked(
    post_id: int,
    lock_data: PostLockedUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
    evaluator: EvaluatorDep,
) -> PostResponse:
    """Lock or unlock a post (staff only)."""
    try:
        post = post_service.set_locked(
            db, current_user, post_id, lock_data.locked, evaluator=evaluator
        )
    except PostActionError as err:
        raise_for_action_error(err)
    return PostResponse.from_post(post)
