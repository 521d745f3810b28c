"""Service-level helpers for creating, editing and locking posts.

Every permission and validation check runs before the first write, so a
rejected request leaves no partial topic, post or participant rows behind.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from parley.core.constants import Archetype
from parley.core.settings import settings
from parley.models import Category, Post, Topic, TopicAllowedUser, User
from parley.schemas.post import PostCreate, PostUpdate
from parley.services.errors import NotFound, ValidationFailed, ensure_allowed
from parley.services.jobs import PROCESS_POST, enqueue
from parley.services.permissions import (
    Action,
    Actor,
    CategoryAccess,
    PermissionEvaluator,
    PostAccess,
    Target,
    TopicAccess,
)
from parley.utils.text import clean_title, parse_usernames, slugify

logger = logging.getLogger(__name__)


def _validate_raw(raw: str) -> str:
    cleaned = raw.strip()
    if len(cleaned) < settings.min_post_length:
        raise ValidationFailed(
            f"Body is too short (minimum is {settings.min_post_length} characters)"
        )
    return cleaned


def _validate_title(title: str | None) -> str:
    cleaned = clean_title(title or "")
    if len(cleaned) < settings.min_topic_title_length:
        raise ValidationFailed(
            f"Title is too short (minimum is {settings.min_topic_title_length} characters)"
        )
    if len(cleaned) > settings.max_topic_title_length:
        raise ValidationFailed(
            f"Title is too long (maximum is {settings.max_topic_title_length} characters)"
        )
    return cleaned


def _load_recipients(db: Session, usernames: list[str]) -> list[User]:
    """Resolve usernames exactly; unknown names fail validation."""
    users = db.query(User).filter(User.username.in_(usernames)).all()
    found = {user.username for user in users}
    missing = [name for name in usernames if name not in found]
    if missing:
        raise ValidationFailed(f"Unknown usernames: {', '.join(missing)}")
    return users


def _get_live_post(db: Session, post_id: int) -> Post:
    post = db.query(Post).filter(Post.id == post_id, Post.deleted.is_(False)).first()
    if post is None:
        raise NotFound("Post not found")
    return post


def _post_number_exists(db: Session, topic_id: int, post_number: int) -> bool:
    return (
        db.query(Post.id)
        .filter(Post.topic_id == topic_id, Post.post_number == post_number)
        .first()
        is not None
    )


def _build_topic(
    db: Session,
    user: User,
    data: PostCreate,
    evaluator: PermissionEvaluator,
) -> Topic:
    """Validate and build (without flushing) the topic for a new thread."""
    actor = Actor.from_user(user)
    title = _validate_title(data.title)
    if data.reply_to_post_number is not None:
        raise ValidationFailed("A new topic cannot reply to a post")

    if data.archetype is Archetype.PRIVATE_MESSAGE:
        if data.category is not None:
            raise ValidationFailed("Private messages cannot belong to a category")
        usernames = parse_usernames(data.target_usernames)
        if not usernames:
            raise ValidationFailed("Private messages need at least one recipient")
        recipients = _load_recipients(db, usernames)
        ensure_allowed(
            evaluator.check(actor, Action.CREATE_POST, Target(archetype=Archetype.PRIVATE_MESSAGE))
        )
        # Non-staff requests are downgraded, not rejected.
        warning = evaluator.check(
            actor, Action.SET_WARNING, Target(requested_value=data.is_warning)
        ).value

        participant_ids = [user.id]
        participant_ids.extend(r.id for r in recipients if r.id not in participant_ids)
        topic = Topic(
            title=title,
            slug=slugify(title),
            archetype=Archetype.PRIVATE_MESSAGE.value,
            category_id=None,
            user_id=user.id,
            meta_data=data.meta_data,
            is_official_warning=bool(warning),
            highest_post_number=0,
            posts_count=0,
        )
        topic.allowed_user_rows = [TopicAllowedUser(user_id=uid) for uid in participant_ids]
        return topic

    category: Category | None = None
    if data.category is not None:
        category = db.get(Category, data.category)
        if category is None:
            raise NotFound("Category not found")
    ensure_allowed(
        evaluator.check(
            actor,
            Action.CREATE_POST,
            Target(category=CategoryAccess.from_category(category), archetype=Archetype.REGULAR),
        ),
        "You are not permitted to create topics in this category",
    )
    return Topic(
        title=title,
        slug=slugify(title),
        archetype=Archetype.REGULAR.value,
        category_id=category.id if category else None,
        user_id=user.id,
        meta_data=data.meta_data,
        is_official_warning=False,
        highest_post_number=0,
        posts_count=0,
    )


def create_post(
    db: Session,
    user: User,
    data: PostCreate,
    *,
    evaluator: PermissionEvaluator,
) -> Post:
    """Create a reply, a new topic or a private message.

    Args:
        db: Database session.
        user: Authenticated author.
        data: Validated request payload.
        evaluator: Permission evaluator consulted before any write.

    Returns:
        The persisted post.

    Raises:
        Forbidden: If the author may not post in the target topic or category.
        NotFound: If the referenced topic or category does not exist.
        ValidationFailed: If the body, title or recipients break posting rules.
    """
    actor = Actor.from_user(user)
    raw = _validate_raw(data.raw)

    if data.topic_id is not None:
        topic = db.get(Topic, data.topic_id)
        if topic is None:
            raise NotFound("Topic not found")
        ensure_allowed(
            evaluator.check(
                actor, Action.CREATE_POST, Target(topic=TopicAccess.from_topic(topic))
            ),
            "You are not permitted to reply to this topic",
        )
        if data.reply_to_post_number is not None and not _post_number_exists(
            db, topic.id, data.reply_to_post_number
        ):
            raise ValidationFailed("The post being replied to does not exist")
    else:
        topic = _build_topic(db, user, data, evaluator)
        db.add(topic)

    post_number = topic.highest_post_number + 1
    post = Post(
        topic=topic,
        user_id=user.id,
        post_number=post_number,
        reply_to_post_number=data.reply_to_post_number,
        raw=raw,
    )
    topic.highest_post_number = post_number
    topic.posts_count += 1
    db.add(post)
    db.commit()
    db.refresh(post)

    logger.info(
        "User %s created post %s (#%s in topic %s)",
        user.username,
        post.id,
        post.post_number,
        post.topic_id,
    )

    enqueue(db, PROCESS_POST, {"post_id": post.id, "image_sizes": data.image_sizes})
    return post


def update_post(
    db: Session,
    user: User,
    post_id: int,
    data: PostUpdate,
    *,
    evaluator: PermissionEvaluator,
) -> Post:
    """Edit a post's body and/or move its topic to another category.

    Raises:
        Forbidden: If the editor may not edit the post or use the category.
        NotFound: If the post or category does not exist.
        ValidationFailed: If the new body is too short or the move is invalid.
    """
    actor = Actor.from_user(user)
    post = _get_live_post(db, post_id)
    topic = post.topic

    ensure_allowed(
        evaluator.check(
            actor,
            Action.EDIT_POST,
            Target(topic=TopicAccess.from_topic(topic), post=PostAccess.from_post(post)),
        ),
        "You are not permitted to edit this post",
    )

    new_raw: str | None = None
    if data.raw is not None:
        new_raw = _validate_raw(data.raw)
        if new_raw == post.raw:
            new_raw = None

    new_category: Category | None = None
    if data.category_id is not None and data.category_id != topic.category_id:
        if topic.is_private_message:
            raise ValidationFailed("Private messages cannot belong to a category")
        if not post.is_first_post:
            raise ValidationFailed("Only the first post can change the topic's category")
        new_category = db.get(Category, data.category_id)
        if new_category is None:
            raise NotFound("Category not found")
        ensure_allowed(
            evaluator.check(
                actor,
                Action.UPDATE_POST_CATEGORY,
                Target(category=CategoryAccess.from_category(new_category)),
            ),
            "You are not permitted to move topics into this category",
        )

    if new_raw is not None:
        post.raw = new_raw
        post.cooked = None
        post.version += 1
        post.last_editor_id = user.id
    if new_category is not None:
        topic.category = new_category
    db.commit()
    db.refresh(post)

    if new_raw is not None:
        logger.info("User %s edited post %s (version %s)", user.username, post.id, post.version)
        enqueue(db, PROCESS_POST, {"post_id": post.id})
    if new_category is not None:
        logger.info("User %s moved topic %s to category %s", user.username, topic.id, new_category.id)
    return post


def set_locked(
    db: Session,
    user: User,
    post_id: int,
    locked: bool,
    *,
    evaluator: PermissionEvaluator,
) -> Post:
    """Lock or unlock a post. Repeating the same value is a no-op."""
    actor = Actor.from_user(user)
    post = _get_live_post(db, post_id)
    ensure_allowed(
        evaluator.check(actor, Action.LOCK_POST, Target(post=PostAccess.from_post(post))),
        "Only staff can lock posts",
    )

    if post.locked != locked:
        post.locked = locked
        post.locked_by_id = user.id if locked else None
        db.commit()
        db.refresh(post)
        logger.info(
            "User %s %s post %s", user.username, "locked" if locked else "unlocked", post.id
        )
    return post


def get_post(
    db: Session,
    user: User | None,
    post_id: int,
    *,
    evaluator: PermissionEvaluator,
) -> Post:
    """Return a post the actor is allowed to see."""
    post = _get_live_post(db, post_id)
    ensure_allowed(
        evaluator.check(
            Actor.from_user(user),
            Action.SEE_TOPIC,
            Target(topic=TopicAccess.from_topic(post.topic)),
        ),
        "You are not permitted to view this post",
    )
    return post
