"""Permission and visibility decisions for forum actions.

`PermissionEvaluator.check` is a pure function of its inputs: it takes
immutable snapshots of the actor and the target (never ORM rows) and returns
a `Decision`. Denials are ordinary return values; callers decide how to
surface them. Because nothing is shared or mutated, one evaluator can be used
from any number of request threads or tasks.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from parley.core.constants import AccessLevel, Archetype, Role, groups_for_role

if TYPE_CHECKING:
    from parley.models import Category, Post, Topic, User


class Action(StrEnum):
    """Actions the evaluator can decide on."""

    CREATE_POST = "create_post"
    UPDATE_POST_CATEGORY = "update_post_category"
    LOCK_POST = "lock_post"
    SET_WARNING = "set_warning"
    SEE_TOPIC = "see_topic"
    EDIT_POST = "edit_post"
    MANAGE_CATEGORY = "manage_category"


class ErrorKind(StrEnum):
    """Reason codes attached to denials."""

    FORBIDDEN = "forbidden"
    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Actor:
    """Identity and role of the user performing an action."""

    id: int
    role: Role = Role.REGULAR

    @property
    def is_staff(self) -> bool:
        return self.role.is_staff

    @property
    def groups(self) -> frozenset[str]:
        return groups_for_role(self.role)

    @classmethod
    def from_user(cls, user: User | None) -> Actor | None:
        if user is None:
            return None
        return cls(id=user.id, role=Role(user.role))


@dataclass(frozen=True)
class CategoryAccess:
    """Snapshot of a category's permission set."""

    id: int
    permissions: Mapping[str, AccessLevel]

    @classmethod
    def from_category(cls, category: Category | None) -> CategoryAccess | None:
        if category is None:
            return None
        return cls(id=category.id, permissions=dict(category.permission_map))


@dataclass(frozen=True)
class TopicAccess:
    """Snapshot of the topic attributes that drive visibility."""

    id: int
    archetype: Archetype
    user_id: int
    allowed_user_ids: frozenset[int] = frozenset()
    category: CategoryAccess | None = None

    @property
    def is_private_message(self) -> bool:
        return self.archetype is Archetype.PRIVATE_MESSAGE

    @classmethod
    def from_topic(cls, topic: Topic) -> TopicAccess:
        return cls(
            id=topic.id,
            archetype=Archetype(topic.archetype),
            user_id=topic.user_id,
            allowed_user_ids=topic.allowed_user_ids,
            category=CategoryAccess.from_category(topic.category),
        )


@dataclass(frozen=True)
class PostAccess:
    """Snapshot of the post attributes relevant to editing."""

    id: int
    user_id: int
    locked: bool = False

    @classmethod
    def from_post(cls, post: Post) -> PostAccess:
        return cls(id=post.id, user_id=post.user_id, locked=post.locked)


@dataclass(frozen=True)
class Target:
    """What an action is aimed at; fields not needed by an action stay None."""

    category: CategoryAccess | None = None
    topic: TopicAccess | None = None
    post: PostAccess | None = None
    archetype: Archetype | None = None
    requested_value: bool | None = None


@dataclass(frozen=True)
class Decision:
    """Outcome of a permission check.

    `value` carries the effective value for actions that override rather than
    deny (currently only `set_warning`).
    """

    allow: bool
    reason: ErrorKind | None = None
    value: bool | None = field(default=None)

    @classmethod
    def allowed(cls, value: bool | None = None) -> Decision:
        return cls(allow=True, value=value)

    @classmethod
    def denied(cls, reason: ErrorKind = ErrorKind.FORBIDDEN) -> Decision:
        return cls(allow=False, reason=reason)

    def __bool__(self) -> bool:
        return self.allow


class PermissionEvaluator:
    """Decide whether an actor may perform an action on a target."""

    def __init__(self, *, allow_uncategorized: bool = True) -> None:
        self.allow_uncategorized = allow_uncategorized

    def check(self, actor: Actor | None, action: Action, target: Target) -> Decision:
        """Return the decision for `actor` performing `action` on `target`."""
        handler = {
            Action.CREATE_POST: self._check_create_post,
            Action.UPDATE_POST_CATEGORY: self._check_update_post_category,
            Action.LOCK_POST: self._check_lock_post,
            Action.SET_WARNING: self._check_set_warning,
            Action.SEE_TOPIC: self._check_see_topic,
            Action.EDIT_POST: self._check_edit_post,
            Action.MANAGE_CATEGORY: self._check_manage_category,
        }[action]
        return handler(actor, target)

    # Visibility helpers, usable without building a Target.

    def can_see_topic(self, actor: Actor | None, topic: TopicAccess) -> bool:
        if topic.is_private_message:
            if actor is None:
                return False
            return actor.is_staff or actor.id in topic.allowed_user_ids
        if topic.category is None:
            return True
        return self._category_level(actor, topic.category) is not None

    def category_level(self, actor: Actor | None, category: CategoryAccess) -> AccessLevel | None:
        """Return the best access level `actor` holds on `category`, or None."""
        return self._category_level(actor, category)

    def _category_level(
        self, actor: Actor | None, category: CategoryAccess
    ) -> AccessLevel | None:
        if actor is not None and actor.role is Role.ADMIN:
            return AccessLevel.FULL
        groups = actor.groups if actor is not None else groups_for_role(Role.REGULAR)
        levels = [level for group, level in category.permissions.items() if group in groups]
        if not levels:
            return None
        return min(levels)

    def _has_level(
        self, actor: Actor | None, category: CategoryAccess, required: AccessLevel
    ) -> bool:
        level = self._category_level(actor, category)
        return level is not None and level <= required

    # Individual rules.

    def _check_create_post(self, actor: Actor | None, target: Target) -> Decision:
        if actor is None:
            return Decision.denied()

        topic = target.topic
        if topic is not None:
            if not self.can_see_topic(actor, topic):
                return Decision.denied()
            if topic.is_private_message or topic.category is None:
                return Decision.allowed()
            if self._has_level(actor, topic.category, AccessLevel.CREATE_POST):
                return Decision.allowed()
            return Decision.denied()

        if target.category is not None:
            if self._has_level(actor, target.category, AccessLevel.FULL):
                return Decision.allowed()
            return Decision.denied()

        # New topic without a category.
        if target.archetype is Archetype.PRIVATE_MESSAGE:
            return Decision.allowed()
        if self.allow_uncategorized:
            return Decision.allowed()
        return Decision.denied()

    def _check_update_post_category(self, actor: Actor | None, target: Target) -> Decision:
        if actor is None:
            return Decision.denied()
        if target.category is None:
            return Decision.denied(ErrorKind.NOT_FOUND)
        if self._has_level(actor, target.category, AccessLevel.FULL):
            return Decision.allowed()
        return Decision.denied()

    def _check_lock_post(self, actor: Actor | None, target: Target) -> Decision:
        if actor is not None and actor.is_staff:
            return Decision.allowed()
        return Decision.denied()

    def _check_set_warning(self, actor: Actor | None, target: Target) -> Decision:
        requested = bool(target.requested_value)
        is_staff = actor is not None and actor.is_staff
        return Decision.allowed(value=requested and is_staff)

    def _check_see_topic(self, actor: Actor | None, target: Target) -> Decision:
        if target.topic is None:
            return Decision.denied(ErrorKind.NOT_FOUND)
        if self.can_see_topic(actor, target.topic):
            return Decision.allowed()
        return Decision.denied()

    def _check_edit_post(self, actor: Actor | None, target: Target) -> Decision:
        if actor is None or target.post is None:
            return Decision.denied()
        if actor.is_staff:
            return Decision.allowed()
        if target.post.locked or target.post.user_id != actor.id:
            return Decision.denied()
        if target.topic is not None and not self.can_see_topic(actor, target.topic):
            return Decision.denied()
        return Decision.allowed()

    def _check_manage_category(self, actor: Actor | None, target: Target) -> Decision:
        # creating categories and replacing their permission sets
        if actor is not None and actor.is_staff:
            return Decision.allowed()
        return Decision.denied()
