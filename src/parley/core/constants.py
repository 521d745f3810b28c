"""Enumerations shared by the ORM models and the permission evaluator."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class Role(StrEnum):
    """Role tier of an actor."""

    REGULAR = "regular"
    MODERATOR = "moderator"
    ADMIN = "admin"

    @property
    def is_staff(self) -> bool:
        return self in (Role.MODERATOR, Role.ADMIN)


class AccessLevel(IntEnum):
    """Category access levels; lower values grant more."""

    FULL = 1
    CREATE_POST = 2
    READONLY = 3


class Archetype(StrEnum):
    """Topic classification."""

    REGULAR = "regular"
    PRIVATE_MESSAGE = "private_message"


# Implicit permission groups.
GROUP_EVERYONE = "everyone"
GROUP_STAFF = "staff"
GROUP_MODERATORS = "moderators"
GROUP_ADMINS = "admins"

KNOWN_GROUPS = frozenset({GROUP_EVERYONE, GROUP_STAFF, GROUP_MODERATORS, GROUP_ADMINS})


def groups_for_role(role: Role) -> frozenset[str]:
    """Return the permission groups an actor with `role` belongs to."""
    if role is Role.ADMIN:
        return frozenset({GROUP_EVERYONE, GROUP_STAFF, GROUP_ADMINS})
    if role is Role.MODERATOR:
        return frozenset({GROUP_EVERYONE, GROUP_STAFF, GROUP_MODERATORS})
    return frozenset({GROUP_EVERYONE})
