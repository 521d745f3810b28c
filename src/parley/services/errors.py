"""Exceptions raised by the post services.

Each exception carries the `ErrorKind` the HTTP layer maps to a status code.
"""

from __future__ import annotations

from parley.services.permissions import Decision, ErrorKind


class PostActionError(RuntimeError):
    """Base exception for rejected post operations."""

    kind: ErrorKind = ErrorKind.FORBIDDEN

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def default_message(self) -> str:
        return "Action not allowed"


class Forbidden(PostActionError):
    """The actor lacks permission for the action."""

    kind = ErrorKind.FORBIDDEN

    @property
    def default_message(self) -> str:
        return "You are not permitted to perform this action"


class NotFound(PostActionError):
    """A referenced topic, post, category or user does not exist."""

    kind = ErrorKind.NOT_FOUND

    @property
    def default_message(self) -> str:
        return "Not found"


class ValidationFailed(PostActionError):
    """The request is well-formed but breaks a posting rule."""

    kind = ErrorKind.VALIDATION_FAILED

    @property
    def default_message(self) -> str:
        return "Validation failed"


_ERRORS_BY_KIND: dict[ErrorKind, type[PostActionError]] = {
    ErrorKind.FORBIDDEN: Forbidden,
    ErrorKind.NOT_FOUND: NotFound,
    ErrorKind.VALIDATION_FAILED: ValidationFailed,
}


def ensure_allowed(decision: Decision, message: str | None = None) -> Decision:
    """Return `decision` if it allows, otherwise raise the matching error."""
    if decision.allow:
        return decision
    error_cls = _ERRORS_BY_KIND.get(decision.reason or ErrorKind.FORBIDDEN, Forbidden)
    raise error_cls(message)
