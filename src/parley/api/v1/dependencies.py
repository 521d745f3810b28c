"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated, NoReturn

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from parley.core.settings import settings
from parley.db.session import get_db
from parley.models import User
from parley.services.errors import PostActionError
from parley.services.permissions import ErrorKind, PermissionEvaluator

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

_CREDENTIALS_ERROR = "Could not validate credentials"


def _user_from_token(token: str, db: Session) -> User:
    """Resolve the user a JWT access token was issued for.

    Raises:
        HTTPException: If the token is invalid or the user no longer exists.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_CREDENTIALS_ERROR,
        ) from err

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=_CREDENTIALS_ERROR,
        ) from err

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from the bearer token."""
    return _user_from_token(credentials.credentials, db)


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)],
    db: SessionDep,
) -> User | None:
    """Like `get_current_user`, but anonymous requests yield None."""
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, db)


def get_permission_evaluator() -> PermissionEvaluator:
    return PermissionEvaluator(allow_uncategorized=settings.allow_uncategorized_topics)


# Type aliases for user and evaluator dependencies
CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]
EvaluatorDep = Annotated[PermissionEvaluator, Depends(get_permission_evaluator)]

_STATUS_BY_KIND = {
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def raise_for_action_error(err: PostActionError) -> NoReturn:
    """Re-raise a service error as the matching HTTP error."""
    raise HTTPException(
        status_code=_STATUS_BY_KIND.get(err.kind, status.HTTP_403_FORBIDDEN),
        detail=str(err),
    ) from err
