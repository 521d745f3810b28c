"""User profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from parley.api.v1.dependencies import CurrentUserDep, SessionDep
from parley.models import User
from parley.schemas.user import UserResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUserDep) -> User:
    """Return the authenticated user's profile."""
    return current_user


@router.get("/{username}", response_model=UserResponse)
async def get_user(username: str, db: SessionDep) -> User:
    """Return a user's public profile."""
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user
