"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .category import CategoryCreate, CategoryPermissionsUpdate, CategoryResponse
from .post import (
    FeedItem,
    PostCreate,
    PostLockedUpdate,
    PostResponse,
    PostUpdate,
)
from .user import (
    ChallengeRequest,
    ChallengeResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
)

__all__ = [
    "CategoryCreate", "CategoryPermissionsUpdate", "CategoryResponse",
    "FeedItem", "PostCreate", "PostLockedUpdate", "PostResponse", "PostUpdate",
    "ChallengeRequest", "ChallengeResponse",
    "LoginRequest", "LoginResponse",
    "RegisterRequest", "RegisterResponse",
    "UserResponse",
]
