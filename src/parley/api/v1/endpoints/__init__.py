"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .categories import router as categories_router
from .feeds import router as feeds_router
from .posts import router as posts_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "posts_router",
    "feeds_router",
    "categories_router",
    "users_router",
]
