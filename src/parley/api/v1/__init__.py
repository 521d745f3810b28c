"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    categories_router,
    feeds_router,
    posts_router,
    users_router,
)

__all__ = [
    "auth_router",
    "posts_router",
    "feeds_router",
    "categories_router",
    "users_router",
]
