# src/parley/models/__init__.py
"""SQLAlchemy models for the Parley application."""

from .category import Category, CategoryPermission
from .job import QueuedJob
from .post import Post
from .topic import Topic, TopicAllowedUser
from .user import User

__all__ = [
    "Category", "CategoryPermission",
    "QueuedJob",
    "Post",
    "Topic", "TopicAllowedUser",
    "User",
]
