# src/parley/models/topic.py
"""SQLAlchemy models for topics and private-message participants."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from parley.core.constants import Archetype
from parley.db.session import Base

if TYPE_CHECKING:
    from parley.models.category import Category
    from parley.models.user import User


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class Topic(Base):
    """A thread of posts; private messages carry no category."""

    __tablename__ = "topic"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    archetype: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=Archetype.REGULAR.value,
    )
    category_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("category.id"),
        nullable=True,
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    # Arbitrary string pairs supplied by the client at creation time.
    meta_data: Mapped[dict[str, str] | None] = mapped_column(JSON, nullable=True)
    is_official_warning: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    highest_post_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    posts_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    category: Mapped[Category | None] = relationship("Category")
    user: Mapped[User] = relationship("User")
    allowed_user_rows: Mapped[list[TopicAllowedUser]] = relationship(
        "TopicAllowedUser",
        back_populates="topic",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_private_message(self) -> bool:
        return self.archetype == Archetype.PRIVATE_MESSAGE.value

    @property
    def allowed_user_ids(self) -> frozenset[int]:
        return frozenset(row.user_id for row in self.allowed_user_rows)

    @property
    def allowed_users(self) -> list[User]:
        return [row.user for row in self.allowed_user_rows]


class TopicAllowedUser(Base):
    """Participant of a private-message topic."""

    __tablename__ = "topic_allowed_user"

    topic_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("topic.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        primary_key=True,
    )

    topic: Mapped[Topic] = relationship("Topic", back_populates="allowed_user_rows")
    user: Mapped[User] = relationship("User", lazy="selectin")
