# src/parley/models/post.py
"""SQLAlchemy model for posts."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from parley.db.session import Base
from parley.models.topic import _utcnow

if TYPE_CHECKING:
    from parley.models.topic import Topic
    from parley.models.user import User


class Post(Base):
    """A single message inside a topic."""

    __tablename__ = "post"
    __table_args__ = (UniqueConstraint("topic_id", "post_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    topic_id: Mapped[int] = mapped_column(Integer, ForeignKey("topic.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    # Sequential within the topic, starting at 1 for the opening post.
    post_number: Mapped[int] = mapped_column(Integer, nullable=False)
    reply_to_post_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    raw: Mapped[str] = mapped_column(Text, nullable=False)
    # Filled by the process_post job.
    cooked: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_sizes: Mapped[dict[str, str] | None] = mapped_column(JSON, nullable=True)

    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    locked_by_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_editor_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=True,
    )
    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        index=True,
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    topic: Mapped[Topic] = relationship("Topic")
    user: Mapped[User] = relationship("User", foreign_keys=[user_id])

    @property
    def url(self) -> str:
        return f"/t/{self.topic.slug}/{self.topic_id}/{self.post_number}"

    @property
    def is_first_post(self) -> bool:
        return self.post_number == 1
