# src/parley/models/job.py
"""SQLAlchemy model for persisted background jobs."""

from sqlalchemy import JSON, VARCHAR, Integer, SmallInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from parley.db.session import Base

JOB_STATUS_PENDING = "pending"
JOB_STATUS_DONE = "done"
JOB_STATUS_FAILED = "failed"


class QueuedJob(Base):
    """Job waiting for the background worker."""

    __tablename__ = "queued_job"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)  # e.g., 'process_post'
    args: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(
        VARCHAR(20), nullable=False, default=JOB_STATUS_PENDING
    )  # 'pending', 'done', 'failed'
    attempts: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
