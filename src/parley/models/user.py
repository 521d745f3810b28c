# src/parley/models/user.py
"""SQLAlchemy model for forum accounts."""

from __future__ import annotations

from sqlalchemy import Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from parley.core.constants import Role
from parley.db.session import Base


class User(Base):
    """A registered account identified by username and Ed25519 public key."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    pubkey: Mapped[bytes] = mapped_column(LargeBinary(32), unique=True, nullable=False)
    # One of the Role values; stored as text so new tiers need no migration.
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=Role.REGULAR.value)

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    @property
    def is_staff(self) -> bool:
        return self.role_enum.is_staff

    def __repr__(self) -> str:
        return f"<User {self.username!r} role={self.role}>"
