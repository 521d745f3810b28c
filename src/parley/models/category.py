# src/parley/models/category.py
"""SQLAlchemy models for categories and their permission sets."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from parley.core.constants import GROUP_EVERYONE, KNOWN_GROUPS, AccessLevel
from parley.db.session import Base


class Category(Base):
    """Grouping of regular topics guarded by a permission set."""

    __tablename__ = "category"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    permissions: Mapped[list[CategoryPermission]] = relationship(
        "CategoryPermission",
        back_populates="category",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def permission_map(self) -> dict[str, AccessLevel]:
        """Return `{group: level}`; no rows means everyone has full access."""
        if not self.permissions:
            return {GROUP_EVERYONE: AccessLevel.FULL}
        return {row.group_name: AccessLevel(row.permission_type) for row in self.permissions}

    @property
    def read_restricted(self) -> bool:
        return GROUP_EVERYONE not in self.permission_map

    def set_permissions(self, **levels: AccessLevel | str | int) -> None:
        """Replace the permission set, e.g. ``set_permissions(staff="full")``.

        Raises:
            ValueError: For unknown groups or access levels.
        """
        rows: list[CategoryPermission] = []
        for group_name, level in levels.items():
            if group_name not in KNOWN_GROUPS:
                raise ValueError(f"Unknown group: {group_name}")
            rows.append(
                CategoryPermission(group_name=group_name, permission_type=int(_coerce_level(level)))
            )
        self.permissions = rows


class CategoryPermission(Base):
    """One row of a category's permission set."""

    __tablename__ = "category_permission"

    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("category.id", ondelete="CASCADE"),
        primary_key=True,
    )
    group_name: Mapped[str] = mapped_column(String(32), primary_key=True)
    # AccessLevel value: 1 = full, 2 = create_post, 3 = readonly.
    permission_type: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    category: Mapped[Category] = relationship("Category", back_populates="permissions")


def _coerce_level(level: AccessLevel | str | int) -> AccessLevel:
    if isinstance(level, AccessLevel):
        return level
    if isinstance(level, str):
        try:
            return AccessLevel[level.upper()]
        except KeyError as err:
            raise ValueError(f"Unknown access level: {level}") from err
    return AccessLevel(level)
