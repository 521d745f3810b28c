"""Category-related Pydantic schemas."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from parley.core.constants import AccessLevel

if TYPE_CHECKING:
    from parley.models import Category


class CategoryCreate(BaseModel):
    """Schema for creating a new category."""

    name: str = Field(..., min_length=1, max_length=50)
    slug: str | None = Field(None, max_length=50)
    description: str | None = None
    permissions: dict[str, AccessLevel] | None = Field(
        None,
        description="Group name to access level (1 full, 2 create_post, 3 readonly)",
    )


class CategoryPermissionsUpdate(BaseModel):
    """Schema replacing a category's permission set."""

    permissions: dict[str, AccessLevel]


class CategoryResponse(BaseModel):
    """Schema for category information returned by the API."""

    id: int
    name: str
    slug: str
    description: str | None
    read_restricted: bool
    permissions: dict[str, AccessLevel]

    @classmethod
    def from_category(cls, category: Category) -> CategoryResponse:
        return cls(
            id=category.id,
            name=category.name,
            slug=category.slug,
            description=category.description,
            read_restricted=category.read_restricted,
            permissions=category.permission_map,
        )
