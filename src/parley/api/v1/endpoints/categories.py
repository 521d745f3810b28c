"""Category endpoints for the Parley API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import or_

from parley.api.v1.dependencies import (
    CurrentUserDep,
    EvaluatorDep,
    OptionalUserDep,
    SessionDep,
    raise_for_action_error,
)
from parley.models import Category, User
from parley.schemas.category import (
    CategoryCreate,
    CategoryPermissionsUpdate,
    CategoryResponse,
)
from parley.services.errors import PostActionError, ensure_allowed
from parley.services.permissions import (
    Action,
    Actor,
    CategoryAccess,
    PermissionEvaluator,
    Target,
)
from parley.utils.text import slugify

router = APIRouter(prefix="/categories", tags=["categories"])
logger = logging.getLogger(__name__)


def _require_manage(evaluator: PermissionEvaluator, user: User) -> None:
    try:
        ensure_allowed(
            evaluator.check(Actor.from_user(user), Action.MANAGE_CATEGORY, Target()),
            "Only staff can manage categories",
        )
    except PostActionError as err:
        raise_for_action_error(err)


def _apply_permissions(category: Category, permissions: dict[str, int]) -> None:
    try:
        category.set_permissions(**permissions)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(err),
        ) from err


@router.get("/", response_model=list[CategoryResponse])
async def list_categories(
    db: SessionDep,
    current_user: OptionalUserDep,
    evaluator: EvaluatorDep,
) -> list[CategoryResponse]:
    """List the categories the caller can read."""
    actor = Actor.from_user(current_user)
    categories = db.query(Category).order_by(Category.id).all()
    return [
        CategoryResponse.from_category(category)
        for category in categories
        if evaluator.category_level(actor, CategoryAccess.from_category(category)) is not None
    ]


@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: CategoryCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    evaluator: EvaluatorDep,
) -> CategoryResponse:
    """Create a new category (staff only)."""
    _require_manage(evaluator, current_user)

    slug = category_data.slug or slugify(category_data.name)
    existing = db.query(Category).filter(
        or_(Category.slug == slug, Category.name == category_data.name)
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Category name or slug already exists",
        )

    category = Category(
        name=category_data.name,
        slug=slug,
        description=category_data.description,
    )
    if category_data.permissions:
        _apply_permissions(category, category_data.permissions)

    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info("User %s created category %s (%s)", current_user.username, category.id, slug)
    return CategoryResponse.from_category(category)


@router.put("/{category_id}/permissions", response_model=CategoryResponse)
async def update_category_permissions(
    category_id: int,
    update: CategoryPermissionsUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
    evaluator: EvaluatorDep,
) -> CategoryResponse:
    """Replace a category's permission set (staff only)."""
    _require_manage(evaluator, current_user)

    category = db.get(Category, category_id)
    if category is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Category not found",
        )

    _apply_permissions(category, update.permissions)
    db.commit()
    db.refresh(category)
    logger.info(
        "User %s set permissions of category %s to %s",
        current_user.username,
        category.id,
        {group: int(level) for group, level in category.permission_map.items()},
    )
    return CategoryResponse.from_category(category)
