"""
Category API routes.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.core.database import get_db
from app.core.errors import atomic
from app.modules.categories.services import (
    create_category,
    hide_category,
    list_categories,
    restore_category,
    serialize_category,
    update_category,
)

router = APIRouter()


class CategoryBody(BaseModel):
    """Request body for creating or renaming a category."""
    name: str
    type: Literal["in", "out"]


@router.get("/")
async def get_categories(
    type: Optional[str] = None,
    include_inactive: bool = False,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    List categories sorted by name.
    Hidden categories are only included when include_inactive is set.
    """
    categories = list_categories(db, owner_id, type_=type, include_inactive=include_inactive)
    return [serialize_category(c) for c in categories]


@router.post("/", status_code=status.HTTP_201_CREATED)
async def add_category(
    body: CategoryBody,
    response: Response,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create a category, or bring back a hidden one with the same name."""
    with atomic(db, "create category"):
        category, reactivated = create_category(db, owner_id, body.name, body.type)

    result = serialize_category(category)
    if reactivated:
        response.status_code = status.HTTP_200_OK
        result["message"] = "Category reactivated"
    return result


@router.put("/{category_id}")
async def edit_category(
    category_id: int,
    body: CategoryBody,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Rename a category or change its type."""
    with atomic(db, "update category"):
        category = update_category(db, owner_id, category_id, body.name, body.type)
    return serialize_category(category)


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Hide a category. Its transactions keep referencing it."""
    with atomic(db, "hide category"):
        hide_category(db, owner_id, category_id)
    return {"message": "Category hidden. It can be restored later."}


@router.put("/{category_id}/restore")
async def restore_hidden_category(
    category_id: int,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Restore a hidden category."""
    with atomic(db, "restore category"):
        category = restore_category(db, owner_id, category_id)
    return {"category": serialize_category(category), "message": "Category restored"}
