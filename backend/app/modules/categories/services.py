"""
Category management service.

Names are unique per owner and type, case-insensitively. Deleting a
category only hides it; creating a category with the name of a hidden one
brings the hidden one back instead of inserting a duplicate.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.modules.categories.models import CATEGORY_TYPES, Category, normalize_name
from app.modules.transactions.models import Transaction

logger = logging.getLogger(__name__)


def serialize_category(category: Category) -> Dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "type": category.type,
        "is_active": category.is_active,
    }


def _clean(name: str, type_: str) -> Tuple[str, str]:
    name = " ".join((name or "").split())
    if not name:
        raise ValidationError("Category name cannot be empty")
    if type_ not in CATEGORY_TYPES:
        raise ValidationError("Category type must be 'in' or 'out'")
    return name, normalize_name(name)


def get_owned_category(db: Session, owner_id: int, category_id: int) -> Category:
    """Load a category of this owner or raise 404."""
    category = db.query(Category).filter(
        Category.id == category_id,
        Category.owner_id == owner_id,
    ).first()
    if category is None:
        raise NotFoundError("Category not found")
    return category


def find_category(db: Session, owner_id: int, name: str, type_: str) -> Optional[Category]:
    return db.query(Category).filter(
        Category.owner_id == owner_id,
        Category.name_key == normalize_name(name),
        Category.type == type_,
    ).first()


def list_categories(
    db: Session,
    owner_id: int,
    type_: Optional[str] = None,
    include_inactive: bool = False,
) -> List[Category]:
    query = db.query(Category).filter(Category.owner_id == owner_id)
    if not include_inactive:
        query = query.filter(Category.is_active.is_(True))
    if type_ in CATEGORY_TYPES:
        query = query.filter(Category.type == type_)
    return query.order_by(Category.name).all()


def create_category(db: Session, owner_id: int, name: str, type_: str) -> Tuple[Category, bool]:
    """
    Create a category, or reactivate a hidden one with the same name.

    Returns (category, reactivated).
    """
    name, key = _clean(name, type_)
    existing = find_category(db, owner_id, key, type_)

    if existing is not None:
        if existing.is_active:
            raise ConflictError("Category already exists")
        existing.is_active = True
        logger.info(f"Reactivated category {existing.id} for user {owner_id}")
        return existing, True

    category = Category(owner_id=owner_id, name=name, name_key=key, type=type_, is_active=True)
    try:
        with db.begin_nested():
            db.add(category)
            db.flush()
    except IntegrityError:
        raise ConflictError("Category already exists")
    return category, False


def update_category(db: Session, owner_id: int, category_id: int, name: str, type_: str) -> Category:
    """Rename a category or change its type."""
    name, key = _clean(name, type_)
    category = get_owned_category(db, owner_id, category_id)

    duplicate = db.query(Category).filter(
        Category.owner_id == owner_id,
        Category.name_key == key,
        Category.type == type_,
        Category.id != category_id,
    ).first()
    if duplicate is not None:
        raise ConflictError("Category name already exists")

    # Stored amounts are unsigned; flipping the type would flip history
    if type_ != category.type and category_has_transactions(db, category.id):
        raise ConflictError("Cannot change the type of a category that already has transactions")

    category.name = name
    category.name_key = key
    category.type = type_
    return category


def hide_category(db: Session, owner_id: int, category_id: int) -> Category:
    category = get_owned_category(db, owner_id, category_id)
    category.is_active = False
    return category


def restore_category(db: Session, owner_id: int, category_id: int) -> Category:
    category = get_owned_category(db, owner_id, category_id)
    if category.is_active:
        raise NotFoundError("Hidden category not found")
    category.is_active = True
    return category


def category_has_transactions(db: Session, category_id: int) -> bool:
    return db.query(Transaction.id).filter(Transaction.category_id == category_id).first() is not None


def get_or_create_category(db: Session, owner_id: int, name: str, type_: str) -> Category:
    """
    Idempotent lookup used for system categories.

    The insert runs in a SAVEPOINT; if a concurrent request created the same
    row first, the unique constraint fires and the existing row is re-read.
    """
    existing = find_category(db, owner_id, name, type_)
    if existing is not None:
        return existing

    category = Category(
        owner_id=owner_id,
        name=name,
        name_key=normalize_name(name),
        type=type_,
        is_active=True,
    )
    try:
        with db.begin_nested():
            db.add(category)
            db.flush()
    except IntegrityError:
        logger.info(f"Category '{name}' created concurrently for user {owner_id}, reusing it")
        existing = find_category(db, owner_id, name, type_)
        if existing is None:
            raise
        return existing

    logger.info(f"Created system category '{name}' ({type_}) for user {owner_id}")
    return category
