"""
Category models.

A category classifies a transaction as income ('in') or expense ('out').
"""

from sqlalchemy import Column, String, Boolean, UniqueConstraint, Index

from app.shared.models.base import BaseModel, OwnedMixin


CATEGORY_TYPES = ("in", "out")


def normalize_name(name: str) -> str:
    """Key used for case-insensitive uniqueness."""
    return " ".join(name.split()).lower()


class Category(BaseModel, OwnedMixin):
    """User-defined income or expense label."""

    __tablename__ = "categories"

    name = Column(String(100), nullable=False)
    name_key = Column(String(100), nullable=False)  # normalize_name(name)
    type = Column(String(3), nullable=False)  # 'in', 'out'
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint('owner_id', 'name_key', 'type', name='uq_category_owner_name_type'),
        Index('idx_category_owner_active', 'owner_id', 'is_active'),
    )
