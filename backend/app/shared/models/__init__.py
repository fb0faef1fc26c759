"""Shared database models."""

from app.shared.models.base import BaseModel, OwnedMixin, TimestampMixin

__all__ = [
    "BaseModel",
    "OwnedMixin",
    "TimestampMixin",
]
