"""
User account model.
"""

from sqlalchemy import Column, String

from app.shared.models.base import BaseModel


class User(BaseModel):
    """A tenant. Every other row is scoped to one user."""

    __tablename__ = "users"

    username = Column(String(100), nullable=False, unique=True)  # stored lower-cased
    password_hash = Column(String(200), nullable=False)  # "salt$hexdigest"
    email = Column(String(255), nullable=True)
    name = Column(String(200), nullable=True)
