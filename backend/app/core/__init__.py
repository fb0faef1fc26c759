"""Core components: settings, database session, auth and error types."""

from app.core.config import settings
from app.core.database import Base, SessionLocal, get_db
from app.core.errors import ConflictError, InsufficientFundsError, NotFoundError, ValidationError, atomic

__all__ = [
    "settings",
    "Base",
    "SessionLocal",
    "get_db",
    "atomic",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InsufficientFundsError",
]
