"""
Domain errors and the write-path transaction helper.

Errors subclass HTTPException (like AuthError in app.core.auth) so that
services can raise them directly and FastAPI renders the right status.
"""

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class ValidationError(HTTPException):
    """Request is well-formed but its values cannot be applied."""
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundError(HTTPException):
    """Entity does not exist or belongs to another owner."""
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    """Business rule prevents the change; the caller must resolve it first."""
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InsufficientFundsError(HTTPException):
    """Balance is lower than the requested amount."""
    def __init__(self, detail: str, available: Decimal, requested: Optional[Decimal] = None):
        self.available = available
        self.requested = requested
        body = {"message": detail, "available": float(available)}
        if requested is not None:
            body["requested"] = float(requested)
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=body)


@contextmanager
def atomic(db: Session, action: str = "request"):
    """
    Commit the session if the block succeeds, roll back otherwise.

    HTTP errors raised inside the block pass through unchanged. Anything
    else is logged and surfaced as a generic 500.
    """
    try:
        yield db
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Unexpected error during {action}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )
