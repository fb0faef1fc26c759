"""
User profile API routes.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.core.database import get_db
from app.core.errors import atomic
from app.modules.users.services import change_password, get_user, serialize_user

router = APIRouter()


class ChangePasswordRequest(BaseModel):
    """Request body for changing the account password."""
    current_password: str
    new_password: str


@router.get("/profile")
async def get_profile(
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Get the current user's profile."""
    return serialize_user(get_user(db, owner_id))


@router.put("/change-password")
async def update_password(
    request: ChangePasswordRequest,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Change the password after checking the current one."""
    with atomic(db, "change password"):
        change_password(db, owner_id, request.current_password, request.new_password)
    return {"message": "Password changed successfully"}
