"""
Authentication API routes.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.auth import LoginRequest, TokenResponse, get_current_user, issue_token
from app.core.database import get_db
from app.core.errors import atomic
from app.modules.users.services import (
    authenticate_user,
    get_user,
    register_user,
    serialize_user,
)

router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(request: LoginRequest, db: Session = Depends(get_db)):
    """
    Create an account and log it in.
    Returns a JWT token valid for 7 days.
    """
    with atomic(db, "register"):
        user = register_user(db, request.username, request.password)
    return issue_token(user.id, serialize_user(user))


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, db: Session = Depends(get_db)):
    """
    Authenticate with username and password.
    Returns a JWT token valid for 7 days.
    """
    user = authenticate_user(db, request.username, request.password)
    return issue_token(user.id, serialize_user(user))


@router.post("/logout")
async def logout():
    """
    Logout - client should discard the token.
    """
    return {"message": "Logged out successfully"}


@router.get("/verify")
async def verify_token(user: dict = Depends(get_current_user)):
    """
    Verify the current token is valid.
    Returns token info if valid.
    """
    return {
        "valid": True,
        "user_id": int(user.get("sub")),
        "expires": user.get("exp"),
    }


@router.get("/me")
async def get_me(
    user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Get current user info.
    """
    return serialize_user(get_user(db, int(user["sub"])))
