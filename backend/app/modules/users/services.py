"""
User account service: registration, credential checks, password changes.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import AuthError, hash_password, verify_password
from app.core.config import settings
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.timezone import format_datetime_for_api
from app.modules.users.models import User

logger = logging.getLogger(__name__)


def normalize_username(username: str) -> str:
    return username.strip().lower()


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "name": user.name,
        "created_at": format_datetime_for_api(user.created_at),
    }


def _check_password_length(password: str):
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def find_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == normalize_username(username)).first()


def register_user(db: Session, username: str, password: str) -> User:
    """Create a new account. Usernames are case-insensitive."""
    username = normalize_username(username)
    if not username:
        raise ValidationError("Username is required")
    _check_password_length(password)

    if find_user_by_username(db, username):
        raise ConflictError("Username already exists")

    user = User(username=username, password_hash=hash_password(password))
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        raise ConflictError("Username already exists")

    logger.info(f"Registered user {user.id} ({username})")
    return user


def authenticate_user(db: Session, username: str, password: str) -> User:
    """Return the user for valid credentials; never reveal which part was wrong."""
    user = find_user_by_username(db, username)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthError("Invalid username or password")
    return user


def change_password(db: Session, user_id: int, current_password: str, new_password: str) -> User:
    user = get_user(db, user_id)
    _check_password_length(new_password)
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    logger.info(f"Password changed for user {user_id}")
    return user
