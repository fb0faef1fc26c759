"""
Authentication module for the Personal Finance Tracker.
Username/password accounts with JWT bearer tokens.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import hashlib
import hmac
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel

from app.core.config import settings


# Security scheme
security = HTTPBearer(auto_error=False)

HASH_ITERATIONS = 120_000


class LoginRequest(BaseModel):
    """Login / register request body."""
    username: str
    password: str


class TokenResponse(BaseModel):
    """Token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: dict


class AuthError(HTTPException):
    """Authentication error."""
    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Hash a password with PBKDF2-SHA256 and a per-user salt."""
    if salt is None:
        salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        f"{settings.SECRET_KEY}:{password}".encode(),
        salt.encode(),
        HASH_ITERATIONS,
    ).hex()
    return f"{salt}${digest}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Verify a password against a stored "salt$digest" value."""
    salt, _, _ = stored_hash.partition("$")
    return hmac.compare_digest(hash_password(password, salt), stored_hash)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token for a user."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    expire = datetime.now(timezone.utc) + expires_delta

    payload = {
        "sub": str(user_id),
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "jti": secrets.token_hex(16),  # Unique token ID
    }

    return jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])
    except JWTError as e:
        if "expired" in str(e).lower():
            raise AuthError("Token has expired")
        raise AuthError("Invalid token")

    if not str(payload.get("sub", "")).isdigit():
        raise AuthError("Invalid token")
    return payload


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    Dependency to get the current authenticated user.
    Returns the decoded token payload if valid.
    """
    if credentials is None:
        raise AuthError("Authentication required")

    token = credentials.credentials
    return decode_token(token)


async def get_current_user_id(user: dict = Depends(get_current_user)) -> int:
    """Dependency returning the owner id every query is scoped to."""
    return int(user["sub"])


def issue_token(user_id: int, user_info: dict) -> TokenResponse:
    """Build the token response returned by register and login."""
    expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(user_id, expires_delta)

    return TokenResponse(
        access_token=access_token,
        expires_in=int(expires_delta.total_seconds()),
        user=user_info,
    )
