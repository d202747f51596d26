"""
RecipeHub Backend — Password Hashing and Token Signing
========================================================

What:  bcrypt password hashing (passlib) and HS256 JWT issue/verify (python-jose).
Who:   AuthService (register/login) and the `get_current_user` dependency.

Token claims:
    {"userId": "<uuid>", "username": "<name>", "exp": <unix time>}
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from recipehub.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Example:
        >>> hashed = hash_password("password123")
        >>> hashed.startswith("$2b$10$")
        True
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if `plain_password` matches the stored bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: str, username: str, expires_in: Optional[int] = None) -> str:
    """
    Issue a signed bearer token for a user.

    Args:
        user_id: User primary key (stringified UUID)
        username: Login name, used for ownership checks
        expires_in: Lifetime in seconds; defaults to settings.jwt_expiration
    """
    lifetime = settings.jwt_expiration if expires_in is None else expires_in
    payload = {
        "userId": user_id,
        "username": username,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=lifetime),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify signature and expiry and return the claims, or None if the token
    is invalid, expired, or missing the identity claims.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if not payload.get("userId") or not payload.get("username"):
        return None
    return payload
