"""
RecipeHub Backend — Authentication Service
============================================

What:  User registration and login against the `users` table.
How:   Passwords are hashed with bcrypt (cost 10); login issues a one-hour
       HS256 bearer token carrying {userId, username}.
Who:   Called by the /register and /login route handlers.

Error mapping:
    missing username/password → ValidationError (400)
    duplicate username        → ValidationError (400)
    unknown user / bad pass   → UnauthenticatedError (401)
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from recipehub.exceptions import UnauthenticatedError, ValidationError
from recipehub.models.user import User
from recipehub.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


def _require(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(message=f"'{field}' is required", field=field)
    return value


class AuthService:
    """Identity/credential store operations."""

    async def find_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def register(
        self,
        db: AsyncSession,
        username: Optional[str],
        password: Optional[str],
    ) -> User:
        """
        Create a user with a bcrypt-hashed password.

        Raises:
            ValidationError: missing fields or username already taken
        """
        username = _require(username, "username").strip()
        password = _require(password, "password")

        if await self.find_by_username(db, username) is not None:
            raise ValidationError(message="Username already exists", field="username")

        user = User(username=username, password_hash=hash_password(password))
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same name
            raise ValidationError(message="Username already exists", field="username")

        logger.info("User registered: %s", username)
        return user

    async def login(
        self,
        db: AsyncSession,
        username: Optional[str],
        password: Optional[str],
    ) -> str:
        """
        Verify credentials and return a signed bearer token.

        Raises:
            UnauthenticatedError: unknown username or wrong password
        """
        if not username or not password:
            raise UnauthenticatedError()

        user = await self.find_by_username(db, username.strip())
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt for username=%s", username)
            raise UnauthenticatedError()

        return create_access_token(user_id=str(user.id), username=user.username)


auth_service = AuthService()
