"""
RecipeHub Backend — Authentication Schemas
============================================

What:  Register/login bodies, token response, and the authenticated identity
       extracted from a bearer token.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    """
    Body of POST /register and POST /login.

    Both fields are optional at the schema level; AuthService reports
    missing values as a 400 with the application's error format.
    """
    username: Optional[str] = Field(default=None, max_length=150)
    password: Optional[str] = Field(default=None, max_length=128)


class TokenResponse(BaseModel):
    message: str = "Login successful"
    token: str = Field(description="Bearer token, valid for one hour")


class CurrentUser(BaseModel):
    """Identity carried by a verified token ({userId, username} claims)."""
    user_id: uuid.UUID
    username: str
