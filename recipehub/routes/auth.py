"""
RecipeHub Backend — Authentication Routes
===========================================

What:  POST /register and POST /login.
Who:   Called by the frontend sign-up and sign-in forms.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from recipehub.database import get_db_session
from recipehub.schemas.auth import Credentials, TokenResponse
from recipehub.schemas.common import ErrorResponse, MessageResponse
from recipehub.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=MessageResponse,
    responses={
        400: {"description": "Missing fields or username taken", "model": ErrorResponse},
    },
    summary="Create a user account",
)
async def register(
    body: Credentials,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.register(db, body.username, body.password)
    return MessageResponse(message="User registered successfully")


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Exchange credentials for a bearer token",
)
async def login(
    body: Credentials,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    token = await auth_service.login(db, body.username, body.password)
    return TokenResponse(token=token)
