"""
RecipeHub Backend — Route Dependencies
========================================

What:  Bearer-token authentication shared by every protected endpoint.
How:   HTTPBearer extracts "Authorization: Bearer <token>"; the token is
       verified statelessly (signature + expiry) and its claims become the
       request's CurrentUser. No database lookup.

Failures (both 403, application error format):
    no/blank Authorization header → "Access denied. No token provided."
    bad signature, expired, malformed → "Invalid token"
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from recipehub.exceptions import AuthError
from recipehub.schemas.auth import CurrentUser
from recipehub.security import decode_access_token

# auto_error=False: missing credentials are reported through AuthError
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """
    Usage in endpoint:
        @router.get("/recipes")
        async def list_recipes(user: CurrentUser = Depends(get_current_user)):
            ...
    """
    if credentials is None or not credentials.credentials:
        raise AuthError(message="Access denied. No token provided.")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthError(message="Invalid token")

    try:
        return CurrentUser(user_id=payload["userId"], username=payload["username"])
    except (KeyError, ValueError):
        raise AuthError(message="Invalid token")
