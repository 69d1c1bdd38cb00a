"""Resolve the calling user from a bearer token."""

from __future__ import annotations

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from turf.auth.jwt import verify_token
from turf.database import get_session
from turf.db.models import User
from turf.errors import AuthorizationError, ForbiddenError
from turf.users.service import get_user_by_id

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Return the active user named by the token's ``sub`` claim.

    Raises ``AuthorizationError`` (401) for a missing or bad token or an
    unknown user, ``ForbiddenError`` (403) for a deactivated account.
    """
    if credentials is None:
        raise AuthorizationError("Unauthorized")
    try:
        claims = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as exc:
        raise AuthorizationError(str(exc)) from exc

    user = await get_user_by_id(db, int(claims["sub"]))
    if user is None:
        raise AuthorizationError("User not found")
    if not user.is_active:
        raise ForbiddenError("Account is inactive")
    return user
