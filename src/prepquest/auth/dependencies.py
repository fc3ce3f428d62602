"""FastAPI authentication and request-context dependencies."""

from __future__ import annotations

import uuid

import jwt
from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from prepquest.auth.jwt import verify_token
from prepquest.errors import NotAuthenticated, require_user
from prepquest.utils.datetime_utils import Clock, utcnow

_bearer = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> uuid.UUID:
    """
    Extract and verify the bearer JWT, return the caller's user id.

    Raises NotAuthenticated (401) before any read when the token is missing or invalid.
    """
    if credentials is None:
        raise NotAuthenticated()
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise NotAuthenticated(str(e)) from e
    return require_user(uuid.UUID(payload["sub"]))


def get_clock() -> Clock:
    """The clock every service call in this request uses (overridden in tests)."""
    return utcnow
