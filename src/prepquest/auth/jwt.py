"""
HS256 JWT verification for access tokens issued by the hosted auth provider.

The ``sub`` claim carries the user's UUID; ``aud`` must match the configured
audience. ``create_access_token`` mints compatible tokens for local
development and tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from prepquest.config import get_settings


def create_access_token(
    user_id: uuid.UUID,
    expires_in: timedelta = timedelta(hours=1),
    now: datetime | None = None,
) -> str:
    """
    Create an access token shaped like the auth provider's.

    Args:
        user_id: The user's UUID.
        expires_in: Token lifetime.
        now: Issue time (defaults to the current UTC time).

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or has no usable subject.
    """
    settings = get_settings()
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        options={"require": ["sub", "exp"]},
    )
    try:
        uuid.UUID(str(payload["sub"]))
    except ValueError as e:
        msg = "Token subject is not a user id"
        raise jwt.InvalidTokenError(msg) from e
    return payload
