"""Error taxonomy for the rewards engine.

Every user-facing failure derives from ``RewardsError`` and carries the HTTP
status and machine code the API layer renders. Benign duplicates during
achievement/milestone insertion never surface as exceptions.
"""

from __future__ import annotations

import uuid


class RewardsError(Exception):
    """Base class for errors returned to the caller as typed results."""

    status_code: int = 400
    code: str = "rewards_error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class NotAuthenticated(RewardsError):
    """Authentication required."""

    status_code = 401
    code = "not_authenticated"


class NotFound(RewardsError):
    """Resource not found."""

    status_code = 404
    code = "not_found"


class AlreadyClaimed(RewardsError):
    """Reward already claimed."""

    status_code = 409
    code = "already_claimed"


class AlreadyUnlocked(RewardsError):
    """Achievement already unlocked."""

    status_code = 409
    code = "already_unlocked"


class InsufficientPoints(RewardsError):
    """Not enough points."""

    status_code = 400
    code = "insufficient_points"

    def __init__(self, balance: int, required: int) -> None:
        self.balance = balance
        self.required = required
        super().__init__(f"Insufficient points: balance {balance}, required {required}")


class ValidationError(RewardsError, ValueError):
    """Malformed request payload."""

    status_code = 422
    code = "validation_error"


class ConcurrentUpdateError(RewardsError):
    """Rewards record changed concurrently; retry the request."""

    status_code = 409
    code = "concurrent_update"


class RedemptionLimitReached(RewardsError):
    """Redemption limit reached for this reward."""

    status_code = 409
    code = "redemption_limit_reached"


def require_user(user_id: uuid.UUID | None) -> uuid.UUID:
    """Abort with NotAuthenticated before any read when there is no caller."""
    if user_id is None:
        raise NotAuthenticated()
    return user_id
