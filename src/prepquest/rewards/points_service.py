"""Points grant/spend service with ledger idempotency and level-up detection.

Every change to ``user_rewards.total_points`` goes through here:
1. Insert into points_ledger (UNIQUE idempotency_key; a duplicate means no-op)
2. Compare-and-swap update of user_rewards on ``version``
3. Recompute current_level from total_points on every write
4. If level went up, queue a level_up notification
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prepquest.db.models import PointsLedger, UserRewards
from prepquest.db.upsert import insert_ignore
from prepquest.errors import ConcurrentUpdateError, InsufficientPoints
from prepquest.notifications.service import NotificationOutbox, PendingNotification
from prepquest.rewards.level_thresholds import calculate_level

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5


@dataclass(frozen=True)
class RewardsSnapshot:
    """Read-only copy of a user_rewards row at a given version."""

    user_id: uuid.UUID
    total_points: int
    current_level: int
    consecutive_correct: int
    max_consecutive_correct: int
    total_time_seconds: int
    last_session_date: date | None
    version: int

    @classmethod
    def from_row(cls, row: UserRewards) -> RewardsSnapshot:
        return cls(
            user_id=row.user_id,
            total_points=row.total_points,
            current_level=row.current_level,
            consecutive_correct=row.consecutive_correct,
            max_consecutive_correct=row.max_consecutive_correct,
            total_time_seconds=row.total_time_seconds,
            last_session_date=row.last_session_date,
            version=row.version,
        )


@dataclass(frozen=True)
class PointsChange:
    before: RewardsSnapshot
    after: RewardsSnapshot

    @property
    def leveled_up(self) -> bool:
        return self.after.current_level > self.before.current_level


RewardsPatch = Callable[[RewardsSnapshot], dict[str, Any]]


async def get_or_create_rewards(db: AsyncSession, user_id: uuid.UUID, now: datetime) -> RewardsSnapshot:
    """Read the user's rewards row, creating it at level 1 on first access."""
    await insert_ignore(
        db,
        UserRewards,
        {
            "user_id": user_id,
            "total_points": 0,
            "current_level": 1,
            "version": 0,
            "created_at": now,
            "updated_at": now,
        },
        ["user_id"],
    )
    result = await db.execute(
        select(UserRewards)
        .where(UserRewards.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return RewardsSnapshot.from_row(result.scalar_one())


async def get_rewards(db: AsyncSession, user_id: uuid.UUID) -> RewardsSnapshot | None:
    """Read the user's rewards row without creating it."""
    result = await db.execute(
        select(UserRewards)
        .where(UserRewards.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    row = result.scalar_one_or_none()
    return RewardsSnapshot.from_row(row) if row else None


async def apply_rewards_update(
    db: AsyncSession,
    user_id: uuid.UUID,
    mutate: RewardsPatch,
    now: datetime,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> PointsChange:
    """Apply ``mutate`` to the rewards row as a compare-and-swap on ``version``.

    ``mutate`` receives the last-read snapshot and returns the columns to
    change; it may raise to abort (e.g. InsufficientPoints). On a version
    conflict the row is re-read and ``mutate`` runs again.
    """
    for attempt in range(1, max_retries + 1):
        current = await get_or_create_rewards(db, user_id, now)
        patch = mutate(current)
        total_points = patch.get("total_points", current.total_points)
        values = {
            **patch,
            "current_level": calculate_level(total_points),
            "version": current.version + 1,
            "updated_at": now,
        }
        result = await db.execute(
            update(UserRewards)
            .where(UserRewards.user_id == user_id, UserRewards.version == current.version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            after = await get_or_create_rewards(db, user_id, now)
            return PointsChange(before=current, after=after)
        logger.info("user_rewards version conflict for %s (attempt %d/%d)", user_id, attempt, max_retries)

    raise ConcurrentUpdateError()


async def grant_points(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount: int,
    source: str,
    source_id: str | None,
    description: str,
    idempotency_key: str,
    now: datetime,
    outbox: NotificationOutbox | None = None,
    extra: RewardsPatch | None = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> PointsChange | None:
    """Grant points to a user. Returns the change, or None if the key was already used.

    ``extra`` adds further columns to the same compare-and-swap write.
    """
    ledger_id = await insert_ignore(
        db,
        PointsLedger,
        {
            "user_id": user_id,
            "amount": amount,
            "source": source,
            "source_id": source_id,
            "description": description,
            "idempotency_key": idempotency_key,
            "created_at": now,
        },
        ["idempotency_key"],
    )
    if ledger_id is None:
        logger.info("Duplicate points grant ignored: %s", idempotency_key)
        return None

    def _mutate(current: RewardsSnapshot) -> dict[str, Any]:
        patch = {"total_points": current.total_points + amount}
        if extra is not None:
            patch.update(extra(current))
        return patch

    change = await apply_rewards_update(db, user_id, _mutate, now, max_retries)

    if change.leveled_up and outbox is not None:
        outbox.add(level_up_notification(user_id, change.before.current_level, change.after.current_level))

    return change


async def spend_points(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount: int,
    source: str,
    source_id: str | None,
    description: str,
    idempotency_key: str,
    now: datetime,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> PointsChange | None:
    """Deduct points. The balance check runs inside the compare-and-swap, before any deduction."""
    if amount <= 0:
        msg = f"spend amount must be positive, got {amount}"
        raise ValueError(msg)

    ledger_id = await insert_ignore(
        db,
        PointsLedger,
        {
            "user_id": user_id,
            "amount": -amount,
            "source": source,
            "source_id": source_id,
            "description": description,
            "idempotency_key": idempotency_key,
            "created_at": now,
        },
        ["idempotency_key"],
    )
    if ledger_id is None:
        logger.info("Duplicate points spend ignored: %s", idempotency_key)
        return None

    def _mutate(current: RewardsSnapshot) -> dict[str, Any]:
        if current.total_points < amount:
            raise InsufficientPoints(balance=current.total_points, required=amount)
        return {"total_points": current.total_points - amount}

    return await apply_rewards_update(db, user_id, _mutate, now, max_retries)


def level_up_notification(user_id: uuid.UUID, previous_level: int, new_level: int) -> PendingNotification:
    return PendingNotification(
        user_id=user_id,
        type="level_up",
        title="Level Up!",
        message=f"You reached level {new_level}!",
        icon="zap",
        data={"level": new_level, "previous_level": previous_level},
    )


async def get_points_history(
    db: AsyncSession,
    user_id: uuid.UUID,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[PointsLedger], int]:
    """Ledger entries for a user, newest first, with the total count."""
    offset = (page - 1) * per_page

    total = (
        await db.execute(select(func.count()).select_from(PointsLedger).where(PointsLedger.user_id == user_id))
    ).scalar_one()

    result = await db.execute(
        select(PointsLedger)
        .where(PointsLedger.user_id == user_id)
        .order_by(PointsLedger.created_at.desc(), PointsLedger.id.desc())
        .offset(offset)
        .limit(per_page)
    )
    return list(result.scalars().all()), total
