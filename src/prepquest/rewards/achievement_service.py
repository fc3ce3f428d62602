"""Achievement unlock service with duplicate prevention and notification."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prepquest.db.models import Achievement, UserAchievement
from prepquest.db.upsert import insert_ignore
from prepquest.errors import AlreadyUnlocked
from prepquest.notifications.service import NotificationOutbox, PendingNotification
from prepquest.rewards.achievements import CELEBRATED_TIERS, StatsSnapshot, find_unlockable, tier_rank
from prepquest.rewards.points_service import DEFAULT_MAX_RETRIES, grant_points

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnlockedAchievement:
    achievement_id: int
    code: str
    name: str
    tier: str
    icon: str
    points_reward: int

    @property
    def celebrate(self) -> bool:
        return self.tier in CELEBRATED_TIERS

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "tier": self.tier,
            "points_reward": self.points_reward,
            "celebrate": self.celebrate,
        }


async def get_achievement_catalog(db: AsyncSession) -> list[Achievement]:
    """All achievements ordered by tier rank, then requirement value."""
    result = await db.execute(select(Achievement))
    return sorted(
        result.scalars().all(),
        key=lambda a: (tier_rank(a.tier), a.requirement_value, a.sort_order, a.id),
    )


async def get_unlocked_achievement_ids(db: AsyncSession, user_id: uuid.UUID) -> set[int]:
    result = await db.execute(
        select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
    )
    return set(result.scalars().all())


async def insert_user_achievement(
    db: AsyncSession,
    user_id: uuid.UUID,
    achievement_id: int,
    now: datetime,
) -> None:
    """Record an unlock. Raises AlreadyUnlocked when the (user, achievement) row exists."""
    inserted = await insert_ignore(
        db,
        UserAchievement,
        {"user_id": user_id, "achievement_id": achievement_id, "unlocked_at": now},
        ["user_id", "achievement_id"],
    )
    if inserted is None:
        raise AlreadyUnlocked()


async def unlock_achievement(
    db: AsyncSession,
    user_id: uuid.UUID,
    achievement: Achievement,
    now: datetime,
    outbox: NotificationOutbox | None = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> UnlockedAchievement:
    """Unlock one achievement for a user.

    Handles:
    1. Insert into user_achievements (UNIQUE constraint is the race guard)
    2. Grant the bonus points (idempotent via ledger key)
    3. Queue the achievement notification
    """
    await insert_user_achievement(db, user_id, achievement.id, now)

    await grant_points(
        db,
        user_id,
        achievement.points_reward,
        source="achievement",
        source_id=achievement.code,
        description=f'Unlocked achievement: "{achievement.name}"',
        idempotency_key=f"achievement:{achievement.code}:{user_id}",
        now=now,
        outbox=outbox,
        max_retries=max_retries,
    )

    unlocked = UnlockedAchievement(
        achievement_id=achievement.id,
        code=achievement.code,
        name=achievement.name,
        tier=achievement.tier,
        icon=achievement.icon,
        points_reward=achievement.points_reward,
    )
    if outbox is not None:
        outbox.add(PendingNotification(
            user_id=user_id,
            type="achievement",
            title=f'Achievement Unlocked: "{achievement.name}"',
            message=f"+{achievement.points_reward} points. {achievement.description}",
            icon=achievement.icon,
            data={
                "achievement_id": achievement.id,
                "code": achievement.code,
                "tier": achievement.tier,
                "points_reward": achievement.points_reward,
                "celebrate": unlocked.celebrate,
            },
        ))
    return unlocked


async def evaluate_achievements(
    db: AsyncSession,
    user_id: uuid.UUID,
    stats: StatsSnapshot,
    now: datetime,
    outbox: NotificationOutbox | None = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> list[UnlockedAchievement]:
    """Unlock every catalog achievement ``stats`` satisfies that the user does not have yet."""
    catalog = await get_achievement_catalog(db)
    unlocked_ids = await get_unlocked_achievement_ids(db, user_id)

    unlocked = []
    for achievement in find_unlockable(catalog, unlocked_ids, stats):
        try:
            unlocked.append(await unlock_achievement(db, user_id, achievement, now, outbox, max_retries))
        except AlreadyUnlocked:
            # Lost the race to a concurrent attempt
            continue

    if unlocked:
        logger.info("User %s unlocked achievements: %s", user_id, ", ".join(u.code for u in unlocked))
    return unlocked


async def get_user_achievements(
    db: AsyncSession,
    user_id: uuid.UUID,
    limit: int | None = None,
) -> list[UserAchievement]:
    """The user's unlocked achievements, newest first."""
    stmt = (
        select(UserAchievement)
        .where(UserAchievement.user_id == user_id)
        .order_by(UserAchievement.unlocked_at.desc(), UserAchievement.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().unique().all())
