"""Spending points on reward catalog items."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import DateTime, Integer, String, Uuid, func, insert, literal, select
from sqlalchemy.ext.asyncio import AsyncSession

from prepquest.db.models import RewardCatalogItem, UserRedemption
from prepquest.errors import NotFound, RedemptionLimitReached
from prepquest.notifications.service import NotificationOutbox, PendingNotification
from prepquest.rewards.points_service import DEFAULT_MAX_RETRIES, spend_points

logger = logging.getLogger(__name__)


async def get_reward_catalog(db: AsyncSession) -> list[RewardCatalogItem]:
    """Active reward items, cheapest first."""
    result = await db.execute(
        select(RewardCatalogItem)
        .where(RewardCatalogItem.is_active.is_(True))
        .order_by(RewardCatalogItem.points_cost.asc(), RewardCatalogItem.id.asc())
    )
    return list(result.scalars().all())


def _expiry(reward: RewardCatalogItem, now: datetime) -> datetime | None:
    value = reward.reward_value or {}
    if "duration_hours" in value:
        return now + timedelta(hours=int(value["duration_hours"]))
    if "duration_days" in value:
        return now + timedelta(days=int(value["duration_days"]))
    return None


async def insert_redemption(
    db: AsyncSession,
    user_id: uuid.UUID,
    reward: RewardCatalogItem,
    now: datetime,
) -> int | None:
    """Insert a redemption row while the user is still under the reward's limit.

    The limit check and the insert are a single INSERT ... SELECT ... WHERE
    statement. Returns the new id, or None when the limit is used up.
    """
    columns: dict[str, Any] = {
        "user_id": literal(user_id, Uuid()),
        "reward_id": literal(reward.id, Integer()),
        "points_spent": literal(reward.points_cost, Integer()),
        "status": literal("active", String()),
        "redeemed_at": literal(now, DateTime(timezone=True)),
    }
    expires_at = _expiry(reward, now)
    if expires_at is not None:
        columns["expires_at"] = literal(expires_at, DateTime(timezone=True))

    source = select(*columns.values())
    if reward.max_redemptions is not None:
        used = (
            select(func.count())
            .select_from(UserRedemption)
            .where(UserRedemption.user_id == user_id, UserRedemption.reward_id == reward.id)
            .scalar_subquery()
        )
        source = source.where(used < reward.max_redemptions)

    result = await db.execute(
        insert(UserRedemption).from_select(list(columns), source).returning(UserRedemption.id)
    )
    return result.scalar_one_or_none()


async def redeem_reward(
    db: AsyncSession,
    redis: Any | None,
    user_id: uuid.UUID,
    reward_code: str,
    now: datetime,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> UserRedemption:
    """Buy a reward with points.

    Raises NotFound for a missing or inactive item, RedemptionLimitReached
    when the per-user limit is used up, and InsufficientPoints when the
    balance (checked inside the compare-and-swap) does not cover the cost.
    """
    result = await db.execute(
        select(RewardCatalogItem).where(
            RewardCatalogItem.code == reward_code,
            RewardCatalogItem.is_active.is_(True),
        )
    )
    reward = result.scalar_one_or_none()
    if reward is None:
        raise NotFound(f"Reward not found: {reward_code}")

    outbox = NotificationOutbox()
    try:
        if reward.max_redemptions is not None:
            # Concurrent redemptions of a limited item queue on the catalog row
            await db.execute(
                select(RewardCatalogItem.id).where(RewardCatalogItem.id == reward.id).with_for_update()
            )
        redemption_id = await insert_redemption(db, user_id, reward, now)
        if redemption_id is None:
            raise RedemptionLimitReached()
        redemption = (
            await db.execute(select(UserRedemption).where(UserRedemption.id == redemption_id))
        ).scalar_one()

        await spend_points(
            db,
            user_id,
            reward.points_cost,
            source="redemption",
            source_id=reward.code,
            description=f'Redeemed "{reward.name}"',
            idempotency_key=f"redemption:{redemption.id}",
            now=now,
            max_retries=max_retries,
        )

        outbox.add(PendingNotification(
            user_id=user_id,
            type="reward",
            title=f'Reward Redeemed: "{reward.name}"',
            message=f"-{reward.points_cost} points",
            icon="gift",
            data={
                "redemption_id": redemption.id,
                "code": reward.code,
                "reward_type": reward.reward_type,
                "points_spent": reward.points_cost,
            },
        ))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await outbox.deliver(db, redis, now)
    logger.info("User %s redeemed %s for %d points", user_id, reward.code, reward.points_cost)
    return redemption


async def list_redemptions(db: AsyncSession, user_id: uuid.UUID) -> list[UserRedemption]:
    """The user's redemptions, newest first."""
    result = await db.execute(
        select(UserRedemption)
        .where(UserRedemption.user_id == user_id)
        .order_by(UserRedemption.redeemed_at.desc(), UserRedemption.id.desc())
    )
    return list(result.scalars().unique().all())
