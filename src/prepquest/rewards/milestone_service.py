"""Milestone recording and one-time acknowledgement."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prepquest.db.models import Milestone
from prepquest.db.upsert import insert_ignore
from prepquest.errors import NotFound
from prepquest.rewards.milestones import MilestoneStats, describe_milestone, find_new_milestones

logger = logging.getLogger(__name__)


async def get_achieved_milestones(db: AsyncSession, user_id: uuid.UUID) -> set[tuple[str, int]]:
    result = await db.execute(
        select(Milestone.milestone_type, Milestone.milestone_value).where(Milestone.user_id == user_id)
    )
    return {(row.milestone_type, row.milestone_value) for row in result}


async def insert_milestone(
    db: AsyncSession,
    user_id: uuid.UUID,
    milestone_type: str,
    milestone_value: int,
    now: datetime,
) -> int | None:
    """Insert a milestone row. Returns its id, or None if the user already had it."""
    return await insert_ignore(
        db,
        Milestone,
        {
            "user_id": user_id,
            "milestone_type": milestone_type,
            "milestone_value": milestone_value,
            "achieved_at": now,
            "notification_shown": False,
        },
        ["user_id", "milestone_type", "milestone_value"],
    )


async def evaluate_milestones(
    db: AsyncSession,
    user_id: uuid.UUID,
    stats: MilestoneStats,
    now: datetime,
) -> list[dict]:
    """Record every threshold ``stats`` has crossed for the first time."""
    achieved = await get_achieved_milestones(db, user_id)

    reached = []
    for milestone_type, value in find_new_milestones(stats, achieved):
        milestone_id = await insert_milestone(db, user_id, milestone_type, value, now)
        if milestone_id is None:
            continue
        reached.append({
            "id": milestone_id,
            "milestone_type": milestone_type,
            "milestone_value": value,
            **describe_milestone(milestone_type, value),
        })

    if reached:
        logger.info(
            "User %s reached milestones: %s",
            user_id,
            ", ".join(f"{m['milestone_type']}:{m['milestone_value']}" for m in reached),
        )
    return reached


async def list_milestones(db: AsyncSession, user_id: uuid.UUID) -> list[Milestone]:
    """All of the user's milestones, newest first."""
    result = await db.execute(
        select(Milestone)
        .where(Milestone.user_id == user_id)
        .order_by(Milestone.achieved_at.desc(), Milestone.id.desc())
    )
    return list(result.scalars().all())


async def list_pending_milestones(db: AsyncSession, user_id: uuid.UUID) -> list[Milestone]:
    """Milestones the UI has not acknowledged yet, oldest first (shown one at a time)."""
    result = await db.execute(
        select(Milestone)
        .where(
            Milestone.user_id == user_id,
            Milestone.notification_shown == False,  # noqa: E712
        )
        .order_by(Milestone.achieved_at.asc(), Milestone.id.asc())
    )
    return list(result.scalars().all())


async def mark_milestone_shown(
    db: AsyncSession,
    user_id: uuid.UUID,
    milestone_id: int,
    now: datetime,
) -> bool:
    """Flip notification_shown false -> true. Returns True if this call flipped it.

    A second call is a no-op. Raises NotFound for an unknown or foreign id.
    """
    result = await db.execute(
        select(Milestone.id).where(Milestone.id == milestone_id, Milestone.user_id == user_id)
    )
    if result.scalar_one_or_none() is None:
        raise NotFound("Milestone not found")

    result = await db.execute(
        update(Milestone)
        .where(
            Milestone.id == milestone_id,
            Milestone.user_id == user_id,
            Milestone.notification_shown == False,  # noqa: E712
        )
        .values(notification_shown=True, shown_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount > 0
