"""Daily challenge rows: lazy per-day initialization, progress tracking and claims.

There is no reset job. A new calendar day simply has no rows yet, and the
first read of that day back-fills one per active challenge.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prepquest.db.models import DailyChallenge, UserDailyChallenge
from prepquest.db.upsert import insert_ignore
from prepquest.errors import AlreadyClaimed, NotFound
from prepquest.notifications.service import NotificationOutbox, PendingNotification
from prepquest.rewards.challenges import AttemptProgress, ChallengeType, advance_progress, difficulty_rank, is_complete
from prepquest.rewards.points_service import DEFAULT_MAX_RETRIES, grant_points

logger = logging.getLogger(__name__)


async def get_active_challenges(db: AsyncSession) -> list[DailyChallenge]:
    """Active catalog entries ordered easy, normal, hard."""
    result = await db.execute(select(DailyChallenge).where(DailyChallenge.is_active.is_(True)))
    return sorted(result.scalars().all(), key=lambda c: (difficulty_rank(c.difficulty), c.id))


async def _load_day(db: AsyncSession, user_id: uuid.UUID, today: date) -> list[UserDailyChallenge]:
    result = await db.execute(
        select(UserDailyChallenge)
        .where(UserDailyChallenge.user_id == user_id, UserDailyChallenge.challenge_date == today)
        .execution_options(populate_existing=True)
    )
    rows = result.scalars().unique().all()
    return sorted(rows, key=lambda r: (difficulty_rank(r.challenge.difficulty), r.challenge_id))


async def get_or_init_daily_challenges(
    db: AsyncSession,
    user_id: uuid.UUID,
    today: date,
) -> list[UserDailyChallenge]:
    """Today's rows for the user, inserting a zero-progress row for each active challenge that has none."""
    existing = {row.challenge_id for row in await _load_day(db, user_id, today)}

    created = 0
    for challenge in await get_active_challenges(db):
        if challenge.id in existing:
            continue
        inserted = await insert_ignore(
            db,
            UserDailyChallenge,
            {
                "user_id": user_id,
                "challenge_id": challenge.id,
                "challenge_date": today,
                "current_progress": 0,
                "is_completed": False,
                "points_claimed": False,
            },
            ["user_id", "challenge_id", "challenge_date"],
        )
        if inserted is not None:
            created += 1

    if created:
        logger.debug("Initialized %d daily challenges for %s on %s", created, user_id, today)
    return await _load_day(db, user_id, today)


async def update_challenge_progress(
    db: AsyncSession,
    row_id: int,
    expected_progress: int,
    progress: int,
    completed: bool,
    now: datetime,
) -> bool:
    """Conditionally write new progress. Returns False if the row moved on since it was read.

    Completed rows are never written again, so completion is one-way.
    """
    values: dict[str, Any] = {"current_progress": progress}
    if completed:
        values.update(is_completed=True, completed_at=now)
    result = await db.execute(
        update(UserDailyChallenge)
        .where(
            UserDailyChallenge.id == row_id,
            UserDailyChallenge.current_progress == expected_progress,
            UserDailyChallenge.is_completed == False,  # noqa: E712
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _reload_row(db: AsyncSession, row_id: int) -> UserDailyChallenge:
    result = await db.execute(
        select(UserDailyChallenge)
        .where(UserDailyChallenge.id == row_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def advance_daily_challenges(
    db: AsyncSession,
    user_id: uuid.UUID,
    today: date,
    attempt: AttemptProgress,
    now: datetime,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> list[UserDailyChallenge]:
    """Advance every incomplete challenge for today. Returns the rows completed by this attempt."""
    completed = []
    for row in await get_or_init_daily_challenges(db, user_id, today):
        challenge = row.challenge
        for _ in range(max_retries):
            if row.is_completed:
                break
            progress = advance_progress(
                ChallengeType(challenge.challenge_type), row.current_progress, challenge.target_value, attempt,
            )
            if progress == row.current_progress:
                break
            done = is_complete(progress, challenge.target_value)
            if await update_challenge_progress(db, row.id, row.current_progress, progress, done, now):
                if done:
                    completed.append(await _reload_row(db, row.id))
                break
            row = await _reload_row(db, row.id)
        else:
            logger.warning("Gave up advancing challenge row %s after %d conflicts", row.id, max_retries)

    return completed


async def claim_challenge(
    db: AsyncSession,
    redis: Any | None,
    user_id: uuid.UUID,
    challenge_id: int,
    now: datetime,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> dict:
    """Claim the points of a completed challenge for today.

    Raises NotFound when there is no completed row and AlreadyClaimed when
    its points were already claimed. The claim flag flips with a
    conditional UPDATE so a concurrent second claim fails cleanly.
    """
    today = now.date()
    result = await db.execute(
        select(UserDailyChallenge).where(
            UserDailyChallenge.user_id == user_id,
            UserDailyChallenge.challenge_id == challenge_id,
            UserDailyChallenge.challenge_date == today,
        )
        .execution_options(populate_existing=True)
    )
    row = result.scalar_one_or_none()
    if row is None or not row.is_completed:
        raise NotFound("No completed challenge to claim today")
    if row.points_claimed:
        raise AlreadyClaimed()

    outbox = NotificationOutbox()
    try:
        flipped = await db.execute(
            update(UserDailyChallenge)
            .where(
                UserDailyChallenge.id == row.id,
                UserDailyChallenge.is_completed == True,  # noqa: E712
                UserDailyChallenge.points_claimed == False,  # noqa: E712
            )
            .values(points_claimed=True, claimed_at=now)
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount != 1:
            raise AlreadyClaimed()

        challenge = row.challenge
        change = await grant_points(
            db,
            user_id,
            challenge.points_reward,
            source="challenge",
            source_id=challenge.code,
            description=f'Daily challenge: "{challenge.title}"',
            idempotency_key=f"challenge:{row.id}",
            now=now,
            outbox=outbox,
            max_retries=max_retries,
        )
        if change is None:
            raise AlreadyClaimed()

        outbox.add(PendingNotification(
            user_id=user_id,
            type="reward",
            title="Challenge Reward Claimed!",
            message=f'+{challenge.points_reward} points for "{challenge.title}"',
            icon="gift",
            data={"challenge_id": challenge.id, "code": challenge.code, "points_reward": challenge.points_reward},
        ))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await outbox.deliver(db, redis, now)
    logger.info("User %s claimed challenge %s (+%d)", user_id, challenge.code, challenge.points_reward)

    return {
        "challenge_id": challenge.id,
        "code": challenge.code,
        "points_awarded": challenge.points_reward,
        "total_points": change.after.total_points,
        "current_level": change.after.current_level,
        "leveled_up": change.leveled_up,
    }
