"""Profile counters (quizzes, correct answers, daily streak) used by the evaluators."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prepquest.db.models import UserStats
from prepquest.db.upsert import insert_ignore
from prepquest.utils.datetime_utils import previous_day


async def get_or_create_stats(db: AsyncSession, user_id: uuid.UUID, now: datetime) -> UserStats:
    await insert_ignore(db, UserStats, {"user_id": user_id, "updated_at": now}, ["user_id"])
    result = await db.execute(
        select(UserStats)
        .where(UserStats.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def record_quiz_activity(
    db: AsyncSession,
    user_id: uuid.UUID,
    correct_answers: int,
    total_questions: int,
    today: date,
    now: datetime,
) -> UserStats:
    """Count one finished quiz and advance the daily streak.

    Streak rule: activity on the same day leaves it unchanged (minimum 1),
    activity on the following day adds one, any longer gap restarts at 1.
    Applied as a single UPDATE so concurrent attempts never lose a count.
    """
    await get_or_create_stats(db, user_id, now)

    streak = case(
        (
            UserStats.last_activity_date == today,
            case((UserStats.streak_days < 1, 1), else_=UserStats.streak_days),
        ),
        (UserStats.last_activity_date == previous_day(today), UserStats.streak_days + 1),
        else_=1,
    )
    await db.execute(
        update(UserStats)
        .where(UserStats.user_id == user_id)
        .values(
            total_quizzes=UserStats.total_quizzes + 1,
            total_correct=UserStats.total_correct + correct_answers,
            total_questions=UserStats.total_questions + total_questions,
            streak_days=streak,
            last_activity_date=today,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return await get_or_create_stats(db, user_id, now)
