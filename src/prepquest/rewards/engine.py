"""Rewards engine: processes one finished quiz attempt end to end.

Pipeline per attempt (one transaction, notifications delivered after commit):
1. Record the attempt (UNIQUE(user_id, attempt_id); a duplicate returns the stored outcome)
2. Update profile counters and daily streak
3. Score the attempt and grant its points
4. Unlock achievements against the post-score snapshot
5. Record milestones against the final totals
6. Advance today's daily challenges
7. Store the outcome and commit
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prepquest.db.models import QuizAttempt
from prepquest.db.upsert import insert_ignore
from prepquest.errors import ValidationError, require_user
from prepquest.notifications.service import NotificationOutbox
from prepquest.rewards.achievement_service import evaluate_achievements
from prepquest.rewards.achievements import StatsSnapshot
from prepquest.rewards.challenge_service import advance_daily_challenges
from prepquest.rewards.challenges import AttemptProgress
from prepquest.rewards.level_thresholds import points_for_next_level
from prepquest.rewards.milestone_service import evaluate_milestones
from prepquest.rewards.milestones import MilestoneStats
from prepquest.rewards.points_service import (
    DEFAULT_MAX_RETRIES,
    RewardsSnapshot,
    get_or_create_rewards,
    grant_points,
)
from prepquest.rewards.scoring import calculate_points, next_consecutive_correct, validate_attempt
from prepquest.rewards.stats_service import record_quiz_activity
from prepquest.utils.datetime_utils import Clock, ensure_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuizAttemptInput:
    attempt_id: str
    correct_answers: int
    total_questions: int
    time_spent_seconds: int
    consecutive_correct: int
    category: str | None = None


@dataclass
class AttemptOutcome:
    attempt_id: str
    points_earned: int
    breakdown: dict[str, int]
    total_points: int
    previous_level: int
    new_level: int
    leveled_up: bool
    points_for_next_level: int
    achievements_unlocked: list[dict[str, Any]] = field(default_factory=list)
    milestones_reached: list[dict[str, Any]] = field(default_factory=list)
    challenges_completed: list[str] = field(default_factory=list)
    celebrate: bool = False
    duplicate: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("duplicate")
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], duplicate: bool = False) -> AttemptOutcome:
        return cls(**data, duplicate=duplicate)


class RewardsEngine:
    """Scores attempts and applies every progression rule for a user."""

    def __init__(
        self,
        db: AsyncSession,
        redis: Any | None,
        clock: Clock = utcnow,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self.db = db
        self.redis = redis
        self.clock = clock
        self.max_retries = max_retries

    async def process_attempt(self, user_id: uuid.UUID | None, attempt: QuizAttemptInput) -> AttemptOutcome:
        user_id = require_user(user_id)
        if not attempt.attempt_id or not attempt.attempt_id.strip():
            raise ValidationError("attempt_id must not be empty")
        validate_attempt(
            attempt.correct_answers,
            attempt.total_questions,
            attempt.time_spent_seconds,
            attempt.consecutive_correct,
        )

        now = ensure_utc(self.clock())
        outbox = NotificationOutbox()
        try:
            outcome = await self._run(user_id, attempt, now, outbox)
        except Exception:
            await self.db.rollback()
            raise

        if outcome.duplicate:
            return outcome

        delivered = await outbox.deliver(self.db, self.redis, now)
        logger.info(
            "Processed attempt %s for %s: +%d points, level %d -> %d, %d achievements, %d milestones, "
            "%d challenges completed, %d notifications",
            attempt.attempt_id,
            user_id,
            outcome.points_earned,
            outcome.previous_level,
            outcome.new_level,
            len(outcome.achievements_unlocked),
            len(outcome.milestones_reached),
            len(outcome.challenges_completed),
            delivered,
        )
        return outcome

    async def _run(
        self,
        user_id: uuid.UUID,
        attempt: QuizAttemptInput,
        now: datetime,
        outbox: NotificationOutbox,
    ) -> AttemptOutcome:
        db = self.db
        today = now.date()

        attempt_pk = await insert_ignore(
            db,
            QuizAttempt,
            {
                "user_id": user_id,
                "attempt_id": attempt.attempt_id,
                "correct_answers": attempt.correct_answers,
                "total_questions": attempt.total_questions,
                "time_spent_seconds": attempt.time_spent_seconds,
                "consecutive_correct": attempt.consecutive_correct,
                "category": attempt.category,
                "points_earned": 0,
                "outcome": {},
                "created_at": now,
            },
            ["user_id", "attempt_id"],
        )
        if attempt_pk is None:
            return await self._stored_outcome(user_id, attempt.attempt_id)

        stats = await record_quiz_activity(
            db, user_id, attempt.correct_answers, attempt.total_questions, today, now,
        )

        breakdown = calculate_points(
            attempt.correct_answers,
            attempt.total_questions,
            attempt.time_spent_seconds,
            attempt.consecutive_correct,
        )

        def _streak_patch(current: RewardsSnapshot) -> dict[str, Any]:
            streak = next_consecutive_correct(
                current.consecutive_correct, attempt.correct_answers, attempt.total_questions,
            )
            return {
                "consecutive_correct": streak,
                "max_consecutive_correct": max(current.max_consecutive_correct, streak, attempt.consecutive_correct),
                "total_time_seconds": current.total_time_seconds + attempt.time_spent_seconds,
                "last_session_date": today,
            }

        change = await grant_points(
            db,
            user_id,
            breakdown.total,
            source="quiz",
            source_id=attempt.attempt_id,
            description=f"Quiz attempt {attempt.attempt_id}",
            idempotency_key=f"attempt:{user_id}:{attempt.attempt_id}",
            now=now,
            outbox=outbox,
            extra=_streak_patch,
            max_retries=self.max_retries,
        )
        if change is None:
            msg = f"points ledger already holds attempt {attempt.attempt_id} for {user_id}"
            raise RuntimeError(msg)
        scored = change.after

        unlocked = await evaluate_achievements(
            db,
            user_id,
            StatsSnapshot(
                total_quizzes=stats.total_quizzes,
                total_correct=stats.total_correct,
                attempt_accuracy=attempt.correct_answers / attempt.total_questions,
                attempt_questions=attempt.total_questions,
                max_consecutive_correct=scored.max_consecutive_correct,
                streak_days=stats.streak_days,
                total_points=scored.total_points,
                level=scored.current_level,
                total_time_seconds=scored.total_time_seconds,
            ),
            now,
            outbox,
            self.max_retries,
        )

        final = await get_or_create_rewards(db, user_id, now)
        milestones = await evaluate_milestones(
            db,
            user_id,
            MilestoneStats(
                total_points=final.total_points,
                current_level=final.current_level,
                total_quizzes=stats.total_quizzes,
                streak_days=stats.streak_days,
            ),
            now,
        )

        completed = await advance_daily_challenges(
            db,
            user_id,
            today,
            AttemptProgress(
                correct_answers=attempt.correct_answers,
                total_questions=attempt.total_questions,
                time_spent_seconds=attempt.time_spent_seconds,
                consecutive_correct=attempt.consecutive_correct,
            ),
            now,
            self.max_retries,
        )

        previous_level = change.before.current_level
        leveled_up = final.current_level > previous_level
        outcome = AttemptOutcome(
            attempt_id=attempt.attempt_id,
            points_earned=breakdown.total,
            breakdown=breakdown.as_dict(),
            total_points=final.total_points,
            previous_level=previous_level,
            new_level=final.current_level,
            leveled_up=leveled_up,
            points_for_next_level=points_for_next_level(final.current_level),
            achievements_unlocked=[u.as_dict() for u in unlocked],
            milestones_reached=[
                {"milestone_type": m["milestone_type"], "milestone_value": m["milestone_value"], "title": m["title"]}
                for m in milestones
            ],
            challenges_completed=[row.challenge.code for row in completed],
            celebrate=leveled_up or any(u.celebrate for u in unlocked),
        )

        await db.execute(
            update(QuizAttempt)
            .where(QuizAttempt.id == attempt_pk)
            .values(points_earned=breakdown.total, outcome=outcome.to_dict())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return outcome

    async def _stored_outcome(self, user_id: uuid.UUID, attempt_id: str) -> AttemptOutcome:
        result = await self.db.execute(
            select(QuizAttempt.outcome).where(
                QuizAttempt.user_id == user_id,
                QuizAttempt.attempt_id == attempt_id,
            )
        )
        stored = result.scalar_one()
        await self.db.rollback()
        logger.info("Duplicate attempt %s for %s ignored", attempt_id, user_id)
        return AttemptOutcome.from_dict(stored, duplicate=True)
