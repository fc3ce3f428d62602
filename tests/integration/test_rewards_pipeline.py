"""End-to-end tests for RewardsEngine.process_attempt."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select

from prepquest.db.models import Notification, PointsLedger, QuizAttempt
from prepquest.errors import NotAuthenticated, ValidationError
from prepquest.rewards.engine import QuizAttemptInput, RewardsEngine
from prepquest.rewards.points_service import get_rewards
from prepquest.rewards.stats_service import get_or_create_stats


def _attempt(attempt_id="a1", correct=10, total=10, seconds=200, streak=10):
    return QuizAttemptInput(
        attempt_id=attempt_id,
        correct_answers=correct,
        total_questions=total,
        time_spent_seconds=seconds,
        consecutive_correct=streak,
        category="biology",
    )


async def _count(db, model, *where):
    return (await db.execute(select(func.count()).select_from(model).where(*where))).scalar_one()


class TestFirstAttempt:
    @pytest.mark.asyncio
    async def test_perfect_first_attempt(self, db_session, redis_mock, user_id, clock):
        engine = RewardsEngine(db_session, redis_mock, clock=clock)
        outcome = await engine.process_attempt(user_id, _attempt())

        assert outcome.duplicate is False
        assert outcome.points_earned == 205
        assert outcome.breakdown["total"] == 205
        assert {a["code"] for a in outcome.achievements_unlocked} == {"first_quiz", "perfect_5", "streak_10"}
        # 205 from the quiz plus 10 + 50 + 25 achievement bonuses
        assert outcome.total_points == 290
        assert outcome.previous_level == 1
        assert outcome.new_level == 2
        assert outcome.leveled_up is True
        assert outcome.points_for_next_level == 300
        assert outcome.celebrate is True
        assert {(m["milestone_type"], m["milestone_value"]) for m in outcome.milestones_reached} == {
            ("points", 100), ("points", 250), ("quizzes", 1),
        }
        assert set(outcome.challenges_completed) == {
            "daily_quiz_1", "daily_correct_10", "daily_perfect_1", "daily_streak_5",
        }

    @pytest.mark.asyncio
    async def test_state_committed(self, db_session, redis_mock, user_id, clock):
        await RewardsEngine(db_session, redis_mock, clock=clock).process_attempt(user_id, _attempt())

        rewards = await get_rewards(db_session, user_id)
        assert rewards.total_points == 290
        assert rewards.current_level == 2
        assert rewards.consecutive_correct == 10
        assert rewards.max_consecutive_correct == 10
        assert rewards.total_time_seconds == 200
        assert rewards.last_session_date == clock().date()

        ledger_sum = (await db_session.execute(
            select(func.sum(PointsLedger.amount)).where(PointsLedger.user_id == user_id)
        )).scalar_one()
        assert ledger_sum == rewards.total_points

        stored = (await db_session.execute(
            select(QuizAttempt).where(QuizAttempt.user_id == user_id)
        )).scalar_one()
        assert stored.points_earned == 205
        assert stored.outcome["total_points"] == 290

    @pytest.mark.asyncio
    async def test_single_level_up_notification(self, db_session, redis_mock, user_id, clock):
        await RewardsEngine(db_session, redis_mock, clock=clock).process_attempt(user_id, _attempt())

        types = (await db_session.execute(
            select(Notification.type).where(Notification.user_id == user_id)
        )).scalars().all()
        assert sorted(types) == ["achievement", "achievement", "achievement", "level_up"]
        assert redis_mock.publish.await_count == 4


class TestDuplicateAttempt:
    @pytest.mark.asyncio
    async def test_replay_returns_stored_outcome(self, db_session, redis_mock, user_id, clock):
        engine = RewardsEngine(db_session, redis_mock, clock=clock)
        first = await engine.process_attempt(user_id, _attempt())
        replay = await engine.process_attempt(user_id, _attempt())

        assert replay.duplicate is True
        assert replay.to_dict() == first.to_dict()

        rewards = await get_rewards(db_session, user_id)
        assert rewards.total_points == 290
        assert await _count(db_session, QuizAttempt, QuizAttempt.user_id == user_id) == 1
        assert await _count(db_session, Notification, Notification.user_id == user_id) == 4
        assert redis_mock.publish.await_count == 4
        stats = await get_or_create_stats(db_session, user_id, clock())
        assert stats.total_quizzes == 1


class TestStreaks:
    @pytest.mark.asyncio
    async def test_daily_streak(self, db_session, redis_mock, user_id, clock):
        engine = RewardsEngine(db_session, redis_mock, clock=clock)

        await engine.process_attempt(user_id, _attempt("d1"))
        await engine.process_attempt(user_id, _attempt("d1-again"))
        assert (await get_or_create_stats(db_session, user_id, clock())).streak_days == 1

        clock.advance(days=1)
        await engine.process_attempt(user_id, _attempt("d2"))
        assert (await get_or_create_stats(db_session, user_id, clock())).streak_days == 2

        clock.advance(days=2)
        await engine.process_attempt(user_id, _attempt("d4"))
        stats = await get_or_create_stats(db_session, user_id, clock())
        assert stats.streak_days == 1
        assert stats.total_quizzes == 4

    @pytest.mark.asyncio
    async def test_consecutive_correct_carries_across_perfect_attempts(self, db_session, redis_mock, user_id, clock):
        engine = RewardsEngine(db_session, redis_mock, clock=clock)

        await engine.process_attempt(user_id, _attempt("p1", correct=10, total=10, streak=10))
        await engine.process_attempt(user_id, _attempt("p2", correct=5, total=5, streak=5))
        rewards = await get_rewards(db_session, user_id)
        assert rewards.consecutive_correct == 15
        assert rewards.max_consecutive_correct == 15

        await engine.process_attempt(user_id, _attempt("p3", correct=3, total=5, streak=2))
        rewards = await get_rewards(db_session, user_id)
        assert rewards.consecutive_correct == 0
        assert rewards.max_consecutive_correct == 15


class TestRejectedAttempts:
    @pytest.mark.asyncio
    async def test_missing_user(self, db_session, redis_mock, clock):
        with pytest.raises(NotAuthenticated):
            await RewardsEngine(db_session, redis_mock, clock=clock).process_attempt(None, _attempt())

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "attempt",
        [
            _attempt(correct=11, total=10),
            _attempt(total=0, correct=0),
            _attempt(seconds=-1),
            _attempt(attempt_id="   "),
        ],
    )
    async def test_invalid_payload(self, db_session, redis_mock, user_id, clock, attempt):
        with pytest.raises(ValidationError):
            await RewardsEngine(db_session, redis_mock, clock=clock).process_attempt(user_id, attempt)
        assert await get_rewards(db_session, user_id) is None
        assert await _count(db_session, QuizAttempt, QuizAttempt.user_id == user_id) == 0


class TestNotificationFailures:
    @pytest.mark.asyncio
    async def test_push_failure_does_not_fail_attempt(self, db_session, user_id, clock):
        redis = MagicMock()
        redis.publish = AsyncMock(side_effect=ConnectionError("redis down"))

        outcome = await RewardsEngine(db_session, redis, clock=clock).process_attempt(user_id, _attempt())

        assert outcome.total_points == 290
        assert await _count(db_session, Notification, Notification.user_id == user_id) == 4

    @pytest.mark.asyncio
    async def test_no_redis(self, db_session, user_id, clock):
        outcome = await RewardsEngine(db_session, None, clock=clock).process_attempt(user_id, _attempt())
        assert outcome.leveled_up
