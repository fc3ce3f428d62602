"""Milestone recording and acknowledgement tests."""

from __future__ import annotations

import uuid

import pytest

from prepquest.errors import NotFound
from prepquest.rewards.milestone_service import (
    evaluate_milestones,
    list_milestones,
    list_pending_milestones,
    mark_milestone_shown,
)
from prepquest.rewards.milestones import MilestoneStats

FIRST_QUIZ = MilestoneStats(total_points=40, current_level=1, total_quizzes=1, streak_days=1)


class TestEvaluateMilestones:
    @pytest.mark.asyncio
    async def test_first_quiz_creates_unshown_milestone(self, db_session, user_id, clock):
        reached = await evaluate_milestones(db_session, user_id, FIRST_QUIZ, clock())

        assert [(m["milestone_type"], m["milestone_value"]) for m in reached] == [("quizzes", 1)]
        assert reached[0]["title"]
        rows = await list_milestones(db_session, user_id)
        assert len(rows) == 1
        assert rows[0].notification_shown is False
        assert rows[0].shown_at is None

    @pytest.mark.asyncio
    async def test_each_threshold_recorded_once(self, db_session, user_id, clock):
        stats = MilestoneStats(total_points=600, current_level=4, total_quizzes=5, streak_days=3)
        first = await evaluate_milestones(db_session, user_id, stats, clock())
        second = await evaluate_milestones(db_session, user_id, stats, clock())

        assert {(m["milestone_type"], m["milestone_value"]) for m in first} == {
            ("points", 100), ("points", 250), ("points", 500),
            ("quizzes", 1), ("quizzes", 5),
            ("streak", 3),
        }
        assert second == []
        assert len(await list_milestones(db_session, user_id)) == 6

    @pytest.mark.asyncio
    async def test_milestones_are_per_user(self, db_session, user_id, clock):
        other = uuid.uuid4()
        await evaluate_milestones(db_session, user_id, FIRST_QUIZ, clock())
        reached = await evaluate_milestones(db_session, other, FIRST_QUIZ, clock())
        assert len(reached) == 1


class TestPendingMilestones:
    @pytest.mark.asyncio
    async def test_pending_oldest_first(self, db_session, user_id, clock):
        await evaluate_milestones(db_session, user_id, FIRST_QUIZ, clock())
        clock.advance(hours=1)
        await evaluate_milestones(
            db_session, user_id, MilestoneStats(total_points=120, current_level=2, total_quizzes=2, streak_days=1), clock(),
        )

        pending = await list_pending_milestones(db_session, user_id)
        assert [(m.milestone_type, m.milestone_value) for m in pending] == [("quizzes", 1), ("points", 100)]
        newest_first = await list_milestones(db_session, user_id)
        assert newest_first[0].milestone_type == "points"


class TestMarkShown:
    @pytest.mark.asyncio
    async def test_mark_shown_flips_once(self, db_session, user_id, clock):
        reached = await evaluate_milestones(db_session, user_id, FIRST_QUIZ, clock())
        milestone_id = reached[0]["id"]

        assert await mark_milestone_shown(db_session, user_id, milestone_id, clock()) is True
        assert await mark_milestone_shown(db_session, user_id, milestone_id, clock()) is False

        assert await list_pending_milestones(db_session, user_id) == []
        rows = await list_milestones(db_session, user_id)
        await db_session.refresh(rows[0])
        assert rows[0].notification_shown is True
        assert rows[0].shown_at is not None

    @pytest.mark.asyncio
    async def test_unknown_id_not_found(self, db_session, user_id, clock):
        with pytest.raises(NotFound):
            await mark_milestone_shown(db_session, user_id, 999_999, clock())

    @pytest.mark.asyncio
    async def test_other_users_milestone_not_found(self, db_session, user_id, clock):
        reached = await evaluate_milestones(db_session, user_id, FIRST_QUIZ, clock())
        with pytest.raises(NotFound):
            await mark_milestone_shown(db_session, uuid.uuid4(), reached[0]["id"], clock())
        assert len(await list_pending_milestones(db_session, user_id)) == 1
