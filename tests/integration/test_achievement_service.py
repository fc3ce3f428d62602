"""Achievement service tests: unlock, duplicate prevention, bonus points, notifications."""

from __future__ import annotations

from dataclasses import replace

import pytest

from prepquest.errors import AlreadyUnlocked
from prepquest.notifications.service import NotificationOutbox
from prepquest.rewards.achievement_service import (
    evaluate_achievements,
    get_achievement_catalog,
    get_unlocked_achievement_ids,
    get_user_achievements,
    insert_user_achievement,
)
from prepquest.rewards.achievements import StatsSnapshot, tier_rank
from prepquest.rewards.points_service import get_rewards
from prepquest.rewards.seed import ACHIEVEMENT_SEED_DATA

FIRST_QUIZ = StatsSnapshot(
    total_quizzes=1,
    total_correct=4,
    attempt_accuracy=0.4,
    attempt_questions=10,
    max_consecutive_correct=2,
    streak_days=1,
    total_points=40,
    level=1,
    total_time_seconds=500,
)


class TestCatalog:
    @pytest.mark.asyncio
    async def test_catalog_seeded_and_ordered_by_tier(self, db_session):
        catalog = await get_achievement_catalog(db_session)
        assert len(catalog) == len(ACHIEVEMENT_SEED_DATA)
        ranks = [tier_rank(a.tier) for a in catalog]
        assert ranks == sorted(ranks)

    @pytest.mark.asyncio
    async def test_catalog_covers_every_requirement_type_and_tier(self, db_session):
        catalog = await get_achievement_catalog(db_session)
        assert {a.requirement_type for a in catalog} == {
            "quizzes_completed", "correct_answers", "perfect_score", "consecutive_correct",
            "streak_days", "points_earned", "level_reached", "time_spent",
        }
        assert {a.tier for a in catalog} == {"bronze", "silver", "gold", "platinum", "diamond"}


class TestEvaluateAchievements:
    @pytest.mark.asyncio
    async def test_first_quiz_unlocks_and_grants_bonus(self, db_session, user_id, clock):
        outbox = NotificationOutbox()
        unlocked = await evaluate_achievements(db_session, user_id, FIRST_QUIZ, clock(), outbox)

        assert [u.code for u in unlocked] == ["first_quiz"]
        rewards = await get_rewards(db_session, user_id)
        assert rewards.total_points == 10
        assert [n.type for n in outbox.pending] == ["achievement"]
        assert outbox.pending[0].data["points_reward"] == 10

    @pytest.mark.asyncio
    async def test_second_evaluation_unlocks_nothing(self, db_session, user_id, clock):
        await evaluate_achievements(db_session, user_id, FIRST_QUIZ, clock())
        again = await evaluate_achievements(db_session, user_id, FIRST_QUIZ, clock())
        assert again == []
        rewards = await get_rewards(db_session, user_id)
        assert rewards.total_points == 10

    @pytest.mark.asyncio
    async def test_several_unlock_in_one_pass(self, db_session, user_id, clock):
        stats = replace(FIRST_QUIZ, total_quizzes=10, total_time_seconds=3600, streak_days=3)
        unlocked = await evaluate_achievements(db_session, user_id, stats, clock())
        assert {u.code for u in unlocked} == {"first_quiz", "quizzes_10", "time_1h", "daily_3"}

    @pytest.mark.asyncio
    async def test_gold_unlock_requests_celebration(self, db_session, user_id, clock):
        stats = replace(FIRST_QUIZ, level=10)
        unlocked = {u.code: u for u in await evaluate_achievements(db_session, user_id, stats, clock())}
        assert unlocked["level_10"].celebrate
        assert unlocked["level_5"].celebrate is False
        assert unlocked["first_quiz"].as_dict()["celebrate"] is False

    @pytest.mark.asyncio
    async def test_already_unlocked_row_is_skipped(self, db_session, user_id, clock):
        """A row inserted by a concurrent request is treated as a no-op."""
        catalog = {a.code: a for a in await get_achievement_catalog(db_session)}
        await insert_user_achievement(db_session, user_id, catalog["first_quiz"].id, clock())

        unlocked = await evaluate_achievements(db_session, user_id, FIRST_QUIZ, clock())
        assert unlocked == []


class TestInsertUserAchievement:
    @pytest.mark.asyncio
    async def test_duplicate_raises_already_unlocked(self, db_session, user_id, clock):
        catalog = await get_achievement_catalog(db_session)
        await insert_user_achievement(db_session, user_id, catalog[0].id, clock())
        with pytest.raises(AlreadyUnlocked):
            await insert_user_achievement(db_session, user_id, catalog[0].id, clock())
        assert await get_unlocked_achievement_ids(db_session, user_id) == {catalog[0].id}


class TestUserAchievements:
    @pytest.mark.asyncio
    async def test_recent_newest_first(self, db_session, user_id, clock):
        await evaluate_achievements(db_session, user_id, FIRST_QUIZ, clock())
        clock.advance(days=1)
        await evaluate_achievements(db_session, user_id, replace(FIRST_QUIZ, streak_days=3), clock())
        clock.advance(days=1)
        await evaluate_achievements(db_session, user_id, replace(FIRST_QUIZ, total_time_seconds=3600), clock())

        recent = await get_user_achievements(db_session, user_id, limit=2)
        assert [ua.achievement.code for ua in recent] == ["time_1h", "daily_3"]
        everything = await get_user_achievements(db_session, user_id)
        assert len(everything) == 3
