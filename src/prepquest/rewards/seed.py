"""Catalog seed data: achievements, daily challenges and the reward shop."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from prepquest.db.models import Achievement, DailyChallenge, RewardCatalogItem
from prepquest.db.upsert import upsert

logger = logging.getLogger(__name__)

ACHIEVEMENT_SEED_DATA: list[dict] = [
    # Quizzes completed
    {
        "code": "first_quiz",
        "name": "First Steps",
        "description": "Complete your first quiz",
        "icon": "play",
        "points_reward": 10,
        "tier": "bronze",
        "requirement_type": "quizzes_completed",
        "requirement_value": 1,
        "sort_order": 1,
    },
    {
        "code": "quizzes_10",
        "name": "Getting Serious",
        "description": "Complete 10 quizzes",
        "icon": "book-open",
        "points_reward": 50,
        "tier": "silver",
        "requirement_type": "quizzes_completed",
        "requirement_value": 10,
        "sort_order": 2,
    },
    {
        "code": "quizzes_50",
        "name": "Study Machine",
        "description": "Complete 50 quizzes",
        "icon": "book-open",
        "points_reward": 150,
        "tier": "gold",
        "requirement_type": "quizzes_completed",
        "requirement_value": 50,
        "sort_order": 3,
    },
    {
        "code": "quizzes_100",
        "name": "Centurion",
        "description": "Complete 100 quizzes",
        "icon": "shield",
        "points_reward": 300,
        "tier": "platinum",
        "requirement_type": "quizzes_completed",
        "requirement_value": 100,
        "sort_order": 4,
    },
    {
        "code": "quizzes_500",
        "name": "Exam Legend",
        "description": "Complete 500 quizzes",
        "icon": "crown",
        "points_reward": 1000,
        "tier": "diamond",
        "requirement_type": "quizzes_completed",
        "requirement_value": 500,
        "sort_order": 5,
    },
    # Correct answers
    {
        "code": "correct_50",
        "name": "Sharp Mind",
        "description": "Answer 50 questions correctly",
        "icon": "check-circle",
        "points_reward": 25,
        "tier": "bronze",
        "requirement_type": "correct_answers",
        "requirement_value": 50,
        "sort_order": 10,
    },
    {
        "code": "correct_500",
        "name": "Know-It-All",
        "description": "Answer 500 questions correctly",
        "icon": "check-circle",
        "points_reward": 100,
        "tier": "silver",
        "requirement_type": "correct_answers",
        "requirement_value": 500,
        "sort_order": 11,
    },
    {
        "code": "correct_2500",
        "name": "Walking Encyclopedia",
        "description": "Answer 2,500 questions correctly",
        "icon": "brain",
        "points_reward": 250,
        "tier": "gold",
        "requirement_type": "correct_answers",
        "requirement_value": 2500,
        "sort_order": 12,
    },
    # Perfect scores (attempt with at least N questions, all correct)
    {
        "code": "perfect_5",
        "name": "Flawless",
        "description": "Get every answer right in a quiz of 5+ questions",
        "icon": "star",
        "points_reward": 50,
        "tier": "silver",
        "requirement_type": "perfect_score",
        "requirement_value": 5,
        "sort_order": 20,
    },
    {
        "code": "perfect_20",
        "name": "Perfectionist",
        "description": "Get every answer right in a quiz of 20+ questions",
        "icon": "sparkles",
        "points_reward": 150,
        "tier": "gold",
        "requirement_type": "perfect_score",
        "requirement_value": 20,
        "sort_order": 21,
    },
    # Consecutive correct
    {
        "code": "streak_10",
        "name": "On a Roll",
        "description": "Answer 10 questions correctly in a row",
        "icon": "flame",
        "points_reward": 25,
        "tier": "bronze",
        "requirement_type": "consecutive_correct",
        "requirement_value": 10,
        "sort_order": 30,
    },
    {
        "code": "streak_25",
        "name": "Unstoppable",
        "description": "Answer 25 questions correctly in a row",
        "icon": "flame",
        "points_reward": 75,
        "tier": "silver",
        "requirement_type": "consecutive_correct",
        "requirement_value": 25,
        "sort_order": 31,
    },
    {
        "code": "streak_50",
        "name": "In the Zone",
        "description": "Answer 50 questions correctly in a row",
        "icon": "zap",
        "points_reward": 150,
        "tier": "gold",
        "requirement_type": "consecutive_correct",
        "requirement_value": 50,
        "sort_order": 32,
    },
    # Daily study streak
    {
        "code": "daily_3",
        "name": "Habit Forming",
        "description": "Study 3 days in a row",
        "icon": "calendar",
        "points_reward": 20,
        "tier": "bronze",
        "requirement_type": "streak_days",
        "requirement_value": 3,
        "sort_order": 40,
    },
    {
        "code": "daily_7",
        "name": "Week Warrior",
        "description": "Study 7 days in a row",
        "icon": "calendar",
        "points_reward": 50,
        "tier": "silver",
        "requirement_type": "streak_days",
        "requirement_value": 7,
        "sort_order": 41,
    },
    {
        "code": "daily_30",
        "name": "Monthly Master",
        "description": "Study 30 days in a row",
        "icon": "calendar-check",
        "points_reward": 300,
        "tier": "platinum",
        "requirement_type": "streak_days",
        "requirement_value": 30,
        "sort_order": 42,
    },
    # Points earned
    {
        "code": "points_1000",
        "name": "Point Collector",
        "description": "Earn 1,000 points",
        "icon": "coins",
        "points_reward": 50,
        "tier": "silver",
        "requirement_type": "points_earned",
        "requirement_value": 1000,
        "sort_order": 50,
    },
    {
        "code": "points_10000",
        "name": "Point Hoarder",
        "description": "Earn 10,000 points",
        "icon": "gem",
        "points_reward": 200,
        "tier": "gold",
        "requirement_type": "points_earned",
        "requirement_value": 10000,
        "sort_order": 51,
    },
    # Level reached
    {
        "code": "level_5",
        "name": "Rising Star",
        "description": "Reach level 5",
        "icon": "trending-up",
        "points_reward": 50,
        "tier": "silver",
        "requirement_type": "level_reached",
        "requirement_value": 5,
        "sort_order": 60,
    },
    {
        "code": "level_10",
        "name": "Veteran",
        "description": "Reach level 10",
        "icon": "award",
        "points_reward": 150,
        "tier": "gold",
        "requirement_type": "level_reached",
        "requirement_value": 10,
        "sort_order": 61,
    },
    {
        "code": "level_25",
        "name": "Grandmaster",
        "description": "Reach level 25",
        "icon": "crown",
        "points_reward": 500,
        "tier": "diamond",
        "requirement_type": "level_reached",
        "requirement_value": 25,
        "sort_order": 62,
    },
    # Time spent
    {
        "code": "time_1h",
        "name": "Hour of Power",
        "description": "Spend one hour answering quizzes",
        "icon": "clock",
        "points_reward": 25,
        "tier": "bronze",
        "requirement_type": "time_spent",
        "requirement_value": 3600,
        "sort_order": 70,
    },
    {
        "code": "time_10h",
        "name": "Dedicated Learner",
        "description": "Spend ten hours answering quizzes",
        "icon": "hourglass",
        "points_reward": 100,
        "tier": "silver",
        "requirement_type": "time_spent",
        "requirement_value": 36000,
        "sort_order": 71,
    },
]

DAILY_CHALLENGE_SEED_DATA: list[dict] = [
    # Easy
    {
        "code": "daily_quiz_1",
        "title": "Warm Up",
        "description": "Complete 1 quiz today",
        "icon": "play",
        "challenge_type": "quiz_count",
        "target_value": 1,
        "points_reward": 20,
        "difficulty": "easy",
    },
    {
        "code": "daily_correct_10",
        "title": "Ten Right",
        "description": "Answer 10 questions correctly today",
        "icon": "check-circle",
        "challenge_type": "correct_answers",
        "target_value": 10,
        "points_reward": 25,
        "difficulty": "easy",
    },
    {
        "code": "daily_time_600",
        "title": "Ten Minutes",
        "description": "Study for 10 minutes today",
        "icon": "clock",
        "challenge_type": "time_spent",
        "target_value": 600,
        "points_reward": 20,
        "difficulty": "easy",
    },
    # Normal
    {
        "code": "daily_quiz_3",
        "title": "Triple Play",
        "description": "Complete 3 quizzes today",
        "icon": "layers",
        "challenge_type": "quiz_count",
        "target_value": 3,
        "points_reward": 40,
        "difficulty": "normal",
    },
    {
        "code": "daily_perfect_1",
        "title": "Perfect Run",
        "description": "Get a perfect score on a quiz today",
        "icon": "star",
        "challenge_type": "perfect_score",
        "target_value": 1,
        "points_reward": 50,
        "difficulty": "normal",
    },
    {
        "code": "daily_streak_5",
        "title": "Hot Streak",
        "description": "Answer 5 questions correctly in a row",
        "icon": "flame",
        "challenge_type": "streak",
        "target_value": 5,
        "points_reward": 40,
        "difficulty": "normal",
    },
    # Hard
    {
        "code": "daily_accuracy_80",
        "title": "Precision",
        "description": "Score 80% or better on your quizzes today",
        "icon": "target",
        "challenge_type": "accuracy",
        "target_value": 80,
        "points_reward": 100,
        "difficulty": "hard",
    },
    {
        "code": "daily_correct_50",
        "title": "Half Century",
        "description": "Answer 50 questions correctly today",
        "icon": "trophy",
        "challenge_type": "correct_answers",
        "target_value": 50,
        "points_reward": 80,
        "difficulty": "hard",
    },
    {
        "code": "daily_perfect_3",
        "title": "Hat Trick",
        "description": "Get 3 perfect scores today",
        "icon": "sparkles",
        "challenge_type": "perfect_score",
        "target_value": 3,
        "points_reward": 120,
        "difficulty": "hard",
    },
]

REWARD_SEED_DATA: list[dict] = [
    {
        "code": "hint_pack_5",
        "name": "Hint Pack",
        "description": "Five hints to use on any question",
        "points_cost": 150,
        "reward_type": "hints",
        "reward_value": {"count": 5},
        "available_for_tier": "free",
        "max_redemptions": None,
    },
    {
        "code": "streak_freeze",
        "name": "Streak Freeze",
        "description": "Keep your daily streak alive for one missed day",
        "points_cost": 200,
        "reward_type": "streak_freeze",
        "reward_value": {"count": 1, "duration_days": 7},
        "available_for_tier": "free",
        "max_redemptions": None,
    },
    {
        "code": "theme_midnight",
        "name": "Midnight Theme",
        "description": "Unlock the dark Midnight app theme",
        "points_cost": 300,
        "reward_type": "theme",
        "reward_value": {"theme": "midnight"},
        "available_for_tier": "free",
        "max_redemptions": 1,
    },
    {
        "code": "double_points_1h",
        "name": "Double Points Hour",
        "description": "Earn double points for one hour",
        "points_cost": 500,
        "reward_type": "points_multiplier",
        "reward_value": {"multiplier": 2, "duration_hours": 1},
        "available_for_tier": "free",
        "max_redemptions": None,
    },
    {
        "code": "avatar_frame_gold",
        "name": "Golden Avatar Frame",
        "description": "A gold frame around your profile picture",
        "points_cost": 1000,
        "reward_type": "avatar_frame",
        "reward_value": {"frame": "gold"},
        "available_for_tier": "plus",
        "max_redemptions": 1,
    },
]


async def seed_catalogs(db: AsyncSession) -> dict[str, int]:
    """Upsert every catalog by code. Returns the number of rows seeded per catalog."""
    for data in ACHIEVEMENT_SEED_DATA:
        await upsert(db, Achievement, data, ["code"])
    for data in DAILY_CHALLENGE_SEED_DATA:
        await upsert(db, DailyChallenge, {**data, "is_active": True}, ["code"])
    for data in REWARD_SEED_DATA:
        await upsert(db, RewardCatalogItem, {**data, "is_active": True}, ["code"])

    await db.commit()
    counts = {
        "achievements": len(ACHIEVEMENT_SEED_DATA),
        "daily_challenges": len(DAILY_CHALLENGE_SEED_DATA),
        "rewards": len(REWARD_SEED_DATA),
    }
    logger.info(
        "Seeded %d achievements, %d daily challenges, %d rewards",
        counts["achievements"], counts["daily_challenges"], counts["rewards"],
    )
    return counts
