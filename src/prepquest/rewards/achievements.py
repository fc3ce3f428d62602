"""Achievement unlock rules.

Each requirement type is a closed enum member with its own predicate; the
``match`` in ``requirement_met`` is checked for exhaustiveness by type
checkers via ``assert_never``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, assert_never


class RequirementType(str, Enum):
    QUIZZES_COMPLETED = "quizzes_completed"
    CORRECT_ANSWERS = "correct_answers"
    PERFECT_SCORE = "perfect_score"
    CONSECUTIVE_CORRECT = "consecutive_correct"
    STREAK_DAYS = "streak_days"
    POINTS_EARNED = "points_earned"
    LEVEL_REACHED = "level_reached"
    TIME_SPENT = "time_spent"


class Tier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"


TIER_ORDER = [t.value for t in Tier]

# Tiers whose unlock asks the client for the enhanced celebration
CELEBRATED_TIERS = frozenset({Tier.GOLD.value, Tier.PLATINUM.value})


@dataclass(frozen=True)
class StatsSnapshot:
    """Cumulative stats right after an attempt was scored (before achievement bonuses)."""

    total_quizzes: int
    total_correct: int
    attempt_accuracy: float
    attempt_questions: int
    max_consecutive_correct: int
    streak_days: int
    total_points: int
    level: int
    total_time_seconds: int

    @property
    def attempt_is_perfect(self) -> bool:
        return self.attempt_accuracy == 1.0


class AchievementRule(Protocol):
    id: int
    requirement_type: str
    requirement_value: int


def requirement_met(requirement_type: RequirementType, value: int, stats: StatsSnapshot) -> bool:
    """True when ``stats`` satisfies one requirement (all thresholds are ``>=``)."""
    match requirement_type:
        case RequirementType.QUIZZES_COMPLETED:
            return stats.total_quizzes >= value
        case RequirementType.CORRECT_ANSWERS:
            return stats.total_correct >= value
        case RequirementType.PERFECT_SCORE:
            return stats.attempt_is_perfect and stats.attempt_questions >= value
        case RequirementType.CONSECUTIVE_CORRECT:
            return stats.max_consecutive_correct >= value
        case RequirementType.STREAK_DAYS:
            return stats.streak_days >= value
        case RequirementType.POINTS_EARNED:
            return stats.total_points >= value
        case RequirementType.LEVEL_REACHED:
            return stats.level >= value
        case RequirementType.TIME_SPENT:
            return stats.total_time_seconds >= value
        case _:
            assert_never(requirement_type)


def find_unlockable(
    catalog: Iterable[AchievementRule],
    unlocked_ids: set[int],
    stats: StatsSnapshot,
) -> list[AchievementRule]:
    """Every catalog entry not yet unlocked whose requirement is met.

    Scans the whole catalog: several achievements can unlock in one attempt.
    """
    return [
        achievement
        for achievement in catalog
        if achievement.id not in unlocked_ids
        and requirement_met(RequirementType(achievement.requirement_type), achievement.requirement_value, stats)
    ]


def tier_rank(tier: str) -> int:
    try:
        return TIER_ORDER.index(tier)
    except ValueError:
        return len(TIER_ORDER)
