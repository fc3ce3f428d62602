"""Achievement requirement predicate tests."""

from dataclasses import dataclass, replace

import pytest

from prepquest.rewards.achievements import (
    CELEBRATED_TIERS,
    RequirementType,
    StatsSnapshot,
    find_unlockable,
    requirement_met,
    tier_rank,
)

BASE = StatsSnapshot(
    total_quizzes=3,
    total_correct=25,
    attempt_accuracy=0.8,
    attempt_questions=10,
    max_consecutive_correct=7,
    streak_days=2,
    total_points=450,
    level=3,
    total_time_seconds=1800,
)


@dataclass
class Rule:
    id: int
    requirement_type: str
    requirement_value: int


class TestRequirementMet:
    @pytest.mark.parametrize(
        ("requirement_type", "met_at", "unmet_at"),
        [
            (RequirementType.QUIZZES_COMPLETED, 3, 4),
            (RequirementType.CORRECT_ANSWERS, 25, 26),
            (RequirementType.CONSECUTIVE_CORRECT, 7, 8),
            (RequirementType.STREAK_DAYS, 2, 3),
            (RequirementType.POINTS_EARNED, 450, 451),
            (RequirementType.LEVEL_REACHED, 3, 4),
            (RequirementType.TIME_SPENT, 1800, 1801),
        ],
    )
    def test_threshold_is_inclusive(self, requirement_type, met_at, unmet_at):
        assert requirement_met(requirement_type, met_at, BASE)
        assert not requirement_met(requirement_type, unmet_at, BASE)

    def test_perfect_score_needs_full_accuracy(self):
        assert not requirement_met(RequirementType.PERFECT_SCORE, 5, BASE)

    def test_perfect_score_needs_enough_questions(self):
        perfect = replace(BASE, attempt_accuracy=1.0)
        assert requirement_met(RequirementType.PERFECT_SCORE, 10, perfect)
        assert not requirement_met(RequirementType.PERFECT_SCORE, 11, perfect)


class TestFindUnlockable:
    def test_returns_every_satisfied_rule(self):
        catalog = [
            Rule(1, "quizzes_completed", 1),
            Rule(2, "correct_answers", 10),
            Rule(3, "level_reached", 10),
        ]
        assert [r.id for r in find_unlockable(catalog, set(), BASE)] == [1, 2]

    def test_skips_already_unlocked(self):
        catalog = [Rule(1, "quizzes_completed", 1), Rule(2, "correct_answers", 10)]
        assert [r.id for r in find_unlockable(catalog, {1}, BASE)] == [2]

    def test_second_pass_with_same_state_unlocks_nothing(self):
        catalog = [Rule(1, "quizzes_completed", 1), Rule(2, "time_spent", 60)]
        first = find_unlockable(catalog, set(), BASE)
        second = find_unlockable(catalog, {r.id for r in first}, BASE)
        assert len(first) == 2
        assert second == []

    def test_unknown_requirement_type_rejected(self):
        with pytest.raises(ValueError):
            find_unlockable([Rule(1, "logins", 1)], set(), BASE)


class TestTiers:
    def test_rank_order(self):
        assert [tier_rank(t) for t in ("bronze", "silver", "gold", "platinum", "diamond")] == [0, 1, 2, 3, 4]

    def test_gold_and_platinum_celebrate(self):
        assert CELEBRATED_TIERS == {"gold", "platinum"}
