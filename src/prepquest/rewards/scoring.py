"""Quiz attempt scoring.

The bonus formula MUST stay exactly as published to players:

    base     = correct * 10
    accuracy = +20 at >= 80%, +10 at >= 60%
    speed    = +15 under 300s, +5 under 450s
    perfect  = +50 at 100%
    streak   = best in-attempt streak * 2 when the streak is >= 5
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from prepquest.errors import ValidationError

POINTS_PER_CORRECT = 10
PERFECT_BONUS = 50
STREAK_BONUS_MIN = 5
STREAK_BONUS_PER_ANSWER = 2


@dataclass(frozen=True)
class PointsBreakdown:
    """Points for one attempt, split into named components."""

    base: int
    accuracy_bonus: int
    speed_bonus: int
    perfect_bonus: int
    streak_bonus: int

    @property
    def total(self) -> int:
        return self.base + self.accuracy_bonus + self.speed_bonus + self.perfect_bonus + self.streak_bonus

    def as_dict(self) -> dict[str, int]:
        return {**asdict(self), "total": self.total}


def validate_attempt(
    correct_answers: int,
    total_questions: int,
    time_spent_seconds: int,
    consecutive_correct: int,
) -> None:
    """Raise ValidationError for a malformed attempt payload."""
    if total_questions <= 0:
        raise ValidationError("total_questions must be greater than zero")
    if not 0 <= correct_answers <= total_questions:
        raise ValidationError("correct_answers must be between 0 and total_questions")
    if time_spent_seconds < 0:
        raise ValidationError("time_spent_seconds must not be negative")
    if consecutive_correct < 0:
        raise ValidationError("consecutive_correct must not be negative")


def accuracy_bonus(accuracy: float) -> int:
    if accuracy >= 0.8:
        return 20
    if accuracy >= 0.6:
        return 10
    return 0


def speed_bonus(time_spent_seconds: int) -> int:
    if time_spent_seconds < 300:
        return 15
    if time_spent_seconds < 450:
        return 5
    return 0


def streak_bonus(consecutive_correct: int) -> int:
    if consecutive_correct >= STREAK_BONUS_MIN:
        return consecutive_correct * STREAK_BONUS_PER_ANSWER
    return 0


def calculate_points(
    correct_answers: int,
    total_questions: int,
    time_spent_seconds: int,
    consecutive_correct: int,
) -> PointsBreakdown:
    """Score one attempt. ``consecutive_correct`` is the best streak seen inside the attempt."""
    validate_attempt(correct_answers, total_questions, time_spent_seconds, consecutive_correct)

    accuracy = correct_answers / total_questions
    return PointsBreakdown(
        base=correct_answers * POINTS_PER_CORRECT,
        accuracy_bonus=accuracy_bonus(accuracy),
        speed_bonus=speed_bonus(time_spent_seconds),
        perfect_bonus=PERFECT_BONUS if correct_answers == total_questions else 0,
        streak_bonus=streak_bonus(consecutive_correct),
    )


def next_consecutive_correct(previous: int, correct_answers: int, total_questions: int) -> int:
    """Cross-attempt streak carried on the rewards record.

    A perfect attempt adds its correct answers to the running count; anything
    else resets it. This mixes "consecutive perfect attempts" with "correct
    answers across attempts" and is kept as-is because stored streaks and
    consecutive_correct achievements already depend on it.
    """
    if correct_answers == total_questions:
        return previous + correct_answers
    return 0
