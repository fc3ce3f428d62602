"""Daily challenge progress rules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import assert_never


class ChallengeType(str, Enum):
    QUIZ_COUNT = "quiz_count"
    CORRECT_ANSWERS = "correct_answers"
    PERFECT_SCORE = "perfect_score"
    ACCURACY = "accuracy"
    TIME_SPENT = "time_spent"
    STREAK = "streak"


DIFFICULTY_ORDER = ["easy", "normal", "hard"]


@dataclass(frozen=True)
class AttemptProgress:
    """The slice of an attempt the daily challenges care about."""

    correct_answers: int
    total_questions: int
    time_spent_seconds: int
    consecutive_correct: int

    @property
    def is_perfect(self) -> bool:
        return self.correct_answers == self.total_questions


def advance_progress(
    challenge_type: ChallengeType,
    current_progress: int,
    target_value: int,
    attempt: AttemptProgress,
) -> int:
    """New progress value after ``attempt``; never lower than ``current_progress``."""
    match challenge_type:
        case ChallengeType.QUIZ_COUNT:
            return current_progress + 1
        case ChallengeType.CORRECT_ANSWERS:
            return current_progress + attempt.correct_answers
        case ChallengeType.PERFECT_SCORE:
            return current_progress + (1 if attempt.is_perfect else 0)
        case ChallengeType.ACCURACY:
            # target_value is both the accuracy percentage and the number of
            # qualifying attempts needed (e.g. 80 -> eighty attempts at >= 80%).
            # Integer math: 29/50 meets a target of 58 exactly.
            qualifies = attempt.correct_answers * 100 >= target_value * attempt.total_questions
            return current_progress + (1 if qualifies else 0)
        case ChallengeType.TIME_SPENT:
            return current_progress + attempt.time_spent_seconds
        case ChallengeType.STREAK:
            return max(current_progress, attempt.consecutive_correct)
        case _:
            assert_never(challenge_type)


def is_complete(progress: int, target_value: int) -> bool:
    return progress >= target_value


def difficulty_rank(difficulty: str) -> int:
    try:
        return DIFFICULTY_ORDER.index(difficulty)
    except ValueError:
        return len(DIFFICULTY_ORDER)
