"""Daily challenge progress rule tests."""

import pytest

from prepquest.rewards.challenges import (
    AttemptProgress,
    ChallengeType,
    advance_progress,
    difficulty_rank,
    is_complete,
)

GOOD = AttemptProgress(correct_answers=9, total_questions=10, time_spent_seconds=240, consecutive_correct=6)
PERFECT = AttemptProgress(correct_answers=5, total_questions=5, time_spent_seconds=90, consecutive_correct=5)
POOR = AttemptProgress(correct_answers=3, total_questions=10, time_spent_seconds=600, consecutive_correct=2)


class TestAdvanceProgress:
    def test_quiz_count_adds_one(self):
        assert advance_progress(ChallengeType.QUIZ_COUNT, 2, 3, POOR) == 3

    def test_correct_answers_accumulate(self):
        assert advance_progress(ChallengeType.CORRECT_ANSWERS, 4, 20, GOOD) == 13

    def test_perfect_score_counts_only_perfect(self):
        assert advance_progress(ChallengeType.PERFECT_SCORE, 0, 1, PERFECT) == 1
        assert advance_progress(ChallengeType.PERFECT_SCORE, 0, 1, GOOD) == 0

    def test_accuracy_counts_qualifying_attempts(self):
        """Target 80 is both the percentage bar and the number of qualifying attempts."""
        assert advance_progress(ChallengeType.ACCURACY, 0, 80, GOOD) == 1
        assert advance_progress(ChallengeType.ACCURACY, 1, 80, POOR) == 1

    @pytest.mark.parametrize(
        ("correct", "total", "target"),
        [(8, 10, 80), (29, 50, 58), (57, 100, 57), (7, 10, 70)],
    )
    def test_accuracy_bar_is_inclusive(self, correct, total, target):
        exactly = AttemptProgress(correct_answers=correct, total_questions=total, time_spent_seconds=1, consecutive_correct=0)
        assert advance_progress(ChallengeType.ACCURACY, 0, target, exactly) == 1

    def test_accuracy_just_below_bar(self):
        short = AttemptProgress(correct_answers=28, total_questions=50, time_spent_seconds=1, consecutive_correct=0)
        assert advance_progress(ChallengeType.ACCURACY, 0, 57, short) == 0

    def test_time_spent_accumulates(self):
        assert advance_progress(ChallengeType.TIME_SPENT, 100, 600, GOOD) == 340

    def test_streak_replaces_with_max(self):
        assert advance_progress(ChallengeType.STREAK, 3, 5, GOOD) == 6
        assert advance_progress(ChallengeType.STREAK, 8, 10, GOOD) == 8

    @pytest.mark.parametrize("challenge_type", list(ChallengeType))
    @pytest.mark.parametrize("attempt", [GOOD, PERFECT, POOR])
    def test_progress_never_decreases(self, challenge_type, attempt):
        assert advance_progress(challenge_type, 7, 10, attempt) >= 7


class TestCompletion:
    def test_is_complete_at_target(self):
        assert is_complete(5, 5)
        assert not is_complete(4, 5)

    def test_difficulty_order(self):
        assert sorted(["hard", "easy", "normal"], key=difficulty_rank) == ["easy", "normal", "hard"]
