"""Level computation tests: triangular thresholds 0, 100, 300, 600, 1000, ..."""

import pytest

from prepquest.rewards.level_thresholds import (
    calculate_level,
    compute_level,
    level_table,
    level_threshold,
    points_for_next_level,
)


class TestLevelComputation:
    def test_level_1_at_zero_points(self):
        assert calculate_level(0) == 1

    def test_level_boundary_99_points(self):
        """99 points is still level 1."""
        assert calculate_level(99) == 1

    def test_level_2_at_100_points(self):
        assert calculate_level(100) == 2

    def test_level_3_at_300_points(self):
        assert calculate_level(300) == 3

    def test_level_4_at_600_points(self):
        assert calculate_level(600) == 4

    def test_thresholds(self):
        assert [level_threshold(n) for n in range(1, 7)] == [0, 100, 300, 600, 1000, 1500]

    @pytest.mark.parametrize("level", range(2, 60))
    def test_threshold_round_trip(self, level):
        assert calculate_level(level_threshold(level)) == level
        assert calculate_level(level_threshold(level) - 1) == level - 1

    def test_monotonic(self):
        levels = [calculate_level(p) for p in range(0, 20000, 37)]
        assert levels == sorted(levels)

    def test_negative_points_rejected(self):
        with pytest.raises(ValueError):
            calculate_level(-1)

    def test_points_for_next_level(self):
        assert points_for_next_level(1) == 100
        assert points_for_next_level(2) == 300
        assert points_for_next_level(4) == 1000


class TestComputeLevel:
    def test_points_into_level(self):
        result = compute_level(150)
        assert result["level"] == 2
        assert result["level_threshold"] == 100
        assert result["points_into_level"] == 50
        assert result["points_for_level"] == 200
        assert result["points_for_next_level"] == 300

    def test_exactly_at_boundary(self):
        result = compute_level(300)
        assert result["level"] == 3
        assert result["points_into_level"] == 0


class TestLevelTable:
    def test_first_rows(self):
        table = level_table(4)
        assert table == [
            {"level": 1, "points_required": 0, "cumulative": 0},
            {"level": 2, "points_required": 100, "cumulative": 100},
            {"level": 3, "points_required": 200, "cumulative": 300},
            {"level": 4, "points_required": 300, "cumulative": 600},
        ]

    def test_cumulative_matches_threshold(self):
        for row in level_table(30):
            assert row["cumulative"] == level_threshold(row["level"])
