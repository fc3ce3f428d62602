"""Milestone threshold tables.

These values MUST match the client's celebration copy exactly. Milestones
award no points; they only drive one-time celebration popups.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MilestoneType(str, Enum):
    POINTS = "points"
    LEVEL = "level"
    QUIZZES = "quizzes"
    STREAK = "streak"


MILESTONE_THRESHOLDS: dict[MilestoneType, tuple[int, ...]] = {
    MilestoneType.POINTS: (100, 250, 500, 1000, 2500, 5000, 10000, 25000, 50000, 100000),
    MilestoneType.LEVEL: (5, 10, 15, 20, 25, 30, 40, 50, 75, 100),
    MilestoneType.QUIZZES: (1, 5, 10, 25, 50, 100, 250, 500, 1000),
    MilestoneType.STREAK: (3, 7, 14, 30, 60, 100, 365),
}


@dataclass(frozen=True)
class MilestoneStats:
    total_points: int
    current_level: int
    total_quizzes: int
    streak_days: int

    def value_for(self, milestone_type: MilestoneType) -> int:
        return {
            MilestoneType.POINTS: self.total_points,
            MilestoneType.LEVEL: self.current_level,
            MilestoneType.QUIZZES: self.total_quizzes,
            MilestoneType.STREAK: self.streak_days,
        }[milestone_type]


def find_new_milestones(
    stats: MilestoneStats,
    achieved: set[tuple[str, int]],
) -> list[tuple[str, int]]:
    """(type, threshold) pairs crossed by ``stats`` and not in ``achieved``."""
    crossed = []
    for milestone_type, thresholds in MILESTONE_THRESHOLDS.items():
        current = stats.value_for(milestone_type)
        for threshold in thresholds:
            key = (milestone_type.value, threshold)
            if current >= threshold and key not in achieved:
                crossed.append(key)
    return crossed


def describe_milestone(milestone_type: str, value: int) -> dict[str, str]:
    """Title, description and icon the client shows for a milestone."""
    if milestone_type == MilestoneType.POINTS:
        return {"title": f"{value:,} Points!", "description": f"You reached {value:,} total points!", "icon": "star"}
    if milestone_type == MilestoneType.LEVEL:
        return {"title": f"Level {value}!", "description": f"You made it to level {value}. Keep going!", "icon": "zap"}
    if milestone_type == MilestoneType.QUIZZES:
        return {"title": f"{value} Quizzes!", "description": f"You completed {value} quizzes!", "icon": "book-open"}
    if milestone_type == MilestoneType.STREAK:
        return {"title": f"{value}-Day Streak!", "description": f"You studied {value} days in a row!", "icon": "flame"}
    return {"title": "Milestone Reached!", "description": "Congratulations!", "icon": "award"}
