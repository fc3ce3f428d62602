"""Level thresholds and computation.

Thresholds are triangular: reaching level 2 takes 100 points, each further
level takes 100 more than the previous one (0, 100, 300, 600, 1000, 1500, ...).
Levels are always derived from total points, never stored incrementally.
"""

from __future__ import annotations

FIRST_INCREMENT = 100
INCREMENT_STEP = 100


def level_threshold(level: int) -> int:
    """Cumulative points required to reach ``level``."""
    if level < 1:
        msg = f"level must be >= 1, got {level}"
        raise ValueError(msg)
    threshold = 0
    increment = FIRST_INCREMENT
    for _ in range(1, level):
        threshold += increment
        increment += INCREMENT_STEP
    return threshold


def calculate_level(total_points: int) -> int:
    """Largest level whose threshold is <= ``total_points``."""
    if total_points < 0:
        msg = f"total_points must be >= 0, got {total_points}"
        raise ValueError(msg)
    level = 1
    threshold = 0
    increment = FIRST_INCREMENT
    while total_points >= threshold + increment:
        threshold += increment
        level += 1
        increment += INCREMENT_STEP
    return level


def points_for_next_level(current_level: int) -> int:
    """Cumulative threshold of the level after ``current_level``."""
    return level_threshold(current_level + 1)


def compute_level(total_points: int) -> dict:
    """Compute level info from total points."""
    level = calculate_level(total_points)
    threshold = level_threshold(level)
    next_threshold = points_for_next_level(level)
    return {
        "level": level,
        "level_threshold": threshold,
        "points_into_level": total_points - threshold,
        "points_for_level": next_threshold - threshold,
        "points_for_next_level": next_threshold,
    }


def level_table(max_level: int) -> list[dict]:
    """Levels 1..max_level with their cumulative thresholds."""
    table = []
    cumulative = 0
    required = 0
    for level in range(1, max_level + 1):
        if level > 1:
            required = FIRST_INCREMENT + (level - 2) * INCREMENT_STEP
            cumulative += required
        table.append({"level": level, "points_required": required, "cumulative": cumulative})
    return table
