"""Level computation from achievement points.

These values MUST match the profile page:
  "Level N Explorer", one level per 1000 points.
"""

from __future__ import annotations

POINTS_PER_LEVEL = 1000


def compute_level(achievement_points: int) -> int:
    """Level for a point total. Level 1 starts at 0 points."""
    return max(achievement_points, 0) // POINTS_PER_LEVEL + 1


def level_progress(achievement_points: int) -> dict:
    """Level plus progress toward the next one."""
    points = max(achievement_points, 0)
    level = compute_level(points)
    points_into_level = points % POINTS_PER_LEVEL
    return {
        "level": level,
        "points_into_level": points_into_level,
        "points_for_level": POINTS_PER_LEVEL,
        "points_to_next_level": POINTS_PER_LEVEL - points_into_level,
        "next_level": level + 1,
    }
