"""Connection match scoring.

score = floor(interest overlap * 70 + exploration), clamped to [0, 100].
The exploration term is an integer in [0, 29] so that recommendations are not
purely interest-deterministic.
"""

from __future__ import annotations

import math
import random
from collections.abc import Iterable, Sequence
from typing import TypeVar

OVERLAP_WEIGHT = 70
EXPLORATION_RANGE = 30
MIN_SCORE = 0
MAX_SCORE = 100

T = TypeVar("T")


def _interest_set(interests: Iterable[str]) -> set[str]:
    return {item.strip().lower() for item in interests if item and item.strip()}


def interest_overlap_score(a: Iterable[str], b: Iterable[str]) -> float:
    """Shared interests over the larger set, scaled to OVERLAP_WEIGHT."""
    set_a = _interest_set(a)
    set_b = _interest_set(b)
    if not set_a or not set_b:
        return 0.0
    shared = len(set_a & set_b)
    return shared / max(len(set_a), len(set_b)) * OVERLAP_WEIGHT


def clamp_score(value: float) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, math.floor(value)))


def match_score(a: Iterable[str], b: Iterable[str], rng: random.Random | None = None) -> int:
    """Combine interest overlap with a bounded random exploration term."""
    rng = rng or random.Random()
    exploration = rng.randrange(EXPLORATION_RANGE)
    return clamp_score(interest_overlap_score(a, b) + exploration)


def rank_candidates(scored: Iterable[tuple[int, T, int]], limit: int) -> list[tuple[T, int]]:
    """Top ``limit`` of (user_id, item, score) by score desc, then user_id asc."""
    if limit <= 0:
        return []
    ordered: Sequence[tuple[int, T, int]] = sorted(scored, key=lambda entry: (-entry[2], entry[0]))
    return [(item, score) for _, item, score in ordered[:limit]]
