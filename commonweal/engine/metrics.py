"""
commonweal.engine.metrics — Derived Metric Formulas
====================================================

Pure functions behind every "derived" column on initiatives and events.
Nothing in here touches the database; the ``before_flush`` hook in
:mod:`commonweal.database.models` calls these whenever an initiative or
event (or one of its child rows) is about to be written.

Scores are static weighted sums.  Each component is divided by a scale
and capped at a ceiling; the ceilings of one score always sum to 100.
"""

from __future__ import annotations

import math
from collections.abc import Iterable


# ---------------------------------------------------------------------------
# Score tables — (scale divisor, ceiling) per component
# ---------------------------------------------------------------------------
IMPACT_COMPONENTS: dict[str, tuple[float, float]] = {
    "people_reached": (100, 25),
    "hours_volunteered": (100, 25),
    "funds_raised": (1000, 20),
    "environmental_impact": (1, 15),
    "social_connections": (10, 15),
}

SOCIAL_IMPACT_COMPONENTS: dict[str, tuple[float, float]] = {
    "people_connected": (10, 30),
    "knowledge_shared": (5, 25),
    "community_building": (5, 25),
    "environmental_impact": (1, 20),
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero for positives.

    Python's :func:`round` uses banker's rounding (``round(2.5) == 2``),
    which would make a score of 12.5 display as 12.
    """
    return int(math.floor(value + 0.5))


def _weighted_sum(values: dict[str, float], table: dict[str, tuple[float, float]]) -> int:
    score = 0.0
    for key, (scale, ceiling) in table.items():
        raw = max(float(values.get(key) or 0), 0.0)
        score += min(raw / scale, ceiling)
    return round_half_up(score)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def average_rating(ratings: Iterable[int]) -> float:
    """Arithmetic mean of *ratings*; ``0.0`` for an empty iterable."""
    items = list(ratings)
    if not items:
        return 0.0
    return sum(items) / len(items)


def impact_score(
    people_reached: float = 0,
    hours_volunteered: float = 0,
    funds_raised: float = 0,
    environmental_impact: float = 0,
    social_connections: float = 0,
) -> int:
    """Initiative impact score in ``[0, 100]``."""
    return _weighted_sum(
        {
            "people_reached": people_reached,
            "hours_volunteered": hours_volunteered,
            "funds_raised": funds_raised,
            "environmental_impact": environmental_impact,
            "social_connections": social_connections,
        },
        IMPACT_COMPONENTS,
    )


def social_impact_score(
    people_connected: float = 0,
    knowledge_shared: float = 0,
    community_building: float = 0,
    environmental_impact: float = 0,
) -> int:
    """Event social impact score in ``[0, 100]``."""
    return _weighted_sum(
        {
            "people_connected": people_connected,
            "knowledge_shared": knowledge_shared,
            "community_building": community_building,
            "environmental_impact": environmental_impact,
        },
        SOCIAL_IMPACT_COMPONENTS,
    )


def engagement_rate(likes: int, attendees: int) -> float:
    """Likes per attendee as a percentage.

    Raises
    ------
    ValueError
        If *attendees* is not positive; callers only recompute the rate
        while the attendee list is non-empty.
    """
    if attendees <= 0:
        raise ValueError("engagement_rate requires at least one attendee")
    return likes / attendees * 100
