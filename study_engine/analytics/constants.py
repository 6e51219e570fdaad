"""
Constants for the activity score, trend and dashboard labels.
"""

from __future__ import annotations

from typing import Final

from study_engine.memory_model.constants import Rating


RATING_POINTS: Final[dict[int, int]] = {
    int(Rating.AGAIN): -2,
    int(Rating.HARD): 1,
    int(Rating.GOOD): 3,
    int(Rating.EASY): 4,
}

INCORRECT_POINTS: Final[int] = -2

# Age buckets in days: [0, 1), [1, 3), [3, 7), [7, inf)
AGE_BINS: Final[list[float]] = [float("-inf"), 1.0, 3.0, 7.0, float("inf")]
AGE_WEIGHTS: Final[list[float]] = [1.0, 0.7, 0.4, 0.2]

TREND_WINDOW: Final[int] = 50

RATING_LABELS: Final[dict[int, str]] = {
    int(Rating.AGAIN): "Again",
    int(Rating.HARD): "Hard",
    int(Rating.GOOD): "Good",
    int(Rating.EASY): "Easy",
}
