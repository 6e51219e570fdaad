"""
Metric computations for project dashboards and the activity score.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import pandas as pd

from study_engine.analytics.constants import (
    AGE_BINS,
    AGE_WEIGHTS,
    INCORRECT_POINTS,
    RATING_LABELS,
    RATING_POINTS,
    TREND_WINDOW,
)
from study_engine.memory_model.constants import Rating


def build_day_index(events_df: pd.DataFrame) -> pd.DatetimeIndex:
    """
    Build a dense UTC day index spanning the event range.
    """
    if events_df.empty:
        return pd.DatetimeIndex([], tz="UTC")
    start = events_df["day_utc"].min()
    end = events_df["day_utc"].max()
    return pd.date_range(start=start, end=end, freq="D")


def compute_daily_review_counts(
    events_df: pd.DataFrame,
    day_index: pd.DatetimeIndex
) -> pd.Series:
    """
    Reviews per UTC day, zero on days without reviews.
    """
    if events_df.empty or len(day_index) == 0:
        return pd.Series(dtype="int64")

    counts = events_df.groupby("day_utc").size()
    return counts.reindex(day_index, fill_value=0).astype("int64")


def compute_daily_retention(
    events_df: pd.DataFrame,
    day_index: pd.DatetimeIndex
) -> pd.Series:
    """
    Share of non-Again ratings per UTC day; NaN on days without reviews.
    """
    if events_df.empty or len(day_index) == 0:
        return pd.Series(dtype="float64")

    passed = events_df["rating"] != int(Rating.AGAIN)
    retention = passed.groupby(events_df["day_utc"]).mean()
    return retention.reindex(day_index).astype("float64")


def compute_rating_distribution(events_df: pd.DataFrame) -> pd.Series:
    """
    Count of each rating, labelled Again..Easy (all four always present).
    """
    counts = events_df["rating"].value_counts() if not events_df.empty else pd.Series(dtype="int64")
    counts = counts.reindex(list(RATING_LABELS), fill_value=0).astype("int64")
    counts.index = [RATING_LABELS[rating] for rating in counts.index]
    return counts


def _event_points(activity_df: pd.DataFrame) -> pd.Series:
    points = activity_df["rating"].map(RATING_POINTS).fillna(INCORRECT_POINTS)
    return points.where(activity_df["correct"], INCORRECT_POINTS).astype("float64")


def compute_activity_score(
    activity_df: pd.DataFrame,
    now: datetime,
    section_id: Optional[str] = None
) -> float:
    """
    Recency-weighted score over the activity trail, never below zero.

    Points per event (Easy 4, Good 3, Hard 1, Again -2) are weighted by age:
    under a day 1.0, under 3 days 0.7, under a week 0.4, older 0.2.
    """
    if section_id is not None and not activity_df.empty:
        activity_df = activity_df[activity_df["section_id"] == section_id]
    if activity_df.empty:
        return 0.0

    age_days = (pd.Timestamp(now) - activity_df["timestamp"]).dt.total_seconds() / 86400.0
    bucket = pd.cut(age_days, bins=AGE_BINS, labels=False, right=False)
    weights = bucket.map(dict(enumerate(AGE_WEIGHTS))).astype("float64")

    score = float((_event_points(activity_df) * weights).sum())
    return max(0.0, score)


def compute_activity_trend(activity_df: pd.DataFrame, window: int = TREND_WINDOW) -> pd.Series:
    """
    Running score over the last `window` events, clamped at zero after every step.
    """
    if activity_df.empty:
        return pd.Series(dtype="float64")

    recent = activity_df.tail(window)
    running = 0.0
    values = []
    for points in _event_points(recent):
        running = max(0.0, running + points)
        values.append(running)
    return pd.Series(values, dtype="float64")
