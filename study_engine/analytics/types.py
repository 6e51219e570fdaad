"""
Types for counters, activity and dashboards.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pandas as pd

from study_engine.memory_model.constants import Rating


@dataclass(frozen=True)
class DueCounts:
    """
    Snapshot of a working set, recomputed from the card store on every call.

    due: scheduled cards whose due time has passed
    new_count: cards never reviewed
    total: every eligible card
    """
    due: int
    new_count: int
    total: int


@dataclass(frozen=True)
class SectionScore:
    project_id: str
    section_id: str
    correct: int
    attempted: int


@dataclass(frozen=True)
class ActivityEvent:
    id: str
    project_id: str
    section_id: Optional[str]
    rating: Rating
    correct: bool
    timestamp: datetime


@dataclass(frozen=True)
class ProjectDashboardData:
    """
    Precomputed metrics and series for one project.
    """
    project_id: str
    total_reviews: int
    activity_score: float
    daily_review_counts: pd.Series
    daily_retention: pd.Series
    rating_distribution: pd.Series
    activity_trend: pd.Series
