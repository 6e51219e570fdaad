"""
Service layer to assemble a project's analytics dashboard.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from study_engine.analytics.metrics import (
    build_day_index,
    compute_activity_score,
    compute_activity_trend,
    compute_daily_retention,
    compute_daily_review_counts,
    compute_rating_distribution,
)
from study_engine.analytics.queries import load_activity_df, load_review_events_df
from study_engine.analytics.types import ProjectDashboardData


def build_project_dashboard(session: Session, project_id: str, now: datetime) -> ProjectDashboardData:
    """
    Build all KPI values and series for one project.
    """
    events_df = load_review_events_df(session, project_id)
    activity_df = load_activity_df(session, project_id)
    day_index = build_day_index(events_df)

    return ProjectDashboardData(
        project_id=project_id,
        total_reviews=len(events_df),
        activity_score=compute_activity_score(activity_df, now),
        daily_review_counts=compute_daily_review_counts(events_df, day_index),
        daily_retention=compute_daily_retention(events_df, day_index),
        rating_distribution=compute_rating_distribution(events_df),
        activity_trend=compute_activity_trend(activity_df),
    )
