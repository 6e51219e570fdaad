"""
Data-loading helpers for analytics.
"""

from __future__ import annotations

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

from study_engine.storage.models import ActivityRow, ReviewLogRow

REVIEW_COLUMNS = ["card_id", "section_id", "rating", "timestamp", "day_utc"]
ACTIVITY_COLUMNS = ["section_id", "rating", "correct", "timestamp"]


def load_review_events_df(session: Session, project_id: str) -> pd.DataFrame:
    """
    Load every review log entry of a project into a dataframe.
    """
    rows = session.execute(
        select(
            ReviewLogRow.card_id,
            ReviewLogRow.section_id,
            ReviewLogRow.rating,
            ReviewLogRow.review_time,
        ).where(ReviewLogRow.project_id == project_id)
    ).all()
    if not rows:
        return pd.DataFrame(columns=REVIEW_COLUMNS)

    df = pd.DataFrame(rows, columns=["card_id", "section_id", "rating", "timestamp"])
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
    df = df.dropna(subset=["card_id", "timestamp"])
    df["day_utc"] = df["timestamp"].dt.floor("D")
    df = df.sort_values("timestamp").reset_index(drop=True)
    return df


def load_activity_df(session: Session, project_id: str) -> pd.DataFrame:
    """
    Load a project's activity trail, oldest first.
    """
    rows = session.execute(
        select(
            ActivityRow.section_id,
            ActivityRow.rating,
            ActivityRow.correct,
            ActivityRow.timestamp,
        )
        .where(ActivityRow.project_id == project_id)
        .order_by(ActivityRow.timestamp.asc(), ActivityRow.id.asc())
    ).all()
    if not rows:
        return pd.DataFrame(columns=ACTIVITY_COLUMNS)

    df = pd.DataFrame(rows, columns=ACTIVITY_COLUMNS)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
    df["correct"] = df["correct"].astype(bool)
    return df.reset_index(drop=True)
