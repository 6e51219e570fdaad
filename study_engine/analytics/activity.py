"""
Activity trail - bounded window of recent ratings per project.

Independent of the card store: undo and section resets leave it alone.
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from study_engine.analytics.types import ActivityEvent
from study_engine.memory_model.card import as_utc, new_log_id
from study_engine.memory_model.constants import Rating
from study_engine.storage.models import ActivityRow


def _event(row: ActivityRow) -> ActivityEvent:
    return ActivityEvent(
        id=row.id,
        project_id=row.project_id,
        section_id=row.section_id,
        rating=Rating(row.rating),
        correct=bool(row.correct),
        timestamp=as_utc(row.timestamp),
    )


def record(
    session: Session,
    project_id: str,
    section_id: Optional[str],
    rating: Rating,
    now: datetime,
    cap: int
) -> ActivityEvent:
    """
    Append one event and evict the oldest events beyond `cap`.

    Returns:
        The stored event
    """
    row = ActivityRow(
        id=new_log_id(now),
        project_id=project_id,
        section_id=section_id,
        rating=int(rating),
        correct=rating != Rating.AGAIN,
        timestamp=now,
    )
    session.add(row)
    session.flush()

    stale = session.execute(
        select(ActivityRow.id)
        .where(ActivityRow.project_id == project_id)
        .order_by(ActivityRow.timestamp.desc(), ActivityRow.id.desc())
        .offset(cap)
    ).scalars().all()
    if stale:
        session.execute(delete(ActivityRow).where(ActivityRow.id.in_(stale)))

    return _event(row)


def recent(
    session: Session,
    project_id: str,
    limit: int = 200,
    section_id: Optional[str] = None
) -> list[ActivityEvent]:
    """Newest events first."""
    stmt = select(ActivityRow).where(ActivityRow.project_id == project_id)
    if section_id is not None:
        stmt = stmt.where(ActivityRow.section_id == section_id)
    stmt = stmt.order_by(ActivityRow.timestamp.desc(), ActivityRow.id.desc()).limit(limit)
    return [_event(row) for row in session.execute(stmt).scalars()]


def clear(session: Session, project_id: str) -> int:
    result = session.execute(delete(ActivityRow).where(ActivityRow.project_id == project_id))
    return result.rowcount or 0
