"""
Review Log - append-only record of rating events.

Entries are never edited. The only deletion is undo removing the single
entry paired with the undo snapshot.
"""

from __future__ import annotations
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from study_engine.memory_model.card import ReviewLogEntry, as_utc
from study_engine.memory_model.constants import CardState, Rating
from study_engine.storage.models import ReviewLogRow


def row_to_entry(row: ReviewLogRow) -> ReviewLogEntry:
    return ReviewLogEntry(
        id=row.id,
        card_id=row.card_id,
        project_id=row.project_id,
        section_id=row.section_id,
        rating=Rating(row.rating),
        review_time=as_utc(row.review_time),
        elapsed_ms=row.elapsed_ms,
        new_state=CardState(row.new_state),
        new_stability=row.new_stability,
        new_difficulty=row.new_difficulty,
        scheduled_days=row.scheduled_days,
    )


def append(session: Session, entry: ReviewLogEntry) -> None:
    session.add(
        ReviewLogRow(
            id=entry.id,
            card_id=entry.card_id,
            project_id=entry.project_id,
            section_id=entry.section_id,
            rating=int(entry.rating),
            review_time=entry.review_time,
            elapsed_ms=entry.elapsed_ms,
            new_state=int(entry.new_state),
            new_stability=entry.new_stability,
            new_difficulty=entry.new_difficulty,
            scheduled_days=entry.scheduled_days,
        )
    )
    session.flush()


def delete_entry(session: Session, entry_id: str) -> bool:
    """Remove one entry by id. Returns False if it was already gone."""
    row = session.get(ReviewLogRow, entry_id)
    if row is None:
        return False
    session.delete(row)
    session.flush()
    return True


def recent_entries(
    session: Session,
    project_id: str,
    limit: int = 1000,
    card_id: Optional[str] = None
) -> list[ReviewLogEntry]:
    """
    Get recent entries for a project (newest first).

    Args:
        session: Open session
        project_id: Project to scope to
        limit: Maximum number of entries to return
        card_id: Optional card to filter by

    Returns:
        List of ReviewLogEntry values, newest first
    """
    stmt = select(ReviewLogRow).where(ReviewLogRow.project_id == project_id)
    if card_id is not None:
        stmt = stmt.where(ReviewLogRow.card_id == card_id)
    stmt = stmt.order_by(ReviewLogRow.review_time.desc(), ReviewLogRow.id.desc()).limit(limit)
    return [row_to_entry(row) for row in session.execute(stmt).scalars()]
