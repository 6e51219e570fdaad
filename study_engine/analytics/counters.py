"""
Aggregate Counters - due/new/total counts and per-section scores.

Counts are always computed from the card store at call time; nothing is cached.
"""

from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import and_, case, func, select
from sqlalchemy.orm import Session

from study_engine.analytics.types import DueCounts, SectionScore
from study_engine.memory_model.constants import CardState, CardType, SCHEDULED_STATES
from study_engine.storage import card_store
from study_engine.storage.models import CardRow, ScoreRow


def count_due(
    session: Session,
    project_id: str,
    section_ids: Sequence[str],
    now: datetime,
    card_type: Optional[CardType] = None
) -> DueCounts:
    """
    Count eligible cards in a working set.

    Suspended and buried cards are left out of all three numbers.
    """
    if not section_ids:
        return DueCounts(due=0, new_count=0, total=0)

    scheduled = [int(state) for state in SCHEDULED_STATES]
    stmt = select(
        func.count(),
        func.sum(case((and_(CardRow.state.in_(scheduled), CardRow.due <= now), 1), else_=0)),
        func.sum(case((CardRow.state == int(CardState.NEW), 1), else_=0)),
    ).where(*card_store.eligible_filter(project_id, section_ids, card_type))

    total, due, new_count = session.execute(stmt).one()
    return DueCounts(due=int(due or 0), new_count=int(new_count or 0), total=int(total or 0))


def _score(row: ScoreRow) -> SectionScore:
    return SectionScore(
        project_id=row.project_id,
        section_id=row.section_id,
        correct=row.correct,
        attempted=row.attempted,
    )


def ensure_scores(
    session: Session,
    project_id: str,
    section_ids: Iterable[str],
    now: datetime
) -> int:
    """Create zeroed score rows for sections that have none. Returns rows created."""
    created = 0
    for section_id in dict.fromkeys(section_ids):
        if session.get(ScoreRow, (project_id, section_id)) is None:
            session.add(ScoreRow(
                project_id=project_id,
                section_id=section_id,
                correct=0,
                attempted=0,
                updated_at=now,
            ))
            created += 1
    session.flush()
    return created


def update_score(
    session: Session,
    project_id: str,
    section_id: str,
    correct: bool,
    now: datetime
) -> SectionScore:
    """
    Count one attempt, and one correct answer if `correct`.

    Returns:
        The new totals
    """
    row = session.get(ScoreRow, (project_id, section_id))
    if row is None:
        row = ScoreRow(project_id=project_id, section_id=section_id, correct=0, attempted=0)
        session.add(row)

    row.attempted = (row.attempted or 0) + 1
    if correct:
        row.correct = (row.correct or 0) + 1
    row.updated_at = now
    session.flush()
    return _score(row)


def get_scores(
    session: Session,
    project_id: str,
    section_ids: Optional[Sequence[str]] = None
) -> list[SectionScore]:
    stmt = select(ScoreRow).where(ScoreRow.project_id == project_id)
    if section_ids is not None:
        stmt = stmt.where(ScoreRow.section_id.in_(list(section_ids)))
    stmt = stmt.order_by(ScoreRow.section_id)
    return [_score(row) for row in session.execute(stmt).scalars()]


def reset_score(session: Session, project_id: str, section_id: str, now: datetime) -> SectionScore:
    """Zero a section's counters (creating the row if needed)."""
    row = session.get(ScoreRow, (project_id, section_id))
    if row is None:
        row = ScoreRow(project_id=project_id, section_id=section_id)
        session.add(row)
    row.correct = 0
    row.attempted = 0
    row.updated_at = now
    session.flush()
    return _score(row)
