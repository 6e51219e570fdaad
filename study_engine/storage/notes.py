"""
Project notes - short free-text entries kept per project.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from study_engine.memory_model.card import as_utc, new_log_id
from study_engine.storage.models import NoteRow


@dataclass(frozen=True)
class Note:
    id: str
    project_id: str
    text: str
    created_at: datetime


def _note(row: NoteRow) -> Note:
    return Note(
        id=row.id,
        project_id=row.project_id,
        text=row.text,
        created_at=as_utc(row.created_at),
    )


def add(session: Session, project_id: str, text: str, now: datetime) -> Note:
    row = NoteRow(id=new_log_id(now), project_id=project_id, text=text, created_at=now)
    session.add(row)
    session.flush()
    return _note(row)


def for_project(session: Session, project_id: str) -> list[Note]:
    """Newest notes first."""
    stmt = (
        select(NoteRow)
        .where(NoteRow.project_id == project_id)
        .order_by(NoteRow.created_at.desc(), NoteRow.id.desc())
    )
    return [_note(row) for row in session.execute(stmt).scalars()]
