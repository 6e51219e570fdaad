"""
Card Store - per-item scheduling state.

All functions take an open Session and never commit; the caller's
session_scope decides the transaction boundary.
"""

from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select, update, delete
from sqlalchemy.orm import Session

from study_engine.exceptions import CardNotFoundError, ValidationError
from study_engine.memory_model.card import Card, initialize_new_card
from study_engine.memory_model.constants import CardState, CardType
from study_engine.storage.models import CardRow

CARD_FIELDS = (
    "project_id", "section_id", "card_type", "state", "step", "due",
    "stability", "difficulty", "elapsed_days", "scheduled_days", "reps",
    "lapses", "last_review", "suspended", "buried", "leech",
)


def parse_card_type(value) -> CardType:
    try:
        return CardType(value)
    except ValueError:
        raise ValidationError(f"Unknown card type: {value!r}")


def row_to_card(row: CardRow) -> Card:
    return Card(
        card_id=row.card_id,
        project_id=row.project_id,
        section_id=row.section_id,
        card_type=row.card_type,
        state=row.state,
        step=row.step,
        due=row.due,
        stability=row.stability,
        difficulty=row.difficulty,
        elapsed_days=row.elapsed_days,
        scheduled_days=row.scheduled_days,
        reps=row.reps,
        lapses=row.lapses,
        last_review=row.last_review,
        suspended=bool(row.suspended),
        buried=bool(row.buried),
        leech=bool(row.leech),
    )


def _write_fields(row: CardRow, card: Card, now: datetime) -> None:
    for name in CARD_FIELDS:
        value = getattr(card, name)
        if name == "state":
            value = int(value)
        elif name == "card_type":
            value = value.value
        setattr(row, name, value)
    row.updated_at = now


def require_row(session: Session, card_id: str) -> CardRow:
    """Load a card row or raise CardNotFoundError."""
    row = session.get(CardRow, card_id)
    if row is None:
        raise CardNotFoundError(card_id)
    return row


def ensure_card(
    session: Session,
    card_id: str,
    section_id: str,
    card_type: CardType,
    project_id: str,
    now: datetime
) -> CardRow:
    """
    Return the card's row, creating a NEW card first if none exists.

    Never modifies an existing row.
    """
    row = session.get(CardRow, card_id)
    if row is not None:
        return row

    row = CardRow(card_id=card_id)
    _write_fields(row, initialize_new_card(card_id, section_id, card_type, project_id, now), now)
    session.add(row)
    session.flush()
    return row


def ensure_cards(
    session: Session,
    project_id: str,
    refs: Iterable,
    now: datetime
) -> int:
    """
    Create NEW rows for every reference not already stored.

    Args:
        session: Open session
        project_id: Owning project
        refs: Iterable of CardRef (card_id, section_id, card_type)
        now: Creation time

    Returns:
        Number of cards created
    """
    refs = list(refs)
    if not refs:
        return 0

    wanted = {ref.card_id for ref in refs}
    existing = set(
        session.execute(
            select(CardRow.card_id).where(CardRow.card_id.in_(wanted))
        ).scalars()
    )

    created = 0
    for ref in refs:
        if ref.card_id in existing:
            continue
        card = initialize_new_card(
            ref.card_id, ref.section_id, parse_card_type(ref.card_type), project_id, now
        )
        row = CardRow(card_id=ref.card_id)
        _write_fields(row, card, now)
        session.add(row)
        existing.add(ref.card_id)
        created += 1

    session.flush()
    return created


def save_card(session: Session, card: Card, now: datetime) -> CardRow:
    """Write every field of `card` to its row (insert or update)."""
    row = session.get(CardRow, card.card_id)
    if row is None:
        row = CardRow(card_id=card.card_id)
        session.add(row)
    _write_fields(row, card, now)
    session.flush()
    return row


def set_flag(session: Session, card_id: str, flag: str, value: bool, now: datetime) -> Card:
    """Set suspended/buried on one card (idempotent)."""
    row = require_row(session, card_id)
    setattr(row, flag, value)
    row.updated_at = now
    return row_to_card(row)


def unbury_all(session: Session, now: datetime, project_id: Optional[str] = None) -> int:
    """Clear `buried` in bulk; all projects when project_id is None."""
    stmt = update(CardRow).where(CardRow.buried.is_(True))
    if project_id is not None:
        stmt = stmt.where(CardRow.project_id == project_id)
    result = session.execute(stmt.values(buried=False, updated_at=now))
    return result.rowcount or 0


def delete_section(session: Session, project_id: str, section_id: str) -> int:
    result = session.execute(
        delete(CardRow).where(
            CardRow.project_id == project_id,
            CardRow.section_id == section_id,
        )
    )
    return result.rowcount or 0


# ---- Selection queries ----

def eligible_filter(
    project_id: str,
    section_ids: Sequence[str],
    card_type: Optional[CardType] = None
) -> list:
    """WHERE clauses for cards that may be shown (not suspended, not buried)."""
    clauses = [
        CardRow.project_id == project_id,
        CardRow.section_id.in_(list(section_ids)),
        CardRow.suspended.is_(False),
        CardRow.buried.is_(False),
    ]
    if card_type is not None:
        clauses.append(CardRow.card_type == CardType(card_type).value)
    return clauses


def first_due(
    session: Session,
    clauses: list,
    states: Sequence[CardState],
    now: datetime
) -> Optional[str]:
    """Earliest-due eligible card in `states` whose due time has passed."""
    return session.execute(
        select(CardRow.card_id)
        .where(*clauses, CardRow.state.in_([int(s) for s in states]), CardRow.due <= now)
        .order_by(CardRow.due.asc(), CardRow.card_id.asc())
        .limit(1)
    ).scalar_one_or_none()


def random_new(session: Session, clauses: list) -> Optional[str]:
    """Uniformly random eligible NEW card."""
    return session.execute(
        select(CardRow.card_id)
        .where(*clauses, CardRow.state == int(CardState.NEW))
        .order_by(func.random())
        .limit(1)
    ).scalar_one_or_none()


def weakest(session: Session, clauses: list) -> Optional[str]:
    """Eligible card with the lowest stability, regardless of due time."""
    return session.execute(
        select(CardRow.card_id)
        .where(*clauses)
        .order_by(CardRow.stability.asc(), CardRow.card_id.asc())
        .limit(1)
    ).scalar_one_or_none()
