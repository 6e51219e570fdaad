"""
Undo Buffer - single-slot rollback of the most recent review.

The slot holds the full pre-review card plus the id of the log entry the
review produced. Each review overwrites it; undo consumes it. There is no
history beyond one step.
"""

from __future__ import annotations
import json
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from study_engine.memory_model.card import Card
from study_engine.storage import card_store, review_log
from study_engine.storage.models import UndoSnapshotRow

logger = logging.getLogger(__name__)

SLOT_ID = 1


def store_snapshot(
    session: Session,
    card: Card,
    review_log_id: str,
    now: datetime
) -> None:
    """Replace the slot with the pre-review state of `card`."""
    payload = json.dumps(card.to_dict())
    row = session.get(UndoSnapshotRow, SLOT_ID)
    if row is None:
        row = UndoSnapshotRow(id=SLOT_ID)
        session.add(row)
    row.card_id = card.card_id
    row.prev_state = payload
    row.review_log_id = review_log_id
    row.created_at = now
    session.flush()


def peek(session: Session) -> Optional[UndoSnapshotRow]:
    return session.get(UndoSnapshotRow, SLOT_ID)


def clear(session: Session) -> None:
    session.execute(delete(UndoSnapshotRow))


def undo_last(session: Session, now: datetime) -> Optional[str]:
    """
    Roll back the most recent review, if any.

    Restores the card row verbatim, deletes the paired log entry and
    clears the slot, all in the caller's transaction.

    Returns:
        The affected card_id, or None when there is nothing to undo
    """
    row = peek(session)
    if row is None:
        return None

    previous = Card.from_dict(json.loads(row.prev_state))
    card_store.save_card(session, previous, now)
    if not review_log.delete_entry(session, row.review_log_id):
        logger.warning(
            f"[UNDO] Log entry {row.review_log_id} for card {row.card_id} was already gone"
        )
    card_id = row.card_id
    session.delete(row)
    session.flush()

    logger.info(f"[UNDO] Restored card {card_id}")
    return card_id
