"""
Review Transaction - apply one rating to one card.

Workflow (one transaction, all-or-nothing):
1. Load the card (or lazily create a NEW card)
2. Run the memory model
3. Count a lapse for AGAIN on a REVIEW/RELEARNING card
4. Check the leech cadence
5. Snapshot the pre-review card into the undo slot
6. Save the card and append the log entry
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from study_engine import undo
from study_engine.exceptions import ValidationError
from study_engine.memory_model import (
    Card,
    CardType,
    MemoryModel,
    Rating,
    LAPSE_STATES,
    is_leech,
)
from study_engine.storage import card_store, review_log

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewOutcome:
    """What the caller needs after a review: the new card and the leech warning."""
    card: Card
    is_leech: bool
    lapses: int
    log_id: str

    def public_fields(self) -> dict:
        return {
            "state": self.card.state,
            "due": self.card.due,
            "stability": self.card.stability,
            "difficulty": self.card.difficulty,
        }


def parse_rating(value) -> Rating:
    """Coerce 1..4 (or a Rating) into a Rating."""
    if isinstance(value, bool):
        raise ValidationError(f"Rating must be 1-4, got {value!r}")
    try:
        return Rating(value)
    except ValueError:
        raise ValidationError(f"Rating must be 1-4, got {value!r}")


def apply_review(
    session: Session,
    model_for: Callable[[str], MemoryModel],
    card_id: str,
    rating: Rating,
    now: datetime,
    leech_threshold: int,
    project_id: str,
    section_id: str,
    card_type: CardType = CardType.FLASHCARD,
    elapsed_ms: Optional[int] = None
) -> ReviewOutcome:
    """
    Apply a rating to a card inside the caller's transaction.

    Args:
        session: Open session (committed or rolled back by the caller)
        model_for: Returns the memory model for a project id; called with
            the stored card's project
        card_id: Card to review (created as NEW if absent)
        rating: Learner's rating
        now: Review time
        leech_threshold: Lapses before the first leech warning
        project_id: Project used when the card has to be created
        section_id: Section used when the card has to be created
        card_type: Variant used when the card has to be created
        elapsed_ms: Time the learner spent on the card

    Returns:
        ReviewOutcome with the new card and whether this review flagged a leech
    """
    rating = parse_rating(rating)

    row = card_store.ensure_card(session, card_id, section_id, card_type, project_id, now)
    before = card_store.row_to_card(row)

    scheduled = model_for(before.project_id).apply(before, rating, now, elapsed_ms)

    lapsed = rating == Rating.AGAIN and before.state in LAPSE_STATES
    lapses = before.lapses + 1 if lapsed else before.lapses

    # Checked on every review against the post-review lapse count.
    # The stored flag is sticky: cleared only by undo or reset
    leech_now = is_leech(lapses, leech_threshold)
    after = scheduled.card.copy(lapses=lapses, leech=before.leech or leech_now)

    undo.store_snapshot(session, before, scheduled.log.id, now)
    card_store.save_card(session, after, now)
    review_log.append(session, scheduled.log)

    logger.info(
        f"[REVIEW] {card_id}: rating={rating.name} "
        f"{before.state.name} -> {after.state.name}, due={after.due.isoformat()}, "
        f"lapses={lapses}{' LEECH' if leech_now else ''}"
    )

    return ReviewOutcome(card=after, is_leech=leech_now, lapses=lapses, log_id=scheduled.log.id)
