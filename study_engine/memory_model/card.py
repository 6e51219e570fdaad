"""
Card State - Domain Values for Scheduling

Defines the per-item scheduling record, the review log entry and the
derived quantities the scheduler needs (leech cadence, elapsed days).

Key concepts:
- Stability / Difficulty: memory-model internals, opaque beyond ordering
- Lapse: an AGAIN rating on a card that had already been learned
- Leech: a card whose lapse count hits the threshold cadence
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from typing import Optional
import math
import os
import time
import uuid

from study_engine.memory_model.constants import (
    CardState,
    CardType,
    Rating,
    DEFAULT_PROJECT_ID,
)


def utc_now() -> datetime:
    """Current wall-clock time, UTC-aware."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to UTC-aware.

    Naive values (as returned by SQLite) are taken to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_log_id(now: Optional[datetime] = None) -> str:
    """
    Build a time-ordered UUID (version 7 layout).

    The first 48 bits are the Unix time in milliseconds, so ids sort in
    creation order; the rest is random.
    """
    millis = int((now.timestamp() if now else time.time()) * 1000)
    raw = bytearray(millis.to_bytes(6, "big") + os.urandom(10))
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


@dataclass
class Card:
    """
    Persistent scheduling record for one reviewable item.

    A card is created lazily in state NEW and is only mutated by the
    review transaction or by suspend/bury operations.
    """
    card_id: str
    section_id: str
    card_type: CardType = CardType.FLASHCARD
    project_id: str = DEFAULT_PROJECT_ID

    state: CardState = CardState.NEW
    step: Optional[int] = None  # Position within learning/relearning steps
    due: datetime = field(default_factory=utc_now)

    # Memory-model internals (0 until first review)
    stability: float = 0.0
    difficulty: float = 0.0

    # Counters
    elapsed_days: int = 0
    scheduled_days: int = 0
    reps: int = 0
    lapses: int = 0

    last_review: Optional[datetime] = None

    # Flags
    suspended: bool = False
    buried: bool = False
    leech: bool = False

    def __post_init__(self):
        """Coerce enum fields and timestamps loaded from storage."""
        self.state = CardState(self.state)
        self.card_type = CardType(self.card_type)
        self.due = as_utc(self.due)
        self.last_review = as_utc(self.last_review)

    @property
    def is_new(self) -> bool:
        return self.state == CardState.NEW

    def copy(self, **changes) -> Card:
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Serialize to a JSON-safe dict (used for undo snapshots)."""
        data = asdict(self)
        data["state"] = int(self.state)
        data["card_type"] = self.card_type.value
        data["due"] = self.due.isoformat()
        data["last_review"] = self.last_review.isoformat() if self.last_review else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Card:
        values = dict(data)
        values["due"] = datetime.fromisoformat(values["due"])
        if values.get("last_review"):
            values["last_review"] = datetime.fromisoformat(values["last_review"])
        return cls(**values)


@dataclass(frozen=True)
class ReviewLogEntry:
    """
    Immutable record of one rating event.

    Carries the resulting memory state so the log alone explains why a
    card is in its current state.
    """
    id: str
    card_id: str
    project_id: str
    section_id: str
    rating: Rating
    review_time: datetime
    elapsed_ms: Optional[int]
    new_state: CardState
    new_stability: float
    new_difficulty: float
    scheduled_days: int


@dataclass(frozen=True)
class ScheduledReview:
    """Outcome of running the memory model for one rating."""
    card: Card
    log: ReviewLogEntry


def initialize_new_card(
    card_id: str,
    section_id: str,
    card_type: CardType = CardType.FLASHCARD,
    project_id: str = DEFAULT_PROJECT_ID,
    now: Optional[datetime] = None
) -> Card:
    """
    Initialize state for a card that has never been referenced.

    Args:
        card_id: Stable item identifier
        section_id: Grouping the item belongs to
        card_type: Variant of the item
        project_id: Owning project
        now: Creation time (defaults to now); only a placeholder for `due`

    Returns:
        New Card in state NEW with zeroed memory parameters
    """
    return Card(
        card_id=card_id,
        section_id=section_id,
        card_type=CardType(card_type),
        project_id=project_id,
        state=CardState.NEW,
        due=now or utc_now(),
        stability=0.0,
        difficulty=0.0,
    )


def is_leech(lapses: int, threshold: int) -> bool:
    """
    Check whether a lapse count lands on the leech cadence.

    A card is flagged when it reaches `threshold` lapses and again every
    ceil(threshold / 2) lapses after that.

    Args:
        lapses: Lapse count after the current review
        threshold: Configured leech threshold (> 0)

    Returns:
        True if this lapse count triggers a leech warning
    """
    if lapses < threshold:
        return False
    return (lapses - threshold) % math.ceil(threshold / 2) == 0


def days_between(start: Optional[datetime], end: datetime) -> int:
    """Whole days from start to end (0 when start is unknown or later)."""
    if start is None:
        return 0
    return max(0, (end - start).days)
