"""
Memory model: card values, rating scale and the FSRS adapter.

Quick start:
    from study_engine.memory_model import MemoryModel, Rating, initialize_new_card

    model = MemoryModel(desired_retention=0.9)
    card = initialize_new_card("q-1", "section-a")
    outcome = model.apply(card, Rating.GOOD)
"""

from study_engine.memory_model.adapter import (
    MemoryModel,
    format_interval,
    interval_labels,
)
from study_engine.memory_model.card import (
    Card,
    ReviewLogEntry,
    ScheduledReview,
    as_utc,
    initialize_new_card,
    is_leech,
    new_log_id,
    utc_now,
)
from study_engine.memory_model.constants import (
    CardState,
    CardType,
    Rating,
    LAPSE_STATES,
    SCHEDULED_STATES,
    SHORT_STEP_STATES,
    DEFAULT_RETENTION,
    LEECH_THRESHOLD,
    NEW_PER_SESSION,
    ACTIVITY_CAP,
    DEFAULT_PROJECT_ID,
    DEFAULT_SECTION_ID,
)


__all__ = [
    # Adapter
    "MemoryModel",
    "format_interval",
    "interval_labels",

    # Values
    "Card",
    "ReviewLogEntry",
    "ScheduledReview",
    "as_utc",
    "initialize_new_card",
    "is_leech",
    "new_log_id",
    "utc_now",

    # Enums
    "CardState",
    "CardType",
    "Rating",
    "LAPSE_STATES",
    "SCHEDULED_STATES",
    "SHORT_STEP_STATES",

    # Defaults
    "DEFAULT_RETENTION",
    "LEECH_THRESHOLD",
    "NEW_PER_SESSION",
    "ACTIVITY_CAP",
    "DEFAULT_PROJECT_ID",
    "DEFAULT_SECTION_ID",
]
