"""
Memory Model Adapter - FSRS via py-fsrs

Pure state + rating -> new state + log entry. No database calls.

The scheduler owns lapse counting and leech detection; this module only
asks the FSRS scheduler where the card goes next.
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional, Sequence

from fsrs import Card as FsrsCard
from fsrs import Rating as FsrsRating
from fsrs import Scheduler
from fsrs import State as FsrsState

from study_engine.memory_model.card import (
    Card,
    ReviewLogEntry,
    ScheduledReview,
    as_utc,
    days_between,
    new_log_id,
    utc_now,
)
from study_engine.memory_model.constants import (
    CardState,
    Rating,
    DEFAULT_RETENTION,
)


class MemoryModel:
    """
    Thin wrapper around `fsrs.Scheduler`.

    Deterministic for a given (card, rating, now) unless fuzzing is enabled.
    """

    def __init__(
        self,
        desired_retention: float = DEFAULT_RETENTION,
        parameters: Optional[Sequence[float]] = None,
        enable_fuzzing: bool = False
    ):
        options = {
            "desired_retention": desired_retention,
            "enable_fuzzing": enable_fuzzing,
        }
        if parameters is not None:
            options["parameters"] = tuple(parameters)

        self.desired_retention = desired_retention
        self.parameters = tuple(parameters) if parameters is not None else None
        self._scheduler = Scheduler(**options)

    def apply(
        self,
        card: Card,
        rating: Rating,
        now: Optional[datetime] = None,
        elapsed_ms: Optional[int] = None
    ) -> ScheduledReview:
        """
        Compute the card's next state for one rating.

        The input card is left untouched; a new Card value is returned.
        `lapses` and `leech` are carried over unchanged.

        Args:
            card: Current card (any state, including NEW)
            rating: Learner's rating
            now: Review time (defaults to now)
            elapsed_ms: Time the learner spent, recorded on the log entry

        Returns:
            ScheduledReview with the new card and its log entry
        """
        rating = Rating(rating)
        now = as_utc(now) or utc_now()

        reviewed, _ = self._scheduler.review_card(
            _to_fsrs(card, now),
            FsrsRating(int(rating)),
            review_datetime=now,
        )

        due = as_utc(reviewed.due)
        scheduled_days = days_between(now, due)
        new_card = card.copy(
            state=CardState(int(reviewed.state)),
            step=reviewed.step,
            due=due,
            stability=float(reviewed.stability),
            difficulty=float(reviewed.difficulty),
            elapsed_days=days_between(card.last_review, now),
            scheduled_days=scheduled_days,
            reps=card.reps + 1,
            last_review=now,
        )

        log = ReviewLogEntry(
            id=new_log_id(now),
            card_id=card.card_id,
            project_id=card.project_id,
            section_id=card.section_id,
            rating=rating,
            review_time=now,
            elapsed_ms=elapsed_ms,
            new_state=new_card.state,
            new_stability=new_card.stability,
            new_difficulty=new_card.difficulty,
            scheduled_days=scheduled_days,
        )
        return ScheduledReview(card=new_card, log=log)

    def preview(
        self,
        card: Card,
        now: Optional[datetime] = None
    ) -> dict[Rating, ScheduledReview]:
        """Outcome for every rating, without committing to any of them."""
        now = as_utc(now) or utc_now()
        return {rating: self.apply(card, rating, now) for rating in Rating}


def _to_fsrs(card: Card, now: datetime) -> FsrsCard:
    """Map a stored card onto py-fsrs's Card (which has no NEW state)."""
    if card.is_new:
        return FsrsCard(card_id=0, state=FsrsState.Learning, step=0, due=now)

    return FsrsCard(
        card_id=0,
        state=FsrsState(int(card.state)),
        step=card.step,
        stability=card.stability or None,
        difficulty=card.difficulty or None,
        due=card.due,
        last_review=card.last_review,
    )


def format_interval(days: float) -> str:
    """
    Compact label for a projected interval.

    Examples: 1m, 10m, 6h, 4d, 3mo, 1.5y, 2y
    """
    if days < 1 / 24:
        return f"{max(1, round(days * 24 * 60))}m"
    if days < 1:
        return f"{round(days * 24)}h"
    if days < 30:
        return f"{round(days)}d"
    if days < 365:
        return f"{round(days / 30)}mo"
    years = f"{days / 365:.1f}"
    if years.endswith(".0"):
        years = years[:-2]
    return f"{years}y"


def interval_labels(
    previews: dict[Rating, ScheduledReview],
    now: datetime
) -> dict[Rating, str]:
    """Turn a preview into per-rating interval labels."""
    labels = {}
    for rating, outcome in previews.items():
        days = max(0.0, (outcome.card.due - now).total_seconds() / 86400.0)
        labels[rating] = format_interval(days)
    return labels
