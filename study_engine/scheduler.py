"""
Card scheduler for selecting the next card to review.

Priority order (first non-empty tier wins):
1. Learning/Relearning cards whose due time has passed - earliest due first
2. Review cards whose due time has passed - earliest due first
3. New cards - uniformly random, only while today's new-card quota lasts
4. Fallback: the eligible card with the lowest stability, so the learner
   is never stuck while any eligible card exists

Suspended and buried cards are never selected.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from study_engine.memory_model.constants import CardState, CardType, SHORT_STEP_STATES
from study_engine.storage import card_store

logger = logging.getLogger(__name__)


@dataclass
class DailyQuota:
    """
    Day-scoped scheduler state: the last date seen and new cards introduced on it.
    """
    last_seen_date: date
    new_today: int = 0

    def is_new_day(self, today: date) -> bool:
        return today != self.last_seen_date

    def reset(self, today: date) -> None:
        self.last_seen_date = today
        self.new_today = 0


class CardSelector:
    """
    Next-card selection plus the day-boundary bookkeeping it depends on.
    """

    def __init__(self, today: date):
        self.quota = DailyQuota(last_seen_date=today)

    def check_new_day(self, session: Session, now: datetime) -> bool:
        """
        Roll the day over if the date changed since the last request.

        On a new day every buried card is unburied and the new-card counter
        resets to zero.

        Returns:
            True if a rollover happened
        """
        today = now.date()
        if not self.quota.is_new_day(today):
            return False

        unburied = card_store.unbury_all(session, now)
        self.quota.reset(today)
        logger.info(f"[SCHEDULER] New day {today.isoformat()}: unburied {unburied} card(s)")
        return True

    def pick_next(
        self,
        session: Session,
        project_id: str,
        section_ids: Sequence[str],
        new_per_session: int,
        now: datetime,
        card_type: Optional[CardType] = None
    ) -> Optional[str]:
        """
        Select the next card to review.

        Args:
            session: Open session
            project_id: Project to select from
            section_ids: Working set of sections
            new_per_session: Cap on new cards introduced per calendar day
            now: Current time
            card_type: Optional variant filter

        Returns:
            card_id, or None when no eligible card exists
        """
        if not section_ids:
            return None

        clauses = card_store.eligible_filter(project_id, section_ids, card_type)

        # 1. Learning/Relearning due (oldest)
        card_id = card_store.first_due(session, clauses, SHORT_STEP_STATES, now)
        if card_id:
            return self._picked(card_id, "learning")

        # 2. Review due (oldest)
        card_id = card_store.first_due(session, clauses, (CardState.REVIEW,), now)
        if card_id:
            return self._picked(card_id, "review")

        # 3. New cards (capped per day)
        if self.quota.new_today < new_per_session:
            card_id = card_store.random_new(session, clauses)
            if card_id:
                self.quota.new_today += 1
                return self._picked(card_id, "new")

        # 4. Weakest card (lowest stability)
        card_id = card_store.weakest(session, clauses)
        if card_id:
            return self._picked(card_id, "weakest")

        # 5. Truly nothing available
        return None

    def _picked(self, card_id: str, tier: str) -> str:
        logger.debug(
            f"[SCHEDULER] Picked {card_id} from {tier} tier "
            f"(new today: {self.quota.new_today})"
        )
        return card_id
