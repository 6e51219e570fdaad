"""
Study Engine - synchronous core behind the command gateway.

Owns the database, the per-project memory models and the daily quota.
Every public method runs as one transaction: it either fully applies or
leaves storage untouched.

Usage:
    engine = StudyEngine(load_settings())
    engine.startup()
    engine.load_project(["unit-1"], [CardRef(card_id="q-1", section_id="unit-1")])

    card_id = engine.pick_next(["unit-1"])
    outcome = engine.review(card_id, Rating.GOOD, elapsed_ms=4200)
"""

from __future__ import annotations
import json
import logging
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence

from study_engine import undo
from study_engine.analytics import activity, counters
from study_engine.analytics.metrics import compute_activity_score
from study_engine.analytics.queries import load_activity_df
from study_engine.analytics.service import build_project_dashboard
from study_engine.analytics.types import (
    ActivityEvent,
    DueCounts,
    ProjectDashboardData,
    SectionScore,
)
from study_engine.config import Settings, load_settings
from study_engine.content import CardRef, parse_refs
from study_engine.exceptions import EngineNotReadyError, ValidationError
from study_engine.memory_model import (
    Card,
    CardType,
    MemoryModel,
    Rating,
    ReviewLogEntry,
    as_utc,
    interval_labels,
    utc_now,
    DEFAULT_SECTION_ID,
)
from study_engine.review import ReviewOutcome, apply_review, parse_rating
from study_engine.scheduler import CardSelector
from study_engine.storage import Database, card_store, model_params, notes, review_log
from study_engine.storage.model_params import ModelParams
from study_engine.storage.notes import Note

logger = logging.getLogger(__name__)


class StudyEngine:
    """
    Scheduling and review persistence for one learner.

    Not thread-safe on its own: callers that may overlap go through
    CommandGateway, which runs one command at a time.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
        database: Optional[Database] = None
    ):
        self.settings = settings or load_settings()
        self.clock = clock
        self.db = database or Database(self.settings.database_url)
        self.selector = CardSelector(self._now().date())
        self._models: dict[str, MemoryModel] = {}
        self.ready = False

    # ---- Lifecycle ----

    def startup(self) -> int:
        """
        Bring the schema up to date. Must succeed before any other call.

        Raises:
            MigrationError: If the schema cannot be brought to a known version
        """
        self.ready = False
        version = self.db.init_db()
        self.ready = True
        logger.info(f"[ENGINE] Ready on schema v{version} ({self.db.url})")
        return version

    def close(self) -> None:
        self.ready = False
        self.db.dispose()

    def _now(self) -> datetime:
        return as_utc(self.clock())

    def _require_ready(self) -> None:
        if not self.ready:
            raise EngineNotReadyError("Storage schema is not ready; startup() has not succeeded")

    def _project(self, project_id: Optional[str]) -> str:
        return project_id or self.settings.default_project_id

    def _model_for(self, session, project_id: str) -> MemoryModel:
        model = self._models.get(project_id)
        if model is not None:
            return model

        params = model_params.get_params(session, project_id)
        if params is None:
            model = MemoryModel(
                desired_retention=self.settings.desired_retention,
                enable_fuzzing=self.settings.enable_fuzzing,
            )
        else:
            model = MemoryModel(
                desired_retention=params.retention,
                parameters=params.weights,
                enable_fuzzing=self.settings.enable_fuzzing,
            )
        self._models[project_id] = model
        return model

    # ---- Content ----

    def load_project(
        self,
        section_ids: Iterable[str],
        cards: Iterable[CardRef | dict] = (),
        project_id: Optional[str] = None
    ) -> int:
        """
        Make sure score rows and NEW cards exist for a project's content.

        Existing rows are left as they are.

        Returns:
            Number of cards created
        """
        self._require_ready()
        project_id = self._project(project_id)
        now = self._now()
        cards = parse_refs(cards)
        section_ids = list(section_ids) + [ref.section_id for ref in cards]

        with self.db.session_scope("load_project") as session:
            counters.ensure_scores(session, project_id, section_ids, now)
            created = card_store.ensure_cards(session, project_id, cards, now)

        logger.info(f"[ENGINE] Loaded project {project_id}: {created} new card(s)")
        return created

    # ---- Selection ----

    def pick_next(
        self,
        section_ids: Sequence[str],
        new_per_session: Optional[int] = None,
        card_type: Optional[CardType] = None,
        project_id: Optional[str] = None
    ) -> Optional[str]:
        """
        Next card to show, or None when nothing in the working set is eligible.
        """
        self._require_ready()
        cap = self.settings.new_per_session if new_per_session is None else new_per_session
        now = self._now()

        with self.db.session_scope("pick_next") as session:
            self.selector.check_new_day(session, now)
            return self.selector.pick_next(
                session, self._project(project_id), section_ids, cap, now, card_type
            )

    def preview_ratings(self, card_id: str) -> dict[Rating, str]:
        """
        Projected interval label for each rating, e.g. {AGAIN: "1m", GOOD: "10m", ...}.

        Raises:
            CardNotFoundError: If the card does not exist
        """
        self._require_ready()
        now = self._now()
        with self.db.session_scope("preview_ratings") as session:
            card = card_store.row_to_card(card_store.require_row(session, card_id))
            model = self._model_for(session, card.project_id)
        return interval_labels(model.preview(card, now), now)

    # ---- Review / undo ----

    def review(
        self,
        card_id: str,
        rating: Rating,
        elapsed_ms: Optional[int] = None,
        section_id: Optional[str] = None,
        card_type: CardType = CardType.FLASHCARD,
        project_id: Optional[str] = None
    ) -> ReviewOutcome:
        """
        Rate a card and persist the result atomically.

        An unknown card is created as NEW in `section_id` and `project_id`
        first. An existing card is scheduled with its own project's model.

        Raises:
            ValidationError: If the rating is not 1-4
            StorageError: "review failed"; nothing was written
        """
        self._require_ready()
        rating = parse_rating(rating)
        project_id = self._project(project_id)
        now = self._now()

        with self.db.session_scope("review") as session:
            return apply_review(
                session,
                lambda owner: self._model_for(session, owner),
                card_id,
                rating,
                now,
                self.settings.leech_threshold,
                project_id=project_id,
                section_id=section_id or DEFAULT_SECTION_ID,
                card_type=card_store.parse_card_type(card_type),
                elapsed_ms=elapsed_ms,
            )

    def undo(self) -> Optional[str]:
        """
        Roll back the most recent review.

        Returns:
            The restored card_id, or None when there is nothing to undo
        """
        self._require_ready()
        now = self._now()
        with self.db.session_scope("undo") as session:
            return undo.undo_last(session, now)

    # ---- Flags ----

    def _set_flag(self, card_id: str, flag: str, value: bool) -> Card:
        self._require_ready()
        now = self._now()
        with self.db.session_scope(f"set {flag}") as session:
            card = card_store.set_flag(session, card_id, flag, value, now)
        logger.info(f"[ENGINE] {card_id}: {flag}={value}")
        return card

    def suspend(self, card_id: str) -> Card:
        return self._set_flag(card_id, "suspended", True)

    def unsuspend(self, card_id: str) -> Card:
        return self._set_flag(card_id, "suspended", False)

    def bury(self, card_id: str) -> Card:
        return self._set_flag(card_id, "buried", True)

    def unbury_all(self, project_id: Optional[str] = None) -> int:
        """Unbury every card of a project now, without waiting for the next day."""
        self._require_ready()
        now = self._now()
        with self.db.session_scope("unbury_all") as session:
            return card_store.unbury_all(session, now, self._project(project_id))

    # ---- Counters ----

    def count_due(
        self,
        section_ids: Sequence[str],
        card_type: Optional[CardType] = None,
        project_id: Optional[str] = None
    ) -> DueCounts:
        self._require_ready()
        now = self._now()
        with self.db.session_scope("count_due") as session:
            self.selector.check_new_day(session, now)
            return counters.count_due(session, self._project(project_id), section_ids, now, card_type)

    def update_score(
        self,
        section_id: str,
        correct: bool,
        project_id: Optional[str] = None
    ) -> SectionScore:
        self._require_ready()
        now = self._now()
        with self.db.session_scope("update_score") as session:
            return counters.update_score(session, self._project(project_id), section_id, correct, now)

    def get_scores(
        self,
        section_ids: Optional[Sequence[str]] = None,
        project_id: Optional[str] = None
    ) -> list[SectionScore]:
        self._require_ready()
        with self.db.session_scope("get_scores") as session:
            return counters.get_scores(session, self._project(project_id), section_ids)

    def reset_section(self, section_id: str, project_id: Optional[str] = None) -> int:
        """
        DESTRUCTIVE: delete every card of a section and zero its score.

        Review history and the activity trail are kept. An undo snapshot
        pointing into the section is discarded, since its card is gone.

        Returns:
            Number of cards deleted
        """
        self._require_ready()
        project_id = self._project(project_id)
        now = self._now()

        with self.db.session_scope("reset_section") as session:
            slot = undo.peek(session)
            if slot is not None:
                previous = json.loads(slot.prev_state)
                if previous["project_id"] == project_id and previous["section_id"] == section_id:
                    undo.clear(session)

            deleted = card_store.delete_section(session, project_id, section_id)
            counters.reset_score(session, project_id, section_id, now)

        logger.warning(f"[ENGINE] Reset section {project_id}/{section_id}: {deleted} card(s) deleted")
        return deleted

    # ---- Activity ----

    def record_activity(
        self,
        section_id: Optional[str],
        rating: Rating,
        project_id: Optional[str] = None
    ) -> ActivityEvent:
        self._require_ready()
        rating = parse_rating(rating)
        now = self._now()
        with self.db.session_scope("record_activity") as session:
            return activity.record(
                session, self._project(project_id), section_id, rating, now,
                self.settings.activity_cap,
            )

    def get_activity(
        self,
        limit: Optional[int] = None,
        section_id: Optional[str] = None,
        project_id: Optional[str] = None
    ) -> list[ActivityEvent]:
        self._require_ready()
        limit = self.settings.activity_cap if limit is None else limit
        with self.db.session_scope("get_activity") as session:
            return activity.recent(session, self._project(project_id), limit, section_id)

    def clear_activity(self, project_id: Optional[str] = None) -> int:
        self._require_ready()
        with self.db.session_scope("clear_activity") as session:
            return activity.clear(session, self._project(project_id))

    def activity_score(
        self,
        section_id: Optional[str] = None,
        project_id: Optional[str] = None
    ) -> float:
        self._require_ready()
        now = self._now()
        with self.db.session_scope("activity_score") as session:
            activity_df = load_activity_df(session, self._project(project_id))
        return compute_activity_score(activity_df, now, section_id)

    def dashboard(self, project_id: Optional[str] = None) -> ProjectDashboardData:
        self._require_ready()
        now = self._now()
        with self.db.session_scope("dashboard") as session:
            return build_project_dashboard(session, self._project(project_id), now)

    # ---- Notes ----

    def add_note(self, text: str, project_id: Optional[str] = None) -> Note:
        """
        Raises:
            ValidationError: If the note is empty
        """
        self._require_ready()
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Note text must be a non-empty string")
        now = self._now()
        with self.db.session_scope("add_note") as session:
            return notes.add(session, self._project(project_id), text, now)

    def get_notes(self, project_id: Optional[str] = None) -> list[Note]:
        self._require_ready()
        with self.db.session_scope("get_notes") as session:
            return notes.for_project(session, self._project(project_id))

    # ---- Inspection ----

    def get_card_state(self, card_id: str) -> Card:
        """
        Raises:
            CardNotFoundError: If the card does not exist
        """
        self._require_ready()
        with self.db.session_scope("get_card_state") as session:
            return card_store.row_to_card(card_store.require_row(session, card_id))

    def get_review_log(
        self,
        project_id: Optional[str] = None,
        limit: int = 1000,
        card_id: Optional[str] = None
    ) -> list[ReviewLogEntry]:
        self._require_ready()
        with self.db.session_scope("get_review_log") as session:
            return review_log.recent_entries(session, self._project(project_id), limit, card_id)

    # ---- Memory-model parameters ----

    def get_model_params(self, project_id: Optional[str] = None) -> ModelParams:
        """Stored parameters for a project, or the configured defaults."""
        self._require_ready()
        project_id = self._project(project_id)
        with self.db.session_scope("get_model_params") as session:
            params = model_params.get_params(session, project_id)
        if params is None:
            return ModelParams(project_id=project_id, retention=self.settings.desired_retention)
        return params

    def set_model_params(
        self,
        retention: float,
        weights: Optional[Sequence[float]] = None,
        project_id: Optional[str] = None
    ) -> ModelParams:
        """
        Replace a project's retention target (and optionally its FSRS weights).

        Raises:
            ValidationError: If retention is outside (0, 1) or the weights are rejected
        """
        self._require_ready()
        project_id = self._project(project_id)
        if not 0 < retention < 1:
            raise ValidationError(f"Retention must be between 0 and 1, got {retention}")

        try:
            model = MemoryModel(
                desired_retention=retention,
                parameters=weights,
                enable_fuzzing=self.settings.enable_fuzzing,
            )
        except (ValueError, TypeError) as exc:
            raise ValidationError(f"Invalid memory-model weights: {exc}") from exc

        with self.db.session_scope("set_model_params") as session:
            params = model_params.put_params(session, project_id, retention, weights, self._now())

        self._models[project_id] = model
        logger.info(f"[ENGINE] Model params for {project_id}: retention={retention}")
        return params
