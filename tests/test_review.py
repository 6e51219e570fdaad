"""
Tests for the review transaction and single-slot undo.

Tests cover:
- State transitions and counters after a review
- Lapse counting and the leech cadence
- All-or-nothing writes
- Undo round-trip and its one-step limit
"""

import pytest
from sqlalchemy.exc import OperationalError

from study_engine import (
    CardNotFoundError,
    CardState,
    Rating,
    StorageError,
    ValidationError,
)
from study_engine.storage import review_log


class TestReviewTransaction:

    def test_first_good_review(self, loaded_engine):
        outcome = loaded_engine.review("q-1", Rating.GOOD, elapsed_ms=5000)

        assert outcome.card.state == CardState.LEARNING
        assert outcome.card.reps == 1
        assert outcome.card.lapses == 0
        assert not outcome.is_leech
        assert set(outcome.public_fields()) == {"state", "due", "stability", "difficulty"}

        stored = loaded_engine.get_card_state("q-1")
        assert stored.state == CardState.LEARNING
        assert stored.reps == 1

    def test_never_new_after_a_review(self, loaded_engine):
        for card_id, rating in [("q-1", Rating.AGAIN), ("q-2", Rating.HARD), ("q-3", Rating.EASY)]:
            loaded_engine.review(card_id, rating)
            assert loaded_engine.get_card_state(card_id).state in (CardState.LEARNING, CardState.REVIEW)

    def test_appends_exactly_one_log_entry(self, loaded_engine):
        outcome = loaded_engine.review("q-1", Rating.GOOD, elapsed_ms=5000)

        entries = loaded_engine.get_review_log()
        assert len(entries) == 1
        assert entries[0].id == outcome.log_id
        assert entries[0].card_id == "q-1"
        assert entries[0].section_id == "unit-1"
        assert entries[0].rating == Rating.GOOD
        assert entries[0].elapsed_ms == 5000
        assert entries[0].new_state == CardState.LEARNING

    def test_review_creates_unknown_card(self, engine):
        outcome = engine.review("fresh", 3, section_id="unit-9")

        assert outcome.card.reps == 1
        assert engine.get_card_state("fresh").section_id == "unit-9"

    def test_accepts_plain_ints(self, loaded_engine):
        assert loaded_engine.review("q-1", 4).card.state == CardState.REVIEW

    @pytest.mark.parametrize("rating", [0, 5, -1, True, "good"])
    def test_rejects_bad_ratings(self, loaded_engine, rating):
        with pytest.raises(ValidationError):
            loaded_engine.review("q-1", rating)

        assert loaded_engine.get_card_state("q-1").state == CardState.NEW
        assert loaded_engine.get_review_log() == []

    def test_log_is_newest_first(self, loaded_engine, clock):
        loaded_engine.review("q-1", Rating.GOOD)
        clock.advance(minutes=1)
        loaded_engine.review("q-2", Rating.GOOD)

        assert [entry.card_id for entry in loaded_engine.get_review_log()] == ["q-2", "q-1"]
        assert [entry.card_id for entry in loaded_engine.get_review_log(card_id="q-1")] == ["q-1"]


class TestLapsesAndLeeches:

    def _lapse(self, engine, clock, card_id="y"):
        clock.advance(minutes=30)
        return engine.review(card_id, Rating.AGAIN)

    def test_again_on_new_or_learning_is_not_a_lapse(self, loaded_engine):
        assert loaded_engine.review("q-1", Rating.AGAIN).lapses == 0
        assert loaded_engine.review("q-1", Rating.AGAIN).lapses == 0

    def test_again_on_review_card_counts_lapse(self, loaded_engine, clock):
        loaded_engine.review("q-1", Rating.EASY)
        outcome = self._lapse(loaded_engine, clock, "q-1")

        assert outcome.lapses == 1
        assert outcome.card.state == CardState.RELEARNING

    def test_leech_flagged_at_threshold(self, engine, clock):
        engine.review("y", Rating.EASY)

        outcomes = [self._lapse(engine, clock) for _ in range(8)]

        assert [o.lapses for o in outcomes] == list(range(1, 9))
        assert not outcomes[6].is_leech
        assert outcomes[7].is_leech
        assert engine.get_card_state("y").leech

    def test_leech_cadence_after_threshold(self, engine, clock):
        engine.review("y", Rating.EASY)

        flagged = [o.lapses for o in (self._lapse(engine, clock) for _ in range(16)) if o.is_leech]

        assert flagged == [8, 12, 16]

    def test_leech_reported_on_non_lapsing_review_at_threshold(self, engine, clock):
        engine.review("y", Rating.EASY)
        for _ in range(8):
            self._lapse(engine, clock)

        clock.advance(minutes=30)
        outcome = engine.review("y", Rating.GOOD)

        assert outcome.lapses == 8
        assert outcome.is_leech
        assert outcome.card.leech

    def test_leech_flag_is_sticky(self, engine, clock):
        engine.review("y", Rating.EASY)
        for _ in range(9):
            self._lapse(engine, clock)

        clock.advance(days=1)
        outcome = engine.review("y", Rating.EASY)

        assert not outcome.is_leech
        assert outcome.card.leech


class TestAtomicity:

    def test_failed_write_leaves_card_untouched(self, loaded_engine, monkeypatch):
        loaded_engine.review("q-1", Rating.GOOD)
        before = loaded_engine.get_card_state("q-2")

        def broken_append(session, entry):
            raise OperationalError("INSERT INTO review_log", {}, Exception("disk I/O error"))

        monkeypatch.setattr(review_log, "append", broken_append)

        with pytest.raises(StorageError, match="review failed"):
            loaded_engine.review("q-2", Rating.GOOD)

        monkeypatch.undo()
        assert loaded_engine.get_card_state("q-2") == before
        assert len(loaded_engine.get_review_log()) == 1
        # The earlier snapshot survives the rolled-back review
        assert loaded_engine.undo() == "q-1"


class TestUndo:

    def test_round_trip_restores_every_field(self, loaded_engine, clock):
        loaded_engine.review("q-1", Rating.EASY)
        clock.advance(days=5)
        before = loaded_engine.get_card_state("q-1")

        loaded_engine.review("q-1", Rating.AGAIN, elapsed_ms=900)
        assert len(loaded_engine.get_review_log()) == 2

        assert loaded_engine.undo() == "q-1"

        assert loaded_engine.get_card_state("q-1") == before
        assert len(loaded_engine.get_review_log()) == 1

    def test_second_undo_is_noop(self, loaded_engine):
        loaded_engine.review("q-1", Rating.GOOD)

        assert loaded_engine.undo() == "q-1"
        assert loaded_engine.undo() is None
        assert loaded_engine.get_review_log() == []

    def test_nothing_to_undo(self, loaded_engine):
        assert loaded_engine.undo() is None

    def test_only_latest_review_is_undoable(self, loaded_engine):
        loaded_engine.review("q-1", Rating.GOOD)
        loaded_engine.review("q-2", Rating.GOOD)

        assert loaded_engine.undo() == "q-2"
        assert loaded_engine.undo() is None
        assert loaded_engine.get_card_state("q-1").reps == 1
        assert loaded_engine.get_card_state("q-2").state == CardState.NEW

    def test_undo_restores_leech_and_lapses(self, engine, clock):
        engine.review("y", Rating.EASY)
        for _ in range(7):
            clock.advance(minutes=30)
            engine.review("y", Rating.AGAIN)
        clock.advance(minutes=30)
        assert engine.review("y", Rating.AGAIN).is_leech

        engine.undo()

        card = engine.get_card_state("y")
        assert card.lapses == 7
        assert not card.leech

    def test_undo_of_lazily_created_card_leaves_new_card(self, engine):
        engine.review("fresh", Rating.GOOD)
        engine.undo()

        card = engine.get_card_state("fresh")
        assert card.state == CardState.NEW
        assert card.reps == 0


class TestNotFound:

    @pytest.mark.parametrize("operation", ["suspend", "unsuspend", "bury", "get_card_state", "preview_ratings"])
    def test_unknown_card(self, loaded_engine, operation):
        with pytest.raises(CardNotFoundError) as excinfo:
            getattr(loaded_engine, operation)("nope")
        assert excinfo.value.card_id == "nope"
