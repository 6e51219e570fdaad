"""
Tests for due counts, section scores, suspend/bury flags and section resets.
"""

import pytest

from study_engine import CardRef, CardState, CardType, DueCounts, Rating, ValidationError


class TestCountDue:

    def test_fresh_project(self, loaded_engine):
        assert loaded_engine.count_due(["unit-1"]) == DueCounts(due=0, new_count=3, total=3)
        assert loaded_engine.count_due(["unit-1", "unit-2"]).total == 5

    def test_empty_working_set(self, loaded_engine):
        assert loaded_engine.count_due([]) == DueCounts(due=0, new_count=0, total=0)

    def test_reviewed_card_leaves_new(self, loaded_engine, clock):
        loaded_engine.review("q-1", Rating.GOOD, elapsed_ms=5000)

        counts = loaded_engine.count_due(["unit-1"])
        assert counts.new_count == 2
        assert counts.due == 0
        assert counts.total == 3

        clock.advance(minutes=11)
        assert loaded_engine.count_due(["unit-1"]).due == 1

    def test_hidden_cards_not_counted(self, loaded_engine):
        loaded_engine.suspend("q-1")
        loaded_engine.bury("q-2")

        assert loaded_engine.count_due(["unit-1"]) == DueCounts(due=0, new_count=1, total=1)

    def test_card_type_filter(self, loaded_engine):
        assert loaded_engine.count_due(["unit-1", "unit-2"], card_type=CardType.MCQ).total == 2


class TestFlags:

    def test_suspend_is_idempotent(self, loaded_engine):
        once = loaded_engine.suspend("q-1")
        twice = loaded_engine.suspend("q-1")

        assert once.suspended and twice.suspended
        assert once == twice
        assert loaded_engine.get_card_state("q-1") == once

    def test_bury_is_idempotent(self, loaded_engine):
        loaded_engine.bury("q-1")
        loaded_engine.bury("q-1")
        assert loaded_engine.get_card_state("q-1").buried

    def test_flags_do_not_touch_scheduling_fields(self, loaded_engine):
        loaded_engine.review("q-1", Rating.GOOD)
        before = loaded_engine.get_card_state("q-1")

        after = loaded_engine.suspend("q-1")

        assert after.copy(suspended=False) == before


class TestScores:

    def test_update_score_counts_attempts(self, loaded_engine):
        first = loaded_engine.update_score("unit-1", True)
        second = loaded_engine.update_score("unit-1", False)

        assert (first.correct, first.attempted) == (1, 1)
        assert (second.correct, second.attempted) == (1, 2)

    def test_attempted_is_monotonic(self, loaded_engine):
        attempted = []
        for correct in [True, False, False, True, True]:
            score = loaded_engine.update_score("unit-2", correct)
            attempted.append(score.attempted)
            assert score.correct <= score.attempted

        assert attempted == sorted(attempted)

    def test_load_project_creates_zeroed_scores(self, loaded_engine):
        scores = {s.section_id: s for s in loaded_engine.get_scores()}
        assert set(scores) == {"unit-1", "unit-2"}
        assert scores["unit-1"].attempted == 0

    def test_unknown_section_gets_a_row(self, loaded_engine):
        assert loaded_engine.update_score("extra", True).attempted == 1
        assert [s.section_id for s in loaded_engine.get_scores(["extra"])] == ["extra"]


class TestLoadProject:

    def test_is_idempotent(self, loaded_engine):
        loaded_engine.review("q-1", Rating.GOOD)
        loaded_engine.update_score("unit-1", True)

        created = loaded_engine.load_project(
            ["unit-1"],
            [CardRef(card_id="q-1", section_id="unit-1"), CardRef(card_id="q-4", section_id="unit-1")],
        )

        assert created == 1
        assert loaded_engine.get_card_state("q-1").reps == 1
        assert loaded_engine.get_card_state("q-4").state == CardState.NEW
        assert loaded_engine.get_scores(["unit-1"])[0].attempted == 1

    def test_rejects_unknown_card_type(self, engine):
        with pytest.raises(ValidationError):
            engine.load_project(["unit-1"], [{"card_id": "q-1", "section_id": "unit-1", "card_type": "essay"}])
        assert engine.count_due(["unit-1"]).total == 0

    def test_accepts_plain_dicts(self, engine):
        created = engine.load_project(
            [],
            [{"card_id": "p-1", "section_id": "reading", "card_type": "passage"}, {"card_id": "p-2"}],
        )

        assert created == 2
        assert engine.get_card_state("p-1").card_type == CardType.PASSAGE
        assert engine.get_card_state("p-2").section_id == "default"


class TestResetSection:

    def test_deletes_cards_and_zeroes_score(self, loaded_engine):
        loaded_engine.review("q-1", Rating.GOOD)
        loaded_engine.update_score("unit-1", True)

        assert loaded_engine.reset_section("unit-1") == 3

        assert loaded_engine.count_due(["unit-1"]).total == 0
        score = loaded_engine.get_scores(["unit-1"])[0]
        assert (score.correct, score.attempted) == (0, 0)

    def test_other_sections_untouched(self, loaded_engine):
        loaded_engine.update_score("unit-2", True)
        loaded_engine.reset_section("unit-1")

        assert loaded_engine.count_due(["unit-2"]).total == 2
        assert loaded_engine.get_scores(["unit-2"])[0].attempted == 1

    def test_discards_undo_into_reset_section(self, loaded_engine):
        loaded_engine.review("q-1", Rating.GOOD)
        loaded_engine.reset_section("unit-1")

        assert loaded_engine.undo() is None
        # History is kept
        assert len(loaded_engine.get_review_log()) == 1

    def test_keeps_undo_for_other_sections(self, loaded_engine):
        loaded_engine.review("m-1", Rating.GOOD)
        loaded_engine.reset_section("unit-1")

        assert loaded_engine.undo() == "m-1"
