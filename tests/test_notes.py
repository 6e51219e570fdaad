"""
Tests for per-project notes.
"""

import pytest

from study_engine import ValidationError


class TestNotes:

    def test_newest_first(self, engine, clock):
        engine.add_note("check unit 3 wording")
        clock.advance(minutes=5)
        engine.add_note("q-2 answer key looks wrong")

        assert [note.text for note in engine.get_notes()] == [
            "q-2 answer key looks wrong",
            "check unit 3 wording",
        ]

    def test_records_project_and_time(self, engine, clock):
        note = engine.add_note("revisit passages", project_id="reading")

        assert note.project_id == "reading"
        assert note.created_at == clock.now
        assert engine.get_notes(project_id="reading") == [note]

    def test_scoped_to_project(self, engine):
        engine.add_note("only here", project_id="other")

        assert engine.get_notes() == []
        assert len(engine.get_notes(project_id="other")) == 1

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_rejects_empty_text(self, engine, text):
        with pytest.raises(ValidationError):
            engine.add_note(text)

        assert engine.get_notes() == []

    def test_untouched_by_section_reset(self, loaded_engine):
        loaded_engine.add_note("unit-1 is too easy")

        loaded_engine.reset_section("unit-1")

        assert len(loaded_engine.get_notes()) == 1
