"""
Tests for the activity trail, activity score and project dashboard.
"""

import math

import pytest

from study_engine import CardRef, Rating, Settings, StudyEngine, ValidationError


@pytest.fixture
def small_cap_engine(database_url, clock):
    study = StudyEngine(Settings(database_url=database_url, activity_cap=5), clock=clock)
    study.startup()
    yield study
    study.close()


def record_all(engine, clock, ratings, section_id="unit-1"):
    for rating in ratings:
        engine.record_activity(section_id, rating)
        clock.advance(seconds=1)


class TestActivityTrail:

    def test_correct_is_derived_from_rating(self, engine):
        assert not engine.record_activity("unit-1", Rating.AGAIN).correct
        assert engine.record_activity("unit-1", Rating.HARD).correct

    def test_newest_first(self, engine, clock):
        record_all(engine, clock, [Rating.AGAIN, Rating.GOOD, Rating.EASY])
        assert [e.rating for e in engine.get_activity()] == [Rating.EASY, Rating.GOOD, Rating.AGAIN]

    def test_oldest_evicted_past_cap(self, small_cap_engine, clock):
        ratings = [Rating.AGAIN, Rating.HARD, Rating.GOOD, Rating.EASY, Rating.GOOD, Rating.HARD, Rating.EASY]
        record_all(small_cap_engine, clock, ratings)

        events = small_cap_engine.get_activity()
        assert len(events) == 5
        assert [e.rating for e in reversed(events)] == ratings[-5:]

    def test_independent_of_undo(self, loaded_engine):
        loaded_engine.review("q-1", Rating.GOOD)
        loaded_engine.record_activity("unit-1", Rating.GOOD)

        loaded_engine.undo()

        assert len(loaded_engine.get_activity()) == 1

    def test_clear(self, engine, clock):
        record_all(engine, clock, [Rating.GOOD, Rating.GOOD])
        assert engine.clear_activity() == 2
        assert engine.get_activity() == []

    def test_scoped_to_project(self, engine):
        engine.record_activity("unit-1", Rating.GOOD, project_id="other")
        assert engine.get_activity() == []
        assert len(engine.get_activity(project_id="other")) == 1


class TestActivityScore:

    def test_empty_trail_scores_zero(self, engine):
        assert engine.activity_score() == 0.0

    def test_points_per_rating(self, engine, clock):
        record_all(engine, clock, [Rating.EASY, Rating.GOOD, Rating.HARD])
        assert engine.activity_score() == pytest.approx(8.0)

    def test_older_events_weigh_less(self, engine, clock):
        engine.record_activity("unit-1", Rating.GOOD)
        clock.advance(days=2)
        assert engine.activity_score() == pytest.approx(3 * 0.7)

        clock.advance(days=3)
        assert engine.activity_score() == pytest.approx(3 * 0.4)

        clock.advance(days=30)
        assert engine.activity_score() == pytest.approx(3 * 0.2)

    def test_never_negative(self, engine, clock):
        record_all(engine, clock, [Rating.AGAIN, Rating.AGAIN, Rating.GOOD])
        assert engine.activity_score() == 0.0

    def test_section_filter(self, engine, clock):
        record_all(engine, clock, [Rating.EASY], section_id="unit-1")
        record_all(engine, clock, [Rating.GOOD], section_id="unit-2")

        assert engine.activity_score(section_id="unit-2") == pytest.approx(3.0)


class TestDashboard:

    def test_empty_project(self, engine):
        data = engine.dashboard()

        assert data.total_reviews == 0
        assert data.daily_review_counts.empty
        assert data.activity_trend.empty
        assert data.rating_distribution.to_dict() == {"Again": 0, "Hard": 0, "Good": 0, "Easy": 0}

    def test_daily_series(self, loaded_engine, clock):
        loaded_engine.review("q-1", Rating.GOOD)
        loaded_engine.review("q-2", Rating.AGAIN)
        clock.advance(days=2)
        loaded_engine.review("q-3", Rating.EASY)

        data = loaded_engine.dashboard()

        assert data.total_reviews == 3
        assert data.daily_review_counts.tolist() == [2, 0, 1]
        retention = data.daily_retention.tolist()
        assert retention[0] == pytest.approx(0.5)
        assert math.isnan(retention[1])
        assert retention[2] == pytest.approx(1.0)
        assert data.rating_distribution.to_dict() == {"Again": 1, "Hard": 0, "Good": 1, "Easy": 1}

    def test_trend_clamps_at_zero(self, engine, clock):
        record_all(engine, clock, [Rating.AGAIN, Rating.GOOD, Rating.AGAIN, Rating.AGAIN, Rating.EASY])

        assert engine.dashboard().activity_trend.tolist() == [0.0, 3.0, 1.0, 0.0, 4.0]

    def test_trend_window(self, engine, clock):
        record_all(engine, clock, [Rating.GOOD] * 60)
        trend = engine.dashboard().activity_trend

        assert len(trend) == 50
        assert trend.iloc[-1] == pytest.approx(150.0)


class TestModelParams:

    def test_defaults_from_settings(self, engine):
        params = engine.get_model_params()
        assert params.retention == pytest.approx(0.9)
        assert params.weights is None

    def test_set_and_persist(self, engine, settings, clock):
        engine.set_model_params(0.85)

        reopened = StudyEngine(settings, clock=clock)
        reopened.startup()
        try:
            assert reopened.get_model_params().retention == pytest.approx(0.85)
        finally:
            reopened.close()

    @pytest.mark.parametrize("retention", [0.0, 1.0, 1.5, -0.2])
    def test_rejects_bad_retention(self, engine, retention):
        with pytest.raises(ValidationError):
            engine.set_model_params(retention)

    def test_lower_retention_schedules_further_out(self, loaded_engine):
        loaded_engine.review("q-1", Rating.EASY)
        loaded_engine.set_model_params(0.7, project_id="relaxed")
        loaded_engine.review("r-1", Rating.EASY, project_id="relaxed")

        strict = loaded_engine.get_card_state("q-1")
        relaxed = loaded_engine.get_card_state("r-1")
        assert relaxed.due > strict.due

    def test_existing_card_uses_its_own_project_model(self, loaded_engine):
        loaded_engine.set_model_params(0.7, project_id="relaxed")
        loaded_engine.load_project(
            ["r"],
            [CardRef(card_id="r-1", section_id="r"), CardRef(card_id="r-2", section_id="r")],
            project_id="relaxed",
        )

        loaded_engine.review("r-1", Rating.EASY, project_id="relaxed")
        # No project given: the stored card's project still decides the model
        loaded_engine.review("r-2", Rating.EASY)
        loaded_engine.review("q-1", Rating.EASY)

        explicit = loaded_engine.get_card_state("r-1")
        implicit = loaded_engine.get_card_state("r-2")
        assert implicit.project_id == "relaxed"
        assert implicit.due == explicit.due
        assert implicit.stability == pytest.approx(explicit.stability)
        assert implicit.due > loaded_engine.get_card_state("q-1").due

    def test_preview_labels(self, loaded_engine):
        labels = loaded_engine.preview_ratings("q-1")

        assert set(labels) == set(Rating)
        assert labels[Rating.AGAIN] == "1m"
        assert labels[Rating.GOOD] == "10m"
        # Preview never writes
        assert loaded_engine.get_review_log() == []
