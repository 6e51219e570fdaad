"""
Shared test fixtures.

Provides:
- A controllable UTC clock (day rollover without sleeping)
- Settings pointing at a throwaway SQLite file
- A migrated StudyEngine, empty or loaded with two sections of cards
"""

from datetime import datetime, timedelta, timezone

import pytest

from study_engine import CardRef, CardType, Settings, StudyEngine

START = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'study.sqlite'}"


@pytest.fixture
def settings(database_url) -> Settings:
    return Settings(database_url=database_url, new_per_session=20, leech_threshold=8)


@pytest.fixture
def engine(settings, clock):
    study = StudyEngine(settings, clock=clock)
    study.startup()
    yield study
    study.close()


@pytest.fixture
def loaded_engine(engine):
    """Engine with unit-1 (q-1..q-3, flashcards) and unit-2 (m-1..m-2, mcq)."""
    engine.load_project(
        ["unit-1", "unit-2"],
        [
            CardRef(card_id="q-1", section_id="unit-1"),
            CardRef(card_id="q-2", section_id="unit-1"),
            CardRef(card_id="q-3", section_id="unit-1"),
            CardRef(card_id="m-1", section_id="unit-2", card_type=CardType.MCQ),
            CardRef(card_id="m-2", section_id="unit-2", card_type=CardType.MCQ),
        ],
    )
    return engine
