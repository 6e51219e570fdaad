"""
Study Engine - spaced-repetition scheduling and review persistence.

Decides which card a learner sees next, applies ratings through the FSRS
memory model, keeps an append-only review log with one level of undo,
and maintains due counts, section scores and a recent-activity trail.

Quick start:
    from study_engine import CommandGateway, StudyEngine, Rating, load_settings

    async with CommandGateway(StudyEngine(load_settings())) as gateway:
        card_id = await gateway.pick_next(["unit-1"])
        outcome = await gateway.review(card_id, Rating.GOOD, elapsed_ms=2500)
        if outcome.is_leech:
            ...
"""

from study_engine.analytics import (
    ActivityEvent,
    DueCounts,
    ProjectDashboardData,
    SectionScore,
)
from study_engine.config import Settings, configure_logging, load_settings
from study_engine.content import CardRef
from study_engine.engine import StudyEngine
from study_engine.exceptions import (
    StudyEngineError,
    ConfigurationError,
    ValidationError,
    CardNotFoundError,
    StorageError,
    MigrationError,
    EngineNotReadyError,
)
from study_engine.gateway import CommandGateway, CommandResult
from study_engine.memory_model import (
    Card,
    CardState,
    CardType,
    Rating,
    ReviewLogEntry,
)
from study_engine.review import ReviewOutcome
from study_engine.storage.model_params import ModelParams
from study_engine.storage.notes import Note


__all__ = [
    # Entry points
    "StudyEngine",
    "CommandGateway",
    "CommandResult",

    # Configuration
    "Settings",
    "load_settings",
    "configure_logging",

    # Domain types
    "Card",
    "CardState",
    "CardType",
    "CardRef",
    "Rating",
    "ReviewLogEntry",
    "ReviewOutcome",
    "DueCounts",
    "SectionScore",
    "ActivityEvent",
    "ProjectDashboardData",
    "ModelParams",
    "Note",

    # Errors
    "StudyEngineError",
    "ConfigurationError",
    "ValidationError",
    "CardNotFoundError",
    "StorageError",
    "MigrationError",
    "EngineNotReadyError",
]
