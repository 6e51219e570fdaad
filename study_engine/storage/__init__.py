"""Durable storage: card store, review log, undo slot and migrations."""

from study_engine.storage.database import Database, build_engine
from study_engine.storage.migrations import LATEST_VERSION, apply_migrations, current_version

__all__ = [
    "Database",
    "build_engine",
    "LATEST_VERSION",
    "apply_migrations",
    "current_version",
]
