"""
Versioned schema migrations.

Each migration is a numbered step applied once, in order, inside its own
transaction. The applied versions are recorded in `schema_version`.
Nothing else may touch the database until `apply_migrations` succeeds.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy import inspect, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from study_engine.exceptions import MigrationError
from study_engine.memory_model.card import utc_now
from study_engine.storage.models import Base, SchemaVersionRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    version: int
    description: str
    apply: Callable[[Connection], None]


def _create_tables(*names: str) -> Callable[[Connection], None]:
    def _apply(conn: Connection) -> None:
        for name in names:
            Base.metadata.tables[name].create(conn, checkfirst=True)
    return _apply


MIGRATIONS: list[Migration] = [
    Migration(
        1,
        "card store, review log, scores and undo slot",
        _create_tables("cards", "review_log", "scores", "undo_snapshot"),
    ),
    Migration(
        2,
        "activity trail and per-project model parameters",
        _create_tables("activity", "model_params"),
    ),
    Migration(
        3,
        "project notes",
        _create_tables("notes"),
    ),
]

LATEST_VERSION = MIGRATIONS[-1].version


def current_version(engine: Engine) -> int:
    """
    Read the highest applied migration version (0 for a fresh database).

    Raises:
        MigrationError: If tables exist but no version log does
    """
    existing_tables = set(inspect(engine).get_table_names())

    if SchemaVersionRow.__tablename__ not in existing_tables:
        if "cards" in existing_tables:
            raise MigrationError(
                "Database has a cards table but no schema_version log. "
                "Please reset or migrate the database manually."
            )
        return 0

    with engine.connect() as conn:
        versions = conn.execute(select(SchemaVersionRow.version)).scalars().all()
    return max(versions, default=0)


def apply_migrations(engine: Engine) -> int:
    """
    Bring the schema to LATEST_VERSION.

    Safe to call multiple times - already-applied steps are skipped.

    Returns:
        The schema version after migrating

    Raises:
        MigrationError: If a step fails or the database is newer than this code
    """
    try:
        version = current_version(engine)
        SchemaVersionRow.__table__.create(engine, checkfirst=True)
    except SQLAlchemyError as exc:
        raise MigrationError(f"Could not read schema version: {exc}") from exc

    if version > LATEST_VERSION:
        raise MigrationError(
            f"Database schema v{version} is newer than supported v{LATEST_VERSION}"
        )

    for migration in MIGRATIONS:
        if migration.version <= version:
            continue
        logger.info(f"[MIGRATIONS] Applying v{migration.version}: {migration.description}")
        try:
            with engine.begin() as conn:
                migration.apply(conn)
                conn.execute(
                    SchemaVersionRow.__table__.insert().values(
                        version=migration.version,
                        description=migration.description,
                        applied_at=utc_now(),
                    )
                )
        except SQLAlchemyError as exc:
            raise MigrationError(
                f"Migration v{migration.version} failed: {exc}"
            ) from exc
        version = migration.version

    return version
