"""
Database - Engine, Sessions and Schema Lifecycle

Uses SQLAlchemy ORM; SQLite by default, any SQLAlchemy URL accepted.

This module handles ONLY connection and transaction plumbing.
Card and log queries live in card_store and review_log.
"""

from __future__ import annotations
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from study_engine.exceptions import StorageError
from study_engine.storage.migrations import apply_migrations
from study_engine.storage.models import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    SQLite files get their parent directory created and are shared across
    threads (the gateway runs commands on a worker thread); other backends
    use connection pooling.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        url,
        pool_size=5,           # Keep 5 connections open
        max_overflow=10,       # Allow up to 10 extra connections
        pool_pre_ping=True,    # Verify connections before use
        echo=echo,
    )


class Database:
    """Owns the engine and hands out transactional sessions."""

    def __init__(self, database_url: str, echo: bool = False):
        self.url = database_url
        self.engine = build_engine(database_url, echo=echo)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @contextmanager
    def session_scope(self, operation: str = "operation") -> Iterator[Session]:
        """
        Run a unit of work in one transaction.

        Commits on success and rolls back on any exception, so a failed
        operation never leaves a partial write behind. Storage errors are
        re-raised as StorageError("<operation> failed").
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error(f"[STORAGE] {operation} failed, rolled back: {exc}")
            raise StorageError(f"{operation} failed") from exc
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def init_db(self) -> int:
        """
        Apply pending migrations.

        Safe to call multiple times - only missing steps run.

        Returns:
            The schema version after migrating
        """
        return apply_migrations(self.engine)

    def reset_db(self) -> int:
        """
        DANGEROUS: Delete all data and recreate tables.

        Only use this for testing or when you want to start fresh.
        All review history will be lost!
        """
        Base.metadata.drop_all(self.engine)
        logger.warning("[STORAGE] All tables dropped")
        return self.init_db()

    def dispose(self) -> None:
        self.engine.dispose()
