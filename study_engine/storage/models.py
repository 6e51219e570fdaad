"""
SQLAlchemy ORM Models for the Study Engine

Defines the card store, review log, scores, activity trail, the single
undo slot, per-project memory-model parameters, project notes and the
schema version log.
"""

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CardRow(Base):
    """
    Persistent scheduling state for one reviewable item.

    One row per card_id; created lazily in state NEW (0).
    """
    __tablename__ = 'cards'

    card_id = Column(String(255), primary_key=True)
    project_id = Column(String(255), nullable=False)
    section_id = Column(String(255), nullable=False)
    card_type = Column(String(20), nullable=False)  # mcq | passage | flashcard

    # Scheduling phase: 0=NEW, 1=LEARNING, 2=REVIEW, 3=RELEARNING
    state = Column(Integer, nullable=False, default=0)
    step = Column(Integer, nullable=True)
    due = Column(DateTime(timezone=True), nullable=False)

    # Memory-model parameters
    stability = Column(Float, nullable=False, default=0.0)
    difficulty = Column(Float, nullable=False, default=0.0)

    # Counters
    elapsed_days = Column(Integer, nullable=False, default=0)
    scheduled_days = Column(Integer, nullable=False, default=0)
    reps = Column(Integer, nullable=False, default=0)
    lapses = Column(Integer, nullable=False, default=0)
    last_review = Column(DateTime(timezone=True), nullable=True)

    # Flags
    suspended = Column(Boolean, nullable=False, default=False)
    buried = Column(Boolean, nullable=False, default=False)
    leech = Column(Boolean, nullable=False, default=False)

    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_cards_due', 'due'),
        Index('idx_cards_section', 'project_id', 'section_id'),
    )

    def __repr__(self):
        return f"<CardRow({self.card_id}, state={self.state}, due={self.due})>"


class ReviewLogRow(Base):
    """
    Append-only entry for a single rating event.

    Captures the resulting memory state so the log explains the card's state.
    """
    __tablename__ = 'review_log'

    id = Column(String(36), primary_key=True)  # Time-ordered UUID
    card_id = Column(String(255), nullable=False)
    project_id = Column(String(255), nullable=False)
    section_id = Column(String(255), nullable=True)

    rating = Column(Integer, nullable=False)  # 1=AGAIN, 2=HARD, 3=GOOD, 4=EASY
    review_time = Column(DateTime(timezone=True), nullable=False)
    elapsed_ms = Column(Integer, nullable=True)  # Time the learner spent

    # State after review
    new_state = Column(Integer, nullable=False)
    new_stability = Column(Float, nullable=False)
    new_difficulty = Column(Float, nullable=False)
    scheduled_days = Column(Integer, nullable=False)

    __table_args__ = (
        Index('idx_review_log_card', 'card_id'),
        Index('idx_review_log_project_time', 'project_id', 'review_time'),
    )

    def __repr__(self):
        return f"<ReviewLogRow(id={self.id}, card={self.card_id}, rating={self.rating})>"


class ScoreRow(Base):
    """Correct/attempted counters per (project, section)."""
    __tablename__ = 'scores'

    project_id = Column(String(255), primary_key=True)
    section_id = Column(String(255), primary_key=True)
    correct = Column(Integer, nullable=False, default=0)
    attempted = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class UndoSnapshotRow(Base):
    """
    The single undo slot: pre-review card row plus the log entry it produced.

    At most one row exists (id is always 1).
    """
    __tablename__ = 'undo_snapshot'

    id = Column(Integer, primary_key=True)
    card_id = Column(String(255), nullable=False)
    prev_state = Column(Text, nullable=False)  # JSON of the pre-review card
    review_log_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class ActivityRow(Base):
    """Trailing window of rating events for trend display, independent of cards."""
    __tablename__ = 'activity'

    id = Column(String(36), primary_key=True)
    project_id = Column(String(255), nullable=False)
    section_id = Column(String(255), nullable=True)
    rating = Column(Integer, nullable=False)
    correct = Column(Boolean, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_activity_project_time', 'project_id', 'timestamp'),
    )


class ModelParamsRow(Base):
    """Memory-model configuration per project."""
    __tablename__ = 'model_params'

    project_id = Column(String(255), primary_key=True)
    weights_json = Column(Text, nullable=True)
    retention = Column(Float, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class SchemaVersionRow(Base):
    """One row per applied migration."""
    __tablename__ = 'schema_version'

    version = Column(Integer, primary_key=True)
    description = Column(String(255), nullable=False)
    applied_at = Column(DateTime(timezone=True), nullable=False)


class NoteRow(Base):
    """Free-text note the learner attached to a project."""
    __tablename__ = 'notes'

    id = Column(String(36), primary_key=True)  # Time-ordered UUID
    project_id = Column(String(255), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_notes_project_time', 'project_id', 'created_at'),
    )
