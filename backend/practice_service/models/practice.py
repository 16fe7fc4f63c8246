"""Practice session models for the session lifecycle engine."""

import uuid
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from practice_service.db.base import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class PracticeSessionStatus(str, PyEnum):
    """Practice session status."""

    ACTIVE = "active"
    PAUSED = "paused"
    FINISHED = "finished"


class PracticeSession(Base):
    """Practice session - one pass through a fixed sequence of questions.

    Status only moves forward: active -> paused/finished, paused -> active.
    Every write is conditional on the stored status and version (see
    PracticeSessionRepository.save).
    """

    __tablename__ = "practice_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), nullable=False)
    package_id = Column(String(64), nullable=True)

    # Ironman configuration (fixed at creation)
    is_timed = Column(Boolean, nullable=False, default=False)
    time_limit_seconds = Column(Integer, nullable=True)  # null = untimed

    # Question sequence (immutable after creation)
    target_count = Column(Integer, nullable=False)
    question_order = Column(JSONType, nullable=False)  # ["q1", "q2", ...]
    questions_snapshot = Column(JSONType, nullable=True)  # [{id, prompt, choices, correct_choice_id, explanation}]

    # Progress
    current_index = Column(Integer, nullable=False, default=0)
    correct_count = Column(Integer, nullable=False, default=0)
    status = Column(
        Enum(PracticeSessionStatus, name="practice_session_status", native_enum=False, length=20),
        nullable=False,
        default=PracticeSessionStatus.ACTIVE,
    )
    question_timings = Column(JSONType, nullable=False, default=dict)  # {question_id: seconds}

    # Timestamps (all written from the injected clock)
    created_at = Column(DateTime(timezone=True), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False)
    current_question_started_at = Column(DateTime(timezone=True), nullable=False)  # session anchor
    paused_at = Column(DateTime(timezone=True), nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    last_activity_at = Column(DateTime(timezone=True), nullable=False)

    # Optimistic concurrency counter
    version = Column(Integer, nullable=False, default=1)

    # Relationships
    answers = relationship("PracticeAnswer", back_populates="session", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("current_index >= 0", name="ck_practice_sessions_index_non_negative"),
        CheckConstraint("current_index <= target_count", name="ck_practice_sessions_index_bounded"),
        CheckConstraint("target_count >= 1", name="ck_practice_sessions_target_positive"),
        Index("ix_practice_sessions_user_activity", "user_id", "last_activity_at"),
        Index("ix_practice_sessions_user_status", "user_id", "status"),
    )

    @property
    def is_complete(self) -> bool:
        return self.current_index >= self.target_count


class PracticeAnswer(Base):
    """Answer log for practice sessions (append-only).

    IMPORTANT: Rows are never updated or deleted. Review replays this log.
    """

    __tablename__ = "practice_answers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("practice_sessions.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    user_id = Column(String(64), nullable=False)
    question_id = Column(String(64), nullable=False)

    # Answer data
    choice_id = Column(String(64), nullable=False)
    correct = Column(Boolean, nullable=False)
    explanation = Column(Text, nullable=True)  # Disclosed to the student on answering
    answered_at = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    session = relationship("PracticeSession", back_populates="answers")

    __table_args__ = (
        UniqueConstraint("session_id", "question_id", name="uq_practice_answer"),
        Index("ix_practice_answers_session_id", "session_id"),
    )
