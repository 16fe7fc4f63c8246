"""Question bank models (read-only from the practice engine's point of view)."""

from enum import Enum as PyEnum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from practice_service.db.base import Base


class BankQuestionStatus(str, PyEnum):
    """Question workflow status."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class BankQuestion(Base):
    """Single-answer multiple choice question."""

    __tablename__ = "question_bank_questions"

    id = Column(String(64), primary_key=True)
    package_id = Column(String(64), nullable=True)

    prompt = Column(Text, nullable=False)
    explanation = Column(Text, nullable=False, default="")
    correct_choice_id = Column(String(64), nullable=False)  # choice_key of the correct choice

    status = Column(
        Enum(BankQuestionStatus, name="bank_question_status", native_enum=False, length=20),
        nullable=False,
        default=BankQuestionStatus.DRAFT,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    choices = relationship(
        "BankChoice",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="BankChoice.order_index",
    )

    __table_args__ = (
        Index("ix_question_bank_questions_package_status", "package_id", "status"),
    )


class BankChoice(Base):
    """Answer choice of a bank question."""

    __tablename__ = "question_bank_choices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(
        String(64),
        ForeignKey("question_bank_questions.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    choice_key = Column(String(64), nullable=False)  # "a", "b", ... as seen by clients
    text = Column(Text, nullable=False)
    order_index = Column(Integer, nullable=False, default=0)

    question = relationship("BankQuestion", back_populates="choices")

    __table_args__ = (
        UniqueConstraint("question_id", "choice_key", name="uq_question_bank_choice_key"),
        Index("ix_question_bank_choices_question_id", "question_id"),
    )
