"""Database models."""

# Import all models here so Alembic can detect them
from practice_service.models.practice import PracticeAnswer, PracticeSession, PracticeSessionStatus
from practice_service.models.question_bank import BankChoice, BankQuestion, BankQuestionStatus

__all__ = [
    "PracticeSession",
    "PracticeSessionStatus",
    "PracticeAnswer",
    "BankQuestion",
    "BankQuestionStatus",
    "BankChoice",
]
