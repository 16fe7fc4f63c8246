"""Database base and model registry."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def import_models() -> None:
    """Import all models so metadata (create_all, Alembic) sees every table."""
    from practice_service.models import (  # noqa: F401
        BankChoice,
        BankQuestion,
        PracticeAnswer,
        PracticeSession,
    )
