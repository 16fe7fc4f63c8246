"""Pytest configuration and shared fixtures."""

import os

# Must be set before practice_service is imported (settings and engine are module globals)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["QUESTION_BANK_BACKEND"] = "database"

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from practice_service.core.clock import FrozenClock
from practice_service.core.dependencies import get_clock, get_question_bank
from practice_service.db.base import Base, import_models
from practice_service.db.engine import engine
from practice_service.db.session import SessionLocal, get_db
from practice_service.main import app
from practice_service.repositories.practice_repository import PracticeSessionRepository
from practice_service.services.practice_engine import PracticeSessionEngine
from practice_service.services.question_bank import QuestionBankProvider, StaticQuestionBank

# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)

import_models()


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh in-memory schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def bank() -> QuestionBankProvider:
    """Demo bank: q1 (b), q2 (c), q3 (c)."""
    return StaticQuestionBank()


@pytest.fixture
def repository(db: Session) -> PracticeSessionRepository:
    return PracticeSessionRepository(db)


@pytest.fixture
def practice_engine(
    repository: PracticeSessionRepository,
    bank: QuestionBankProvider,
    clock: FrozenClock,
) -> PracticeSessionEngine:
    return PracticeSessionEngine(repository=repository, bank=bank, clock=clock)


@pytest.fixture
def client(db: Session, bank: QuestionBankProvider, clock: FrozenClock) -> Generator[TestClient, None, None]:
    """Test client wired to the test database, demo bank and frozen clock."""

    def override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_question_bank] = lambda: bank
    app.dependency_overrides[get_clock] = lambda: clock
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"X-User-ID": "student-1"}
