"""Session factory, request-scoped dependency and a transactional scope for scripts."""

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from practice_service.db.engine import engine

# Records are detached by the repository, so nothing may expire on commit
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on success, roll back on error, always close."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
