"""FastAPI dependencies: caller identity, clock, question bank and engine."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from practice_service.core.app_exceptions import UnauthorizedError
from practice_service.core.clock import Clock, SystemClock
from practice_service.db.session import get_db
from practice_service.repositories.practice_repository import PracticeSessionRepository
from practice_service.services import question_bank
from practice_service.services.practice_engine import PracticeSessionEngine
from practice_service.services.practice_errors import SessionNotFoundError
from practice_service.services.question_bank import QuestionBankProvider

MAX_USER_ID_LENGTH = 64

_system_clock = SystemClock()


def get_current_user_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-ID")] = None,
) -> str:
    """
    Caller identity.

    Authentication happens upstream; the gateway forwards the verified user id
    in the X-User-ID header.
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise UnauthorizedError("X-User-ID header missing")
    if len(user_id) > MAX_USER_ID_LENGTH:
        raise UnauthorizedError("X-User-ID header is invalid")
    return user_id


def get_session_id(session_id: str) -> UUID:
    """Path session id; anything that is not a UUID cannot name a session."""
    try:
        return UUID(session_id)
    except ValueError:
        raise SessionNotFoundError(details={"session_id": session_id}) from None


def get_clock() -> Clock:
    return _system_clock


def get_question_bank(db: Session = Depends(get_db)) -> QuestionBankProvider:
    return question_bank.get_question_bank(db)


def get_practice_engine(
    db: Session = Depends(get_db),
    bank: QuestionBankProvider = Depends(get_question_bank),
    clock: Clock = Depends(get_clock),
) -> PracticeSessionEngine:
    return PracticeSessionEngine(repository=PracticeSessionRepository(db), bank=bank, clock=clock)


CurrentUserId = Annotated[str, Depends(get_current_user_id)]
SessionId = Annotated[UUID, Depends(get_session_id)]
PracticeEngine = Annotated[PracticeSessionEngine, Depends(get_practice_engine)]
