"""Practice session endpoints."""

from fastapi import APIRouter, Query

from practice_service.core.dependencies import CurrentUserId, PracticeEngine, SessionId
from practice_service.models.practice import PracticeSessionStatus
from practice_service.schemas.practice import (
    PracticeAnswerResult,
    PracticeAnswerSubmit,
    PracticeSessionCreate,
    PracticeSessionListOut,
    PracticeSessionOut,
    PracticeSessionReviewOut,
    PracticeSessionSummaryOut,
)

router = APIRouter()


@router.get("", response_model=PracticeSessionListOut)
def list_practice_sessions(
    engine: PracticeEngine,
    user_id: CurrentUserId,
    status: PracticeSessionStatus | None = Query(None, description="Filter by status"),
    limit: int | None = Query(None, description="Page size (default 20, clamped to 1..100)"),
    offset: int = Query(0, description="Rows to skip (negative values become 0)"),
):
    """List the caller's practice sessions, most recently active first."""
    return engine.list_sessions(user_id, status=status, limit=limit, offset=offset)


@router.post("", response_model=PracticeSessionOut)
def create_practice_session(
    payload: PracticeSessionCreate,
    engine: PracticeEngine,
    user_id: CurrentUserId,
):
    """
    Create a practice session.

    Questions are selected and frozen at creation time. Timed (ironman)
    sessions get one budget of 60 seconds per question.
    """
    return engine.create_session(
        user_id,
        package_id=payload.exam_package_id,
        timed=payload.timed,
        count=payload.count,
    )


@router.get("/{session_id}", response_model=PracticeSessionOut)
def get_practice_session(session_id: SessionId, engine: PracticeEngine, user_id: CurrentUserId):
    """Get session state and the current question."""
    return engine.get_session(user_id, session_id)


@router.post("/{session_id}/pause", response_model=PracticeSessionOut)
def pause_practice_session(session_id: SessionId, engine: PracticeEngine, user_id: CurrentUserId):
    """Pause an untimed session."""
    return engine.pause_session(user_id, session_id)


@router.post("/{session_id}/resume", response_model=PracticeSessionOut)
def resume_practice_session(session_id: SessionId, engine: PracticeEngine, user_id: CurrentUserId):
    """Resume a paused session."""
    return engine.resume_session(user_id, session_id)


@router.post("/{session_id}/answers", response_model=PracticeAnswerResult)
def submit_practice_answer(
    session_id: SessionId,
    payload: PracticeAnswerSubmit,
    engine: PracticeEngine,
    user_id: CurrentUserId,
):
    """Answer the current question. The explanation is returned immediately."""
    return engine.submit_answer(user_id, session_id, payload.question_id, payload.choice_id)


@router.get("/{session_id}/summary", response_model=PracticeSessionSummaryOut)
def get_practice_summary(session_id: SessionId, engine: PracticeEngine, user_id: CurrentUserId):
    return engine.get_summary(user_id, session_id)


@router.get("/{session_id}/review", response_model=PracticeSessionReviewOut)
def get_practice_review(session_id: SessionId, engine: PracticeEngine, user_id: CurrentUserId):
    """Review a finished session."""
    return engine.get_review(user_id, session_id)
