"""Timing and lazy-expiry rules for practice sessions.

Ironman sessions are not expired by a background job. Every entry point calls
apply_expiry() with the current time before it does anything else; these
helpers are pure functions of (session, now) and only mutate the in-memory
record. Persisting the result is the engine's job.
"""

from datetime import datetime, timedelta

from practice_service.core.clock import ensure_utc, whole_seconds_between
from practice_service.models.practice import PracticeSession, PracticeSessionStatus


def session_deadline(session: PracticeSession) -> datetime | None:
    """Instant the time budget runs out, or None for untimed sessions."""
    if not session.is_timed or session.time_limit_seconds is None:
        return None
    return ensure_utc(session.started_at) + timedelta(seconds=session.time_limit_seconds)


def elapsed_seconds(session: PracticeSession, now: datetime) -> int:
    """Whole seconds since the session started."""
    return whole_seconds_between(session.started_at, now)


def is_expired(session: PracticeSession, now: datetime) -> bool:
    """True if an active timed session has used up its budget."""
    if session.status != PracticeSessionStatus.ACTIVE:
        return False
    if not session.is_timed or session.time_limit_seconds is None:
        return False
    return elapsed_seconds(session, now) >= session.time_limit_seconds


def current_question_id(session: PracticeSession) -> str | None:
    """Id of the question being served, None once every question was answered."""
    order = session.question_order or []
    if 0 <= session.current_index < len(order):
        return order[session.current_index]
    return None


def seconds_spent_on_current(
    session: PracticeSession,
    now: datetime,
    until: datetime | None = None,
) -> int:
    """Seconds since the session anchor, never negative, optionally capped at `until`."""
    end = ensure_utc(now)
    if until is not None:
        end = min(end, ensure_utc(until))
    return max(0, whole_seconds_between(session.current_question_started_at, end))


def credit_current_question(
    session: PracticeSession,
    now: datetime,
    until: datetime | None = None,
) -> int:
    """
    Add the time spent on the current question to question_timings.

    Args:
        session: Session record (mutated in place)
        now: Current time
        until: Optional cap (the deadline for expiring sessions)

    Returns:
        Seconds credited (0 when there is no current question)
    """
    question_id = current_question_id(session)
    if question_id is None:
        return 0

    spent = seconds_spent_on_current(session, now, until)
    timings = dict(session.question_timings or {})
    timings[question_id] = timings.get(question_id, 0) + spent
    session.question_timings = timings
    return spent


def apply_expiry(session: PracticeSession, now: datetime) -> bool:
    """
    Force-finish a timed session whose budget ran out.

    Credits the partial time on the current question (never past the
    deadline) and moves the record to FINISHED.

    Returns:
        True if the record transitioned, False if nothing changed
    """
    if not is_expired(session, now):
        return False

    deadline = session_deadline(session)
    credit_current_question(session, now, until=deadline)
    session.status = PracticeSessionStatus.FINISHED
    session.finished_at = deadline
    session.last_activity_at = now
    return True


def time_remaining_seconds(session: PracticeSession, now: datetime) -> int | None:
    """Seconds left on the budget for active timed sessions, None otherwise."""
    if not session.is_timed or session.time_limit_seconds is None:
        return None
    if session.status != PracticeSessionStatus.ACTIVE:
        return None
    return max(0, session.time_limit_seconds - elapsed_seconds(session, now))


def accuracy(correct_count: int, total: int) -> float:
    """Share of correct answers over the session size (0.0 for empty sessions)."""
    if total <= 0:
        return 0.0
    return correct_count / total
