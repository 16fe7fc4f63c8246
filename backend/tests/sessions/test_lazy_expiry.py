"""Tests for lazy expiry of timed sessions and conditional writes."""

import uuid
from datetime import timedelta

import pytest

from practice_service.core.clock import FrozenClock
from practice_service.models.practice import PracticeAnswer, PracticeSessionStatus
from practice_service.repositories.practice_repository import PracticeSessionRepository
from practice_service.services.practice_engine import WRITE_ATTEMPTS, PracticeSessionEngine
from practice_service.services.practice_errors import (
    ConcurrentUpdateError,
    NotActiveError,
    NotPausedError,
    SessionCompleteError,
    TimeExpiredError,
)

USER = "student-1"


def test_timed_session_expires_on_read(practice_engine: PracticeSessionEngine, clock: FrozenClock) -> None:
    """Two-question ironman read at 125s: finished, 120s credited to q1, nothing answered."""
    created = practice_engine.create_session(USER, timed=True, count=2)
    clock.advance(125)

    view = practice_engine.get_session(USER, created.session_id)

    assert view.status == PracticeSessionStatus.FINISHED
    assert view.question_timings_seconds == {"q1": 120}
    assert view.current_index == 0
    assert view.correct_count == 0
    assert view.finished_at == created.started_at + timedelta(seconds=120)
    assert view.time_remaining_seconds is None
    assert view.question is None


def test_repeated_reads_do_not_recredit(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
    clock: FrozenClock,
) -> None:
    session_id = practice_engine.create_session(USER, timed=True, count=2).session_id
    clock.advance(125)
    practice_engine.get_session(USER, session_id)
    version = repository.load(USER, session_id).version

    clock.advance(600)
    view = practice_engine.get_session(USER, session_id)
    practice_engine.list_sessions(USER)
    practice_engine.get_summary(USER, session_id)

    assert view.question_timings_seconds == {"q1": 120}
    assert repository.load(USER, session_id).version == version


def test_submit_after_deadline_is_rejected(practice_engine: PracticeSessionEngine, clock: FrozenClock) -> None:
    session_id = practice_engine.create_session(USER, timed=True, count=2).session_id
    clock.advance(125)

    with pytest.raises(TimeExpiredError) as exc_info:
        practice_engine.submit_answer(USER, session_id, "q1", "b")
    assert exc_info.value.code == "TIME_EXPIRED"

    # The answer was discarded
    view = practice_engine.get_session(USER, session_id)
    assert view.current_index == 0
    assert view.correct_count == 0

    # Once finished, further submissions are plain state errors
    with pytest.raises(NotActiveError):
        practice_engine.submit_answer(USER, session_id, "q1", "b")


def test_submit_at_exact_deadline_is_expired(practice_engine: PracticeSessionEngine, clock: FrozenClock) -> None:
    session_id = practice_engine.create_session(USER, timed=True, count=1).session_id
    clock.advance(60)

    with pytest.raises(TimeExpiredError):
        practice_engine.submit_answer(USER, session_id, "q1", "b")


def test_time_remaining_counts_down(practice_engine: PracticeSessionEngine, clock: FrozenClock) -> None:
    session_id = practice_engine.create_session(USER, timed=True, count=2).session_id

    clock.advance(30)
    practice_engine.submit_answer(USER, session_id, "q1", "b")
    clock.advance(45)

    view = practice_engine.get_session(USER, session_id)
    assert view.time_remaining_seconds == 45
    assert view.question_timings_seconds == {"q1": 30}


def test_expiry_after_answering_some_questions(practice_engine: PracticeSessionEngine, clock) -> None:
    session_id = practice_engine.create_session(USER, timed=True, count=3).session_id

    clock.advance(50)
    practice_engine.submit_answer(USER, session_id, "q1", "b")
    clock.advance(400)

    view = practice_engine.get_session(USER, session_id)
    assert view.status == PracticeSessionStatus.FINISHED
    assert view.question_timings_seconds == {"q1": 50, "q2": 130}

    review = practice_engine.get_review(USER, session_id)
    assert [item.selected_choice_id for item in review.items] == ["b", None, None]
    assert [item.correct for item in review.items] == [True, None, None]
    assert [item.time_taken_seconds for item in review.items] == [50, 130, 0]


def test_list_expires_timed_sessions(practice_engine: PracticeSessionEngine, clock: FrozenClock) -> None:
    session_id = practice_engine.create_session(USER, timed=True, count=1).session_id
    clock.advance(61)

    page = practice_engine.list_sessions(USER)

    assert page.items[0].session_id == session_id
    assert page.items[0].status == PracticeSessionStatus.FINISHED
    assert page.items[0].time_remaining_seconds is None
    assert practice_engine.get_session(USER, session_id).question_timings_seconds == {"q1": 60}


def test_list_reports_time_remaining_for_active_timed(practice_engine, clock: FrozenClock) -> None:
    practice_engine.create_session(USER, timed=True, count=2)
    clock.advance(20)

    item = practice_engine.list_sessions(USER).items[0]

    assert item.status == PracticeSessionStatus.ACTIVE
    assert item.time_remaining_seconds == 100


def test_stale_expiry_reloads_instead_of_double_crediting(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
    clock: FrozenClock,
) -> None:
    session_id = practice_engine.create_session(USER, timed=True, count=2).session_id
    stale = repository.load(USER, session_id)

    clock.advance(125)
    # Another request expires the session first
    practice_engine.get_session(USER, session_id)

    record, expired = practice_engine._resolve_expiry(stale, clock.now())

    assert expired is True
    assert record.status == PracticeSessionStatus.FINISHED
    assert record.question_timings == {"q1": 120}
    assert repository.load(USER, session_id).question_timings == {"q1": 120}


# ============================================================================
# Conditional writes
# ============================================================================


def test_stale_save_raises_conflict(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
    clock: FrozenClock,
) -> None:
    session_id = practice_engine.create_session(USER, count=3).session_id
    first = repository.load(USER, session_id)
    second = repository.load(USER, session_id)

    first.current_index = 1
    repository.save(first, expected_status=PracticeSessionStatus.ACTIVE)

    second.current_index = 2
    with pytest.raises(ConcurrentUpdateError) as exc_info:
        repository.save(second, expected_status=PracticeSessionStatus.ACTIVE)
    assert exc_info.value.status_code == 409

    assert repository.load(USER, session_id).current_index == 1


def test_save_with_wrong_expected_status_raises_conflict(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
) -> None:
    session_id = practice_engine.create_session(USER, count=3).session_id
    record = repository.load(USER, session_id)

    with pytest.raises(ConcurrentUpdateError):
        repository.save(record, expected_status=PracticeSessionStatus.PAUSED)


def test_conflicting_answer_is_not_recorded(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
    clock: FrozenClock,
) -> None:
    session_id = practice_engine.create_session(USER, count=3).session_id
    stale = repository.load(USER, session_id)

    clock.advance(5)
    practice_engine.submit_answer(USER, session_id, "q1", "b")

    stale.current_index = 1
    answer = PracticeAnswer(
        id=uuid.uuid4(),
        session_id=session_id,
        user_id=USER,
        question_id="q1",
        choice_id="a",
        correct=False,
        explanation="",
        answered_at=clock.now(),
    )
    with pytest.raises(ConcurrentUpdateError):
        repository.save(stale, expected_status=PracticeSessionStatus.ACTIVE, answer=answer)

    answers = repository.list_answers(USER, session_id)
    assert [(a.question_id, a.choice_id) for a in answers] == [("q1", "b")]


def test_successful_save_bumps_version(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
) -> None:
    session_id = practice_engine.create_session(USER, count=3).session_id
    record = repository.load(USER, session_id)
    assert record.version == 1

    repository.save(record, expected_status=PracticeSessionStatus.ACTIVE)

    assert record.version == 2
    assert repository.load(USER, session_id).version == 2


# ============================================================================
# Recovery after a lost conditional write
# ============================================================================


def serve_stale_load_once(monkeypatch, repository: PracticeSessionRepository, stale) -> None:
    """Make the next repository.load() return `stale`, as if it raced another request."""
    real_load = repository.load
    pending = [stale]

    def load(user_id, session_id):
        if pending:
            return pending.pop()
        return real_load(user_id, session_id)

    monkeypatch.setattr(repository, "load", load)


def test_expiry_racing_normal_completion_reports_complete(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
    clock: FrozenClock,
    monkeypatch,
) -> None:
    session_id = practice_engine.create_session(USER, timed=True, count=1).session_id
    stale = repository.load(USER, session_id)

    clock.advance(30)
    assert practice_engine.submit_answer(USER, session_id, "q1", "b").done is True

    clock.advance(31)
    serve_stale_load_once(monkeypatch, repository, stale)
    with pytest.raises(SessionCompleteError):
        practice_engine.submit_answer(USER, session_id, "q1", "b")

    view = practice_engine.get_session(USER, session_id)
    assert view.correct_count == 1
    assert view.question_timings_seconds == {"q1": 30}


def test_stale_expiry_is_not_reported_after_normal_completion(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
    clock: FrozenClock,
) -> None:
    session_id = practice_engine.create_session(USER, timed=True, count=1).session_id
    stale = repository.load(USER, session_id)

    clock.advance(30)
    practice_engine.submit_answer(USER, session_id, "q1", "b")
    clock.advance(31)

    record, expired = practice_engine._resolve_expiry(stale, clock.now())

    assert expired is False
    assert record.status == PracticeSessionStatus.FINISHED
    assert record.is_complete


def test_stale_pause_after_concurrent_answer(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
    clock: FrozenClock,
    monkeypatch,
) -> None:
    session_id = practice_engine.create_session(USER, count=3).session_id
    stale = repository.load(USER, session_id)

    clock.advance(10)
    practice_engine.submit_answer(USER, session_id, "q1", "b")
    clock.advance(5)
    serve_stale_load_once(monkeypatch, repository, stale)

    view = practice_engine.pause_session(USER, session_id)

    assert view.status == PracticeSessionStatus.PAUSED
    assert view.current_index == 1
    # Credit goes to the question actually being served
    assert view.question_timings_seconds == {"q1": 10, "q2": 5}


def test_stale_pause_after_concurrent_pause(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
    clock: FrozenClock,
    monkeypatch,
) -> None:
    session_id = practice_engine.create_session(USER, count=3).session_id
    stale = repository.load(USER, session_id)

    clock.advance(10)
    first = practice_engine.pause_session(USER, session_id)
    clock.advance(10)
    serve_stale_load_once(monkeypatch, repository, stale)

    second = practice_engine.pause_session(USER, session_id)

    assert second.status == PracticeSessionStatus.PAUSED
    assert second.question_timings_seconds == {"q1": 10}
    assert second.paused_at == first.paused_at


def test_stale_resume_after_concurrent_resume(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
    clock: FrozenClock,
    monkeypatch,
) -> None:
    session_id = practice_engine.create_session(USER, count=3).session_id
    practice_engine.pause_session(USER, session_id)
    stale = repository.load(USER, session_id)

    practice_engine.resume_session(USER, session_id)
    serve_stale_load_once(monkeypatch, repository, stale)

    with pytest.raises(NotPausedError):
        practice_engine.resume_session(USER, session_id)


def test_stale_resume_after_pause_cycle(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
    clock: FrozenClock,
    monkeypatch,
) -> None:
    session_id = practice_engine.create_session(USER, count=3).session_id
    practice_engine.pause_session(USER, session_id)
    stale = repository.load(USER, session_id)

    # Resume and pause again elsewhere: still paused, but a newer version
    practice_engine.resume_session(USER, session_id)
    clock.advance(4)
    practice_engine.pause_session(USER, session_id)
    clock.advance(100)
    serve_stale_load_once(monkeypatch, repository, stale)

    view = practice_engine.resume_session(USER, session_id)

    assert view.status == PracticeSessionStatus.ACTIVE
    assert view.current_question_started_at == clock.now()
    assert repository.load(USER, session_id).question_timings == {"q1": 4}


def test_pause_gives_up_after_repeated_conflicts(
    practice_engine: PracticeSessionEngine,
    repository: PracticeSessionRepository,
    monkeypatch,
) -> None:
    session_id = practice_engine.create_session(USER, count=3).session_id
    attempts = []

    def always_conflict(record, expected_status, answer=None):
        attempts.append(expected_status)
        raise ConcurrentUpdateError()

    monkeypatch.setattr(repository, "save", always_conflict)

    with pytest.raises(ConcurrentUpdateError):
        practice_engine.pause_session(USER, session_id)
    assert attempts == [PracticeSessionStatus.ACTIVE] * WRITE_ATTEMPTS
