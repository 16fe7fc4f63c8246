"""Practice session engine: lifecycle, timing, scoring and review."""

import uuid
from datetime import datetime
from uuid import UUID

from practice_service.core.clock import Clock, ensure_utc
from practice_service.core.config import settings
from practice_service.core.logging import get_logger
from practice_service.models.practice import PracticeAnswer, PracticeSession, PracticeSessionStatus
from practice_service.repositories.practice_repository import PracticeSessionRepository
from practice_service.schemas.practice import (
    PracticeAnswerResult,
    PracticeChoiceOut,
    PracticeQuestionOut,
    PracticeReviewItemOut,
    PracticeSessionListItem,
    PracticeSessionListOut,
    PracticeSessionOut,
    PracticeSessionReviewOut,
    PracticeSessionSummaryOut,
)
from practice_service.services.practice_errors import (
    AlreadyFinishedError,
    ConcurrentUpdateError,
    InvalidChoiceError,
    InvalidForTimedError,
    NoQuestionsAvailableError,
    NotActiveError,
    NotFinishedError,
    NotPausedError,
    QuestionMismatchError,
    SessionCompleteError,
    SessionNotFoundError,
    TimeExpiredError,
    UnknownQuestionError,
)
from practice_service.services.practice_timing import (
    accuracy,
    apply_expiry,
    credit_current_question,
    current_question_id,
    time_remaining_seconds,
)
from practice_service.services.question_bank import BankItem, QuestionBankProvider
from practice_service.services.session_freeze import freeze_questions, get_frozen_item

logger = get_logger(__name__)

ACTIVE = PracticeSessionStatus.ACTIVE
PAUSED = PracticeSessionStatus.PAUSED
FINISHED = PracticeSessionStatus.FINISHED

# Pause/resume reload and retry after losing a conditional write
WRITE_ATTEMPTS = 3


def _question_out(item: BankItem) -> PracticeQuestionOut:
    return PracticeQuestionOut(
        id=item.id,
        prompt=item.prompt,
        choices=[PracticeChoiceOut(id=c.id, text=c.text) for c in item.choices],
    )


def _optional_utc(value: datetime | None) -> datetime | None:
    return ensure_utc(value) if value is not None else None


class PracticeSessionEngine:
    """
    Drives practice sessions through their lifecycle.

    There is no background expiry job. Every public operation loads the
    record, runs _resolve_expiry() with the current clock reading and only
    then applies its own logic. All writes go through the repository's
    conditional save.
    """

    def __init__(
        self,
        repository: PracticeSessionRepository,
        bank: QuestionBankProvider,
        clock: Clock,
        seconds_per_question: int | None = None,
        default_count: int | None = None,
        max_count: int | None = None,
        list_default_limit: int | None = None,
        list_max_limit: int | None = None,
    ):
        self.repository = repository
        self.bank = bank
        self.clock = clock
        self.seconds_per_question = seconds_per_question or settings.PRACTICE_SECONDS_PER_QUESTION
        self.default_count = default_count or settings.PRACTICE_DEFAULT_QUESTION_COUNT
        self.max_count = max_count or settings.PRACTICE_MAX_QUESTION_COUNT
        self.list_default_limit = list_default_limit or settings.PRACTICE_LIST_DEFAULT_LIMIT
        self.list_max_limit = list_max_limit or settings.PRACTICE_LIST_MAX_LIMIT

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, user_id: str, session_id: UUID) -> PracticeSession:
        """Get session and verify ownership."""
        record = self.repository.load(user_id, session_id)
        if record is None:
            raise SessionNotFoundError(details={"session_id": str(session_id)})
        return record

    def _resolve_expiry(self, record: PracticeSession, now: datetime) -> tuple[PracticeSession, bool]:
        """
        Apply lazy expiry to a loaded record and persist the transition.

        Returns:
            (record, expired) where record reflects the stored state and
            expired is True if the budget ran out on this read (whichever
            request won the conditional write)
        """
        if not apply_expiry(record, now):
            return record, False

        try:
            self.repository.save(record, expected_status=ACTIVE)
        except ConcurrentUpdateError:
            # Someone else wrote first; their write already credited the time.
            logger.warning(
                "Expiry lost conditional write, reloading",
                extra={"session_id": str(record.id), "user_id": record.user_id},
            )
            fresh, expired = self._resolve_expiry(self._load(record.user_id, record.id), now)
            # Finished short of target_count can only mean the budget ran out
            return fresh, expired or (fresh.status == FINISHED and not fresh.is_complete)

        logger.info(
            "Practice session expired",
            extra={
                "session_id": str(record.id),
                "user_id": record.user_id,
                "current_index": record.current_index,
                "time_limit_seconds": record.time_limit_seconds,
            },
        )
        return record, True

    def _current_question(self, record: PracticeSession) -> PracticeQuestionOut | None:
        question_id = current_question_id(record)
        if question_id is None:
            return None
        item = get_frozen_item(record, question_id, self.bank)
        if item is None:
            logger.warning(
                "Current question missing from snapshot and bank",
                extra={"session_id": str(record.id), "question_id": question_id},
            )
            return None
        return _question_out(item)

    def _to_view(
        self,
        record: PracticeSession,
        now: datetime,
        include_question: bool | None = None,
    ) -> PracticeSessionOut:
        if include_question is None:
            include_question = record.status == ACTIVE

        return PracticeSessionOut(
            session_id=record.id,
            status=record.status,
            created_at=ensure_utc(record.created_at),
            started_at=ensure_utc(record.started_at),
            exam_package_id=record.package_id,
            is_timed=record.is_timed,
            time_limit_seconds=record.time_limit_seconds if record.is_timed else None,
            time_remaining_seconds=time_remaining_seconds(record, now),
            current_question_started_at=_optional_utc(record.current_question_started_at),
            paused_at=_optional_utc(record.paused_at),
            finished_at=_optional_utc(record.finished_at),
            question_timings_seconds=dict(record.question_timings or {}),
            target_count=record.target_count,
            current_index=record.current_index,
            total=record.target_count,
            correct_count=record.correct_count,
            question=self._current_question(record) if include_question else None,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_session(
        self,
        user_id: str,
        package_id: str | None = None,
        timed: bool = False,
        count: int | None = None,
    ) -> PracticeSessionOut:
        """
        Create a new practice session.

        Args:
            user_id: Owner
            package_id: Package scope (None = whole bank)
            timed: Ironman mode
            count: Requested size (default 10, clamped to 1..max_count and to the bank)

        Returns:
            Session view with the first question

        Raises:
            NoQuestionsAvailableError: If the bank has no candidates
        """
        now = self.clock.now()

        requested = self.default_count if count is None else count
        requested = max(1, min(requested, self.max_count))

        # Duplicate ids would break index-addressed submission
        question_ids = list(dict.fromkeys(self.bank.list_candidate_ids(package_id, requested)))[:requested]
        if not question_ids:
            raise NoQuestionsAvailableError(details={"exam_package_id": package_id})

        snapshot = freeze_questions(self.bank, question_ids)
        target_count = len(question_ids)

        record = PracticeSession(
            id=uuid.uuid4(),
            user_id=user_id,
            package_id=package_id,
            is_timed=timed,
            time_limit_seconds=target_count * self.seconds_per_question if timed else None,
            target_count=target_count,
            question_order=question_ids,
            questions_snapshot=snapshot,
            current_index=0,
            correct_count=0,
            status=ACTIVE,
            question_timings={},
            created_at=now,
            started_at=now,
            current_question_started_at=now,
            last_activity_at=now,
            version=1,
        )
        record = self.repository.create(record)

        logger.info(
            "Practice session created",
            extra={
                "session_id": str(record.id),
                "user_id": user_id,
                "exam_package_id": package_id,
                "is_timed": timed,
                "requested_count": count,
                "target_count": target_count,
            },
        )
        return self._to_view(record, now)

    def get_session(self, user_id: str, session_id: UUID) -> PracticeSessionOut:
        """Get session state. Applies lazy expiry."""
        now = self.clock.now()
        record, _ = self._resolve_expiry(self._load(user_id, session_id), now)
        return self._to_view(record, now)

    def list_sessions(
        self,
        user_id: str,
        status: PracticeSessionStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> PracticeSessionListOut:
        """
        List a user's sessions, most recently active first.

        Timed active sessions are expired on the way out so the history never
        shows a stale "in progress" entry.
        """
        now = self.clock.now()
        limit = self.list_default_limit if limit is None else limit
        limit = max(1, min(limit, self.list_max_limit))
        offset = max(0, offset)

        # Fetch one extra row to know whether another page exists
        records = self.repository.list_by_user(user_id, status, limit + 1, offset)
        has_more = len(records) > limit

        items = []
        for record in records[:limit]:
            if record.is_timed and record.status == ACTIVE:
                record, _ = self._resolve_expiry(record, now)
            items.append(
                PracticeSessionListItem(
                    session_id=record.id,
                    status=record.status,
                    created_at=ensure_utc(record.created_at),
                    last_activity_at=ensure_utc(record.last_activity_at),
                    exam_package_id=record.package_id,
                    is_timed=record.is_timed,
                    time_limit_seconds=record.time_limit_seconds if record.is_timed else None,
                    time_remaining_seconds=time_remaining_seconds(record, now),
                    target_count=record.target_count,
                    correct_count=record.correct_count,
                    accuracy=accuracy(record.correct_count, record.target_count),
                )
            )

        return PracticeSessionListOut(items=items, limit=limit, offset=offset, has_more=has_more)

    def pause_session(self, user_id: str, session_id: UUID) -> PracticeSessionOut:
        """
        Pause an untimed session.

        Credits the time spent so far on the current question. Pausing an
        already paused session is a no-op. A lost conditional write reloads
        and re-runs the checks, so a concurrent answer is credited correctly.
        """
        now = self.clock.now()

        for attempt in range(1, WRITE_ATTEMPTS + 1):
            record, _ = self._resolve_expiry(self._load(user_id, session_id), now)

            if record.is_timed:
                raise InvalidForTimedError("pause is only available for untimed sessions")
            if record.status == FINISHED:
                raise AlreadyFinishedError()
            if record.status == PAUSED:
                return self._to_view(record, now)
            if record.status != ACTIVE:
                raise NotActiveError()

            credit_current_question(record, now)
            record.status = PAUSED
            record.paused_at = now
            record.last_activity_at = now

            try:
                self.repository.save(record, expected_status=ACTIVE)
            except ConcurrentUpdateError:
                if attempt == WRITE_ATTEMPTS:
                    raise
                logger.warning(
                    "Pause lost conditional write, retrying",
                    extra={"session_id": str(session_id), "user_id": user_id, "attempt": attempt},
                )
                continue

            logger.info(
                "Practice session paused",
                extra={"session_id": str(record.id), "user_id": user_id, "current_index": record.current_index},
            )
            return self._to_view(record, now)

    def resume_session(self, user_id: str, session_id: UUID) -> PracticeSessionOut:
        """Resume a paused session. Time spent paused is never counted."""
        now = self.clock.now()

        for attempt in range(1, WRITE_ATTEMPTS + 1):
            record, _ = self._resolve_expiry(self._load(user_id, session_id), now)

            if record.is_timed:
                raise InvalidForTimedError("resume is only available for untimed sessions")
            if record.status == FINISHED:
                raise AlreadyFinishedError()
            if record.status != PAUSED:
                raise NotPausedError()

            record.status = ACTIVE
            record.paused_at = None
            record.current_question_started_at = now
            record.last_activity_at = now

            try:
                self.repository.save(record, expected_status=PAUSED)
            except ConcurrentUpdateError:
                if attempt == WRITE_ATTEMPTS:
                    raise
                logger.warning(
                    "Resume lost conditional write, retrying",
                    extra={"session_id": str(session_id), "user_id": user_id, "attempt": attempt},
                )
                continue

            logger.info(
                "Practice session resumed",
                extra={"session_id": str(record.id), "user_id": user_id, "current_index": record.current_index},
            )
            return self._to_view(record, now)

    def submit_answer(
        self,
        user_id: str,
        session_id: UUID,
        question_id: str,
        choice_id: str,
    ) -> PracticeAnswerResult:
        """
        Score the answer to the current question and advance.

        Not idempotent: it scores state and appends to the answer log, so it
        is never retried after a conflict or an ambiguous storage failure.

        Raises:
            SessionNotFoundError, TimeExpiredError, NotActiveError,
            SessionCompleteError, QuestionMismatchError, UnknownQuestionError,
            InvalidChoiceError, ConcurrentUpdateError
        """
        now = self.clock.now()
        record, expired = self._resolve_expiry(self._load(user_id, session_id), now)

        if expired:
            # The in-flight answer is discarded, not scored.
            raise TimeExpiredError(details={"session_id": str(session_id)})
        if record.status == PAUSED:
            raise NotActiveError("session is paused")
        if record.status == FINISHED:
            if record.is_complete:
                raise SessionCompleteError()
            raise NotActiveError()
        if record.is_complete:
            raise SessionCompleteError()

        expected_question_id = current_question_id(record)
        if question_id != expected_question_id:
            raise QuestionMismatchError(
                details={"expected_question_id": expected_question_id, "question_id": question_id}
            )

        item = get_frozen_item(record, expected_question_id, self.bank)
        if item is None:
            raise UnknownQuestionError(details={"question_id": expected_question_id})
        if not item.has_choice(choice_id):
            raise InvalidChoiceError(details={"question_id": expected_question_id, "choice_id": choice_id})

        is_correct = choice_id == item.correct_choice_id

        credit_current_question(record, now)
        if is_correct:
            record.correct_count += 1
        record.current_index += 1
        record.current_question_started_at = now
        record.last_activity_at = now
        if record.is_complete:
            record.status = FINISHED
            record.finished_at = now

        answer = PracticeAnswer(
            id=uuid.uuid4(),
            session_id=record.id,
            user_id=user_id,
            question_id=expected_question_id,
            choice_id=choice_id,
            correct=is_correct,
            explanation=item.explanation,
            answered_at=now,
        )
        self.repository.save(record, expected_status=ACTIVE, answer=answer)

        done = record.status == FINISHED
        logger.info(
            "Practice answer submitted",
            extra={
                "session_id": str(record.id),
                "user_id": user_id,
                "question_id": expected_question_id,
                "correct": is_correct,
                "current_index": record.current_index,
                "done": done,
            },
        )
        if done:
            logger.info(
                "Practice session finished",
                extra={
                    "session_id": str(record.id),
                    "user_id": user_id,
                    "correct_count": record.correct_count,
                    "target_count": record.target_count,
                },
            )
        return PracticeAnswerResult(correct=is_correct, explanation=item.explanation, done=done)

    def get_summary(self, user_id: str, session_id: UUID) -> PracticeSessionSummaryOut:
        """Score summary (accuracy over the full session size)."""
        now = self.clock.now()
        record, _ = self._resolve_expiry(self._load(user_id, session_id), now)

        return PracticeSessionSummaryOut(
            session_id=record.id,
            total=record.target_count,
            correct_count=record.correct_count,
            accuracy=accuracy(record.correct_count, record.target_count),
        )

    def get_review(self, user_id: str, session_id: UUID) -> PracticeSessionReviewOut:
        """
        Rebuild the review of a finished session.

        Derived entirely from question_order, question_timings, the answer log
        and the frozen question content; nothing is stored for review.
        """
        now = self.clock.now()
        record, _ = self._resolve_expiry(self._load(user_id, session_id), now)

        if record.status != FINISHED:
            raise NotFinishedError()

        answers = {a.question_id: a for a in self.repository.list_answers(user_id, record.id)}
        timings = record.question_timings or {}

        items = []
        for index, question_id in enumerate(record.question_order):
            item = get_frozen_item(record, question_id, self.bank)
            if item is None:
                raise UnknownQuestionError("unknown question in session", details={"question_id": question_id})

            answer = answers.get(question_id)
            items.append(
                PracticeReviewItemOut(
                    index=index,
                    question=_question_out(item),
                    selected_choice_id=answer.choice_id if answer else None,
                    correct=answer.correct if answer else None,
                    explanation=answer.explanation if answer else None,
                    time_taken_seconds=int(timings.get(question_id, 0)),
                    correct_choice_id=item.correct_choice_id,
                )
            )

        return PracticeSessionReviewOut(session_id=record.id, items=items)
