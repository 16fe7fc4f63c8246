"""Persistence for practice sessions and the answer log."""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from practice_service.core.logging import get_logger
from practice_service.models.practice import PracticeAnswer, PracticeSession, PracticeSessionStatus
from practice_service.services.practice_errors import ConcurrentUpdateError, PersistenceError

logger = get_logger(__name__)

# Columns the engine may change after creation. question_order, the snapshot
# and the timing configuration are immutable.
MUTABLE_COLUMNS = (
    "status",
    "current_index",
    "correct_count",
    "question_timings",
    "current_question_started_at",
    "paused_at",
    "finished_at",
    "last_activity_at",
)


class PracticeSessionRepository:
    """
    Session records and answer log keyed by (user_id, session_id).

    Records returned by this repository are detached from the ORM session, so
    mutating them never triggers an implicit flush. The only way to write a
    change back is save(), which is a conditional UPDATE on the stored status
    and version.
    """

    def __init__(self, db: Session):
        self.db = db

    def load(self, user_id: str, session_id: UUID) -> PracticeSession | None:
        """Load a session owned by user_id, or None."""
        try:
            record = self.db.execute(
                select(PracticeSession)
                .where(PracticeSession.id == session_id, PracticeSession.user_id == user_id)
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to load practice session {session_id}: {e}", exc_info=True)
            raise PersistenceError() from e

        if record is not None:
            self.db.expunge(record)
        return record

    def create(self, record: PracticeSession) -> PracticeSession:
        """Insert a new session and return it detached."""
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create practice session: {e}", exc_info=True)
            raise PersistenceError("failed to create session") from e

        self.db.expunge(record)
        return record

    def save(
        self,
        record: PracticeSession,
        expected_status: PracticeSessionStatus,
        answer: PracticeAnswer | None = None,
    ) -> None:
        """
        Conditionally write the mutable columns of record.

        The UPDATE only applies if the stored row still has expected_status and
        the version the record was loaded with. When answer is given it is
        appended in the same transaction, so both or neither become visible.

        Raises:
            ConcurrentUpdateError: Another request changed the row first
            PersistenceError: Storage failure
        """
        values = {name: getattr(record, name) for name in MUTABLE_COLUMNS}
        stmt = (
            update(PracticeSession)
            .where(
                PracticeSession.id == record.id,
                PracticeSession.user_id == record.user_id,
                PracticeSession.status == expected_status,
                PracticeSession.version == record.version,
            )
            .values(**values, version=record.version + 1)
            .execution_options(synchronize_session=False)
        )

        try:
            result = self.db.execute(stmt)
            applied = result.rowcount == 1
            if applied and answer is not None:
                self.db.add(answer)
            if applied:
                self.db.commit()
            else:
                self.db.rollback()
        except IntegrityError as e:
            # Duplicate (session_id, question_id): a concurrent submission won.
            self.db.rollback()
            raise ConcurrentUpdateError(details={"session_id": str(record.id)}) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save practice session {record.id}: {e}", exc_info=True)
            raise PersistenceError() from e

        if not applied:
            raise ConcurrentUpdateError(
                details={"session_id": str(record.id), "expected_status": expected_status.value}
            )

        record.version += 1
        if answer is not None:
            self.db.expunge(answer)

    def list_by_user(
        self,
        user_id: str,
        status: PracticeSessionStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[PracticeSession]:
        """List a user's sessions, most recently active first."""
        query = select(PracticeSession).where(PracticeSession.user_id == user_id)

        if status:
            query = query.where(PracticeSession.status == status)

        query = (
            query.order_by(PracticeSession.last_activity_at.desc(), PracticeSession.created_at.desc())
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )

        try:
            records = list(self.db.execute(query).scalars().all())
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to list practice sessions: {e}", exc_info=True)
            raise PersistenceError("failed to list sessions") from e

        for record in records:
            self.db.expunge(record)
        return records

    def list_answers(self, user_id: str, session_id: UUID) -> list[PracticeAnswer]:
        """Answer log of a session, oldest first."""
        try:
            return list(
                self.db.execute(
                    select(PracticeAnswer)
                    .where(PracticeAnswer.session_id == session_id, PracticeAnswer.user_id == user_id)
                    .order_by(PracticeAnswer.answered_at)
                ).scalars().all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to load answers for {session_id}: {e}", exc_info=True)
            raise PersistenceError("failed to load review answers") from e
