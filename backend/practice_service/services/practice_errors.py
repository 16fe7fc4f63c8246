"""Practice session errors.

Every error carries a stable code so clients can branch on it (for example
render a dedicated "time's up" screen for TIME_EXPIRED).
"""

from fastapi import status

from practice_service.core.app_exceptions import AppError


class PracticeError(AppError):
    """Base class for practice-session errors (400 unless overridden)."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "PRACTICE_ERROR"
    default_message = "Practice session error"


class SessionNotFoundError(PracticeError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "SESSION_NOT_FOUND"
    default_message = "session not found"


class InvalidForTimedError(PracticeError):
    code = "INVALID_FOR_TIMED"
    default_message = "pause and resume are only available for untimed sessions"


class AlreadyFinishedError(PracticeError):
    code = "ALREADY_FINISHED"
    default_message = "session is finished"


class NotActiveError(PracticeError):
    code = "NOT_ACTIVE"
    default_message = "session not active"


class NotPausedError(PracticeError):
    code = "NOT_PAUSED"
    default_message = "session is not paused"


class SessionCompleteError(PracticeError):
    code = "SESSION_COMPLETE"
    default_message = "session is complete"


class QuestionMismatchError(PracticeError):
    code = "QUESTION_MISMATCH"
    default_message = "questionId mismatch"


class UnknownQuestionError(PracticeError):
    code = "UNKNOWN_QUESTION"
    default_message = "unknown question"


class InvalidChoiceError(PracticeError):
    code = "INVALID_CHOICE"
    default_message = "invalid choice"


class TimeExpiredError(PracticeError):
    code = "TIME_EXPIRED"
    default_message = "time is up"


class NotFinishedError(PracticeError):
    code = "NOT_FINISHED"
    default_message = "review is only available for finished sessions"


class NoQuestionsAvailableError(PracticeError):
    code = "NO_QUESTIONS_AVAILABLE"
    default_message = "no published questions available for this package"


class ConcurrentUpdateError(PracticeError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONCURRENT_UPDATE"
    default_message = "session was modified by another request"


class InvalidQuestionError(PracticeError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INVALID_QUESTION"
    default_message = "question has insufficient choices"


class PersistenceError(PracticeError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "PERSISTENCE_ERROR"
    default_message = "failed to persist practice session"
