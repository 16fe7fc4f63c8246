"""Pydantic schemas for practice sessions.

The wire format is camelCase (sessionId, isTimed, ...); Python code uses the
snake_case field names.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from practice_service.models.practice import PracticeSessionStatus


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Question Schemas
# ============================================================================


class PracticeChoiceOut(CamelModel):
    id: str
    text: str


class PracticeQuestionOut(CamelModel):
    """Question as served to the student (no correct answer, no explanation)."""

    id: str
    prompt: str
    choices: list[PracticeChoiceOut]


# ============================================================================
# Session Schemas
# ============================================================================


class PracticeSessionCreate(CamelModel):
    """Request to create a practice session."""

    exam_package_id: str | None = Field(None, description="Package scope (optional)")
    timed: bool = Field(False, description="Ironman mode: one time budget for the whole session")
    count: int | None = Field(
        None, description="Number of questions (clamped to 1..50 and to the bank size)"
    )


class PracticeSessionOut(CamelModel):
    """Session view. `question` is the current question while the session is active."""

    session_id: UUID
    status: PracticeSessionStatus
    created_at: datetime
    started_at: datetime
    exam_package_id: str | None
    is_timed: bool
    time_limit_seconds: int | None = None
    time_remaining_seconds: int | None = None
    current_question_started_at: datetime | None = None
    paused_at: datetime | None = None
    finished_at: datetime | None = None
    question_timings_seconds: dict[str, int] = Field(default_factory=dict)
    target_count: int
    current_index: int
    total: int
    correct_count: int
    question: PracticeQuestionOut | None = None


class PracticeSessionListItem(CamelModel):
    """Session row in the history list."""

    session_id: UUID
    status: PracticeSessionStatus
    created_at: datetime
    last_activity_at: datetime
    exam_package_id: str | None
    is_timed: bool
    time_limit_seconds: int | None = None
    time_remaining_seconds: int | None = None
    target_count: int
    correct_count: int
    accuracy: float


class PracticeSessionListOut(CamelModel):
    """Offset-paginated session list."""

    items: list[PracticeSessionListItem]
    limit: int
    offset: int
    has_more: bool


# ============================================================================
# Answer Schemas
# ============================================================================


class PracticeAnswerSubmit(CamelModel):
    """Answer for the current question."""

    question_id: str = Field(..., min_length=1, description="Must be the question currently served")
    choice_id: str = Field(..., min_length=1, description="Selected choice id")
    ts: datetime | None = Field(None, description="Client timestamp (informational only)")


class PracticeAnswerResult(CamelModel):
    """Result of a scored answer. The explanation is disclosed immediately."""

    correct: bool
    explanation: str
    done: bool


# ============================================================================
# Summary & Review Schemas
# ============================================================================


class PracticeSessionSummaryOut(CamelModel):
    session_id: UUID
    total: int
    correct_count: int
    accuracy: float


class PracticeReviewItemOut(CamelModel):
    """One question of a finished session, with the student's answer if any."""

    index: int
    question: PracticeQuestionOut
    selected_choice_id: str | None = None
    correct: bool | None = None
    explanation: str | None = None
    time_taken_seconds: int
    correct_choice_id: str


class PracticeSessionReviewOut(CamelModel):
    session_id: UUID
    items: list[PracticeReviewItemOut]  # Ordered by question_order
