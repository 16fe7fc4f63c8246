"""Service for freezing question content in practice sessions."""

from typing import Any

from practice_service.models.practice import PracticeSession
from practice_service.services.practice_errors import InvalidQuestionError, UnknownQuestionError
from practice_service.services.question_bank import BankItem, QuestionBankProvider

MIN_CHOICES = 2


def freeze_questions(bank: QuestionBankProvider, question_ids: list[str]) -> list[dict[str, Any]]:
    """
    Freeze question content for a new session.

    The snapshot keeps review and scoring stable even if the bank item is
    edited or unpublished after the session started.

    Args:
        bank: Question bank provider
        question_ids: Ordered question ids selected for the session

    Returns:
        List of snapshot dicts, in the same order as question_ids

    Raises:
        UnknownQuestionError: If the bank cannot resolve a selected id
        InvalidQuestionError: If an item has fewer than two choices
    """
    snapshot = []
    for question_id in question_ids:
        item = bank.get_item(question_id)
        if item is None:
            raise UnknownQuestionError(details={"question_id": question_id})
        if len(item.choices) < MIN_CHOICES:
            raise InvalidQuestionError(details={"question_id": question_id})
        snapshot.append(item.to_snapshot())
    return snapshot


def get_frozen_item(
    session: PracticeSession,
    question_id: str,
    bank: QuestionBankProvider,
) -> BankItem | None:
    """
    Retrieve frozen question content.

    Strategy:
    1. Use the snapshot captured when the session was created
    2. Otherwise fall back to the live bank item (sessions created without a snapshot)

    Returns:
        BankItem, or None if neither source knows the question
    """
    for entry in session.questions_snapshot or []:
        if entry.get("id") == question_id:
            return BankItem.from_snapshot(entry)

    return bank.get_item(question_id)
