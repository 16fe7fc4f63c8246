"""Question bank providers.

The practice engine only reads from the bank: it asks for candidate ids when
a session is created and for item content when it needs a prompt, the correct
choice or an explanation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from practice_service.core.config import settings
from practice_service.core.logging import get_logger
from practice_service.models.question_bank import BankQuestion, BankQuestionStatus

logger = get_logger(__name__)


@dataclass(frozen=True)
class BankChoiceItem:
    id: str
    text: str


@dataclass(frozen=True)
class BankItem:
    """Question content as served by a provider."""

    id: str
    prompt: str
    choices: list[BankChoiceItem] = field(default_factory=list)
    correct_choice_id: str = ""
    explanation: str = ""
    package_id: str | None = None

    def has_choice(self, choice_id: str) -> bool:
        return any(choice.id == choice_id for choice in self.choices)

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "prompt": self.prompt,
            "choices": [{"id": c.id, "text": c.text} for c in self.choices],
            "correct_choice_id": self.correct_choice_id,
            "explanation": self.explanation,
        }

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "BankItem":
        return cls(
            id=data["id"],
            prompt=data.get("prompt", ""),
            choices=[BankChoiceItem(id=c["id"], text=c.get("text", "")) for c in data.get("choices", [])],
            correct_choice_id=data.get("correct_choice_id", ""),
            explanation=data.get("explanation", ""),
        )


class QuestionBankProvider(ABC):
    """Read-only interface to the question bank."""

    @abstractmethod
    def list_candidate_ids(self, package_id: str | None, count: int) -> list[str]:
        """
        Return up to `count` candidate question ids in a stable order.

        Args:
            package_id: Package scope (None = whole bank)
            count: Maximum number of ids to return

        Returns:
            Ordered list of question ids
        """
        pass

    @abstractmethod
    def get_item(self, question_id: str) -> BankItem | None:
        """Return question content, or None if the bank does not know the id."""
        pass


class StaticQuestionBank(QuestionBankProvider):
    """In-memory bank, used for demos and tests."""

    def __init__(self, items: list[BankItem] | None = None):
        self._items = list(items) if items is not None else demo_items()
        self._by_id = {item.id: item for item in self._items}

    def list_candidate_ids(self, package_id: str | None, count: int) -> list[str]:
        ids = [
            item.id
            for item in self._items
            if package_id is None or item.package_id is None or item.package_id == package_id
        ]
        return ids[: max(count, 0)]

    def get_item(self, question_id: str) -> BankItem | None:
        return self._by_id.get(question_id)


class SqlQuestionBank(QuestionBankProvider):
    """Provider backed by the question_bank_* tables. Only PUBLISHED questions are candidates."""

    def __init__(self, db: Session):
        self.db = db

    def list_candidate_ids(self, package_id: str | None, count: int) -> list[str]:
        if count <= 0:
            return []

        query = select(BankQuestion.id).where(BankQuestion.status == BankQuestionStatus.PUBLISHED)
        if package_id:
            query = query.where(BankQuestion.package_id == package_id)
        query = query.order_by(BankQuestion.created_at, BankQuestion.id).limit(count)

        return [row[0] for row in self.db.execute(query).all()]

    def get_item(self, question_id: str) -> BankItem | None:
        question = self.db.execute(
            select(BankQuestion)
            .options(selectinload(BankQuestion.choices))
            .where(BankQuestion.id == question_id)
        ).scalar_one_or_none()

        if not question:
            return None

        return BankItem(
            id=question.id,
            prompt=question.prompt,
            choices=[BankChoiceItem(id=c.choice_key, text=c.text) for c in question.choices],
            correct_choice_id=question.correct_choice_id,
            explanation=question.explanation or "",
            package_id=question.package_id,
        )


def demo_items() -> list[BankItem]:
    """Three-question demo bank."""
    return [
        BankItem(
            id="q1",
            prompt="If x = 3, what is 2x + 1?",
            choices=[
                BankChoiceItem("a", "5"),
                BankChoiceItem("b", "7"),
                BankChoiceItem("c", "9"),
                BankChoiceItem("d", "11"),
            ],
            correct_choice_id="b",
            explanation="Substitute x = 3: 2(3) + 1 = 6 + 1 = 7.",
        ),
        BankItem(
            id="q2",
            prompt='Which is the synonym of "rapid"?',
            choices=[
                BankChoiceItem("a", "Slow"),
                BankChoiceItem("b", "Careful"),
                BankChoiceItem("c", "Quick"),
                BankChoiceItem("d", "Weak"),
            ],
            correct_choice_id="c",
            explanation='"Rapid" means fast/quick.',
        ),
        BankItem(
            id="q3",
            prompt='Choose the correct option: "She ___ to the store yesterday."',
            choices=[
                BankChoiceItem("a", "go"),
                BankChoiceItem("b", "goes"),
                BankChoiceItem("c", "went"),
                BankChoiceItem("d", "going"),
            ],
            correct_choice_id="c",
            explanation='Yesterday indicates past tense: "went".',
        ),
    ]


def get_question_bank(db: Session) -> QuestionBankProvider:
    """Get question bank provider based on configuration."""
    if settings.QUESTION_BANK_BACKEND == "static":
        logger.warning("Serving practice sessions from the static demo question bank")
        return StaticQuestionBank()

    return SqlQuestionBank(db)
