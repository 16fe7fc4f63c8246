#!/usr/bin/env python3
"""Script to load the demo question bank into the database as PUBLISHED questions."""

import sys
from pathlib import Path

# Add parent directory to path to import practice_service modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.orm import Session

from practice_service.core.logging import get_logger, setup_logging
from practice_service.db.base import Base, import_models
from practice_service.db.engine import engine
from practice_service.db.session import session_scope
from practice_service.models.question_bank import BankChoice, BankQuestion, BankQuestionStatus
from practice_service.services.question_bank import BankItem, demo_items

logger = get_logger(__name__)


def seed_items(db: Session, items: list[BankItem]) -> int:
    """Insert items that are not in the bank yet. Returns the number inserted."""
    inserted = 0
    for item in items:
        if db.get(BankQuestion, item.id) is not None:
            logger.info(f"Question {item.id} already present, skipping")
            continue

        question = BankQuestion(
            id=item.id,
            package_id=item.package_id,
            prompt=item.prompt,
            explanation=item.explanation,
            correct_choice_id=item.correct_choice_id,
            status=BankQuestionStatus.PUBLISHED,
        )
        question.choices = [
            BankChoice(choice_key=choice.id, text=choice.text, order_index=index)
            for index, choice in enumerate(item.choices)
        ]
        db.add(question)
        db.flush()
        inserted += 1
    return inserted


def seed_question_bank() -> None:
    """Create tables if needed and seed the demo bank."""
    import_models()
    Base.metadata.create_all(bind=engine)

    with session_scope() as db:
        inserted = seed_items(db, demo_items())
    logger.info(f"Seeded {inserted} question(s)")


if __name__ == "__main__":
    setup_logging()
    print("Seeding demo question bank...")
    seed_question_bank()
