"""Answer grading for card submissions."""
from typing import Optional

from wordpath.config import TASK_KINDS, settings
from wordpath.exceptions import ValidationError
from wordpath.models.progression_models import CardFace, GradeResult


def normalize_answer(text: Optional[str]) -> str:
    """Lower-case and strip surrounding whitespace."""
    return (text or "").strip().lower()


def expected_text(card: CardFace, task_kind: str) -> str:
    """Get the text an answer is compared against.

    Flash cards ask for the native form; tests and dictations ask for the
    form in the language being learned.
    """
    if task_kind not in TASK_KINDS:
        raise ValidationError(f"Unknown task kind: {task_kind}")
    if task_kind == "flash":
        return card.source
    return card.target


def grade(card: CardFace, task_kind: str, raw_answer: Optional[str]) -> GradeResult:
    """Grade an answer. Correct answers get full quality, anything else zero."""
    expected = expected_text(card, task_kind)
    is_correct = normalize_answer(raw_answer) == normalize_answer(expected)
    return GradeResult(
        is_correct=is_correct,
        expected_text=expected,
        quality=settings.progression.max_quality if is_correct else 0,
    )
