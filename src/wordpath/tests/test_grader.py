"""Tests for answer grading."""
import pytest

from wordpath.exceptions import ValidationError
from wordpath.models.progression_models import CardFace
from wordpath.services.grader import expected_text, grade, normalize_answer

CARD = CardFace(card_id=1, source="hello", target="hola")


def test_flash_expects_source() -> None:
    """Test flash cards ask for the native form."""
    assert expected_text(CARD, "flash") == "hello"


@pytest.mark.parametrize("task_kind", ["test", "dictation"])
def test_other_kinds_expect_target(task_kind: str) -> None:
    """Test tests and dictations ask for the learning form."""
    assert expected_text(CARD, task_kind) == "hola"


def test_kinds_disagree_on_same_answer() -> None:
    """Test the same answer is right for one direction only."""
    assert grade(CARD, "flash", "hola").is_correct is False
    assert grade(CARD, "test", "hola").is_correct is True
    assert grade(CARD, "dictation", "hola").is_correct is True


def test_case_and_whitespace_are_ignored() -> None:
    """Test comparison ignores case and surrounding whitespace."""
    result = grade(CARD, "test", "\t HoLa  ")
    assert result.is_correct is True
    assert result.quality == 5
    assert result.expected_text == "hola"


@pytest.mark.parametrize("answer", ["hol", "hola!", "h ola", "", None])
def test_no_partial_credit(answer) -> None:
    """Test near misses score nothing."""
    result = grade(CARD, "test", answer)
    assert result.is_correct is False
    assert result.quality == 0


def test_unknown_task_kind() -> None:
    """Test an unknown task kind is rejected."""
    with pytest.raises(ValidationError):
        grade(CARD, "essay", "hola")


def test_normalize_answer() -> None:
    """Test normalization of raw answers."""
    assert normalize_answer("  Hello ") == "hello"
    assert normalize_answer(None) == ""
