"""Input validation and attempt-to-grade mapping."""

from .config import GRADE_AGAIN, GRADE_HARD, GRADE_GOOD, GRADE_EASY
from .models import ValidationResult

_GRADE_BY_ATTEMPTS = {
    1: GRADE_EASY,
    2: GRADE_GOOD,
    3: GRADE_HARD,
}


def grade_from_attempts(attempt_count: int) -> int:
    """Map attempts taken to an FSRS grade. Four or more attempts is Again."""
    return _GRADE_BY_ATTEMPTS.get(attempt_count, GRADE_AGAIN)


def validate_guess_input(text: str | None) -> ValidationResult:
    if not text or not text.strip():
        return ValidationResult(False, 'Please enter a guess')
    return ValidationResult(True)


def validate_clue_input(input_length: int, target_length: int) -> ValidationResult:
    """Check guess length during the clue phase."""
    if input_length == 0:
        return ValidationResult(False, 'Please enter your guess')
    if input_length != target_length:
        return ValidationResult(
            False,
            f'Your guess should have {target_length} letters, but has {input_length}'
        )
    return ValidationResult(True)
