"""Iterate a session's queue, one guess at a time."""

from .config import CLUE_PHASE_AFTER_ATTEMPTS, GRADE_AGAIN, GRADE_EASY
from .feedback import classify, get_missing_letters
from .models import Session, WordItem
from .validation import grade_from_attempts, validate_clue_input, validate_guess_input


class WordResult:
    """Outcome of one practiced word."""

    def __init__(self, item: WordItem, attempts: int, grade: int, skipped: bool = False):
        self.item = item
        self.attempts = attempts
        self.grade = grade
        self.skipped = skipped

    def to_dict(self) -> dict:
        return {
            'word': self.item.word,
            'lesson_name': self.item.lesson_name,
            'is_review': self.item.is_review,
            'attempts': self.attempts,
            'grade': self.grade,
            'skipped': self.skipped
        }


class Drill:
    """Tracks position and attempts while a learner works through a Session."""

    def __init__(self, session: Session):
        self.session = session
        self.index = 0
        self.attempts = 0
        self.results: list[WordResult] = []

    @property
    def is_finished(self) -> bool:
        return self.index >= len(self.session.queue)

    @property
    def current(self) -> WordItem | None:
        if self.is_finished:
            return None
        return self.session.queue[self.index]

    @property
    def remaining(self) -> int:
        return len(self.session.queue) - self.index

    @property
    def in_clue_phase(self) -> bool:
        return self.attempts >= CLUE_PHASE_AFTER_ATTEMPTS

    def _advance(self, result: WordResult) -> WordResult:
        self.results.append(result)
        self.index += 1
        self.attempts = 0
        return result

    def submit(self, guess: str) -> dict:
        """Check a guess against the current word.

        Returns a dict with `valid` and `message`; valid guesses also carry
        `feedback`, `missing_letters`, `attempts` and, once correct, `result`.
        Invalid guesses do not count as attempts.
        """
        item = self.current
        if item is None:
            return {'valid': False, 'message': 'Session is finished'}

        check = validate_guess_input(guess)
        if check.valid and self.in_clue_phase:
            check = validate_clue_input(len(guess.strip()), len(item.word))
        if not check.valid:
            return {'valid': False, 'message': check.message}

        guess = guess.strip()
        self.attempts += 1
        feedback = classify(guess, item.word)
        outcome = {
            'valid': True,
            'message': '',
            'feedback': feedback,
            'missing_letters': get_missing_letters(guess, item.word),
            'attempts': self.attempts,
            'result': None
        }
        if feedback.is_correct:
            outcome['result'] = self._advance(
                WordResult(item, self.attempts, grade_from_attempts(self.attempts))
            )
        return outcome

    def skip(self) -> WordResult | None:
        """Give up on the current word, graded Again."""
        item = self.current
        if item is None:
            return None
        return self._advance(WordResult(item, self.attempts, GRADE_AGAIN, skipped=True))

    def summary(self) -> dict:
        completed = [r for r in self.results if not r.skipped]
        grades = [r.grade for r in self.results]
        return {
            'lesson_name': self.session.lesson_name,
            'words_total': len(self.session.queue),
            'words_completed': len(completed),
            'words_skipped': len(self.results) - len(completed),
            'first_try_correct': sum(1 for r in completed if r.grade == GRADE_EASY),
            'total_attempts': sum(r.attempts for r in self.results),
            'average_grade': round(sum(grades) / len(grades), 2) if grades else 0.0,
            'finished': self.is_finished
        }
