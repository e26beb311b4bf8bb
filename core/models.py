"""Domain models for spelldle application."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from .config import MAX_PERMANENT_FAILURES, RETRY_MAX_ATTEMPTS


@dataclass(frozen=True)
class WordItem:
    """A word to practice, with its example sentence."""

    word: str
    sentence: str
    lesson_name: str | None = None
    is_review: bool = False

    def __post_init__(self):
        if not self.word or any(ch.isspace() for ch in self.word):
            raise ValueError(f"Invalid word: {self.word!r}")

    def to_dict(self) -> dict:
        return {
            'word': self.word,
            'sentence': self.sentence,
            'lesson_name': self.lesson_name,
            'is_review': self.is_review
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'WordItem':
        return cls(
            data['word'],
            data.get('sentence', ''),
            data.get('lesson_name'),
            data.get('is_review', False)
        )


@dataclass(frozen=True)
class FeedbackEntry:
    """Classification of one guessed character."""

    letter: str
    type: str
    position: int

    def to_dict(self) -> dict:
        return {'letter': self.letter, 'type': self.type, 'position': self.position}


@dataclass(frozen=True)
class FeedbackResult:
    """Per-character feedback for a whole guess."""

    entries: tuple[FeedbackEntry, ...] = ()
    is_correct: bool = False
    guess_length: int = 0
    target_length: int = 0

    @property
    def types(self) -> list[str]:
        return [e.type for e in self.entries]

    def to_dict(self) -> dict:
        return {
            'entries': [e.to_dict() for e in self.entries],
            'is_correct': self.is_correct,
            'guess_length': self.guess_length,
            'target_length': self.target_length
        }


@dataclass(frozen=True)
class ReviewCard:
    """A due card as supplied by the scheduler. Read-only to the core."""

    word: str
    lesson_name: str | None
    due_at: datetime

    def to_dict(self) -> dict:
        return {
            'word': self.word,
            'lesson_name': self.lesson_name,
            'due_at': self.due_at.isoformat()
        }


@dataclass(frozen=True)
class Session:
    """An ordered practice queue: review segment followed by lesson segment."""

    lesson_name: str
    queue: tuple[WordItem, ...]
    review_count: int = 0
    lesson_count: int = 0


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    message: str = ''


# Session composition results. Callers branch on `status`.

@dataclass(frozen=True)
class Ok:
    session: Session
    status: str = field(default='ok', init=False)


@dataclass(frozen=True)
class NotFound:
    lesson_name: str
    status: str = field(default='not_found', init=False)

    @property
    def message(self) -> str:
        return f"Lesson not found: {self.lesson_name}"


@dataclass(frozen=True)
class Degraded:
    session: Session
    warnings: tuple[str, ...] = ()
    status: str = field(default='degraded', init=False)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Progress:
    """Per-user persisted statistics across sessions."""

    def __init__(self):
        self.last_lesson = None
        # {lesson_name: {sessions, words_completed, first_try_correct, total_attempts, last_updated}}
        self.lesson_stats = {}
        # [{timestamp, operation, error}], capped at MAX_PERMANENT_FAILURES
        self.permanent_failures = []
        # [{word, lesson_name, grade, attempts, error, timestamp}] grade writes awaiting replay
        self.retry_queue = []

    def save_lesson_stats(self, lesson_name: str, stats: dict) -> None:
        """Merge stats into the lesson's entry and stamp it."""
        merged = dict(self.lesson_stats.get(lesson_name, {}))
        merged.update(stats)
        merged['last_updated'] = _now_iso()
        self.lesson_stats[lesson_name] = merged

    def record_session(self, lesson_name: str, summary: dict) -> None:
        """Accumulate a finished drill summary into lesson stats."""
        current = self.lesson_stats.get(lesson_name, {})
        self.save_lesson_stats(lesson_name, {
            'sessions': current.get('sessions', 0) + 1,
            'words_completed': current.get('words_completed', 0) + summary.get('words_completed', 0),
            'first_try_correct': current.get('first_try_correct', 0) + summary.get('first_try_correct', 0),
            'total_attempts': current.get('total_attempts', 0) + summary.get('total_attempts', 0),
        })
        self.last_lesson = lesson_name

    def add_permanent_failure(self, operation: str, error: str) -> None:
        self.permanent_failures.append({
            'timestamp': _now_iso(),
            'operation': operation,
            'error': error
        })
        if len(self.permanent_failures) > MAX_PERMANENT_FAILURES:
            del self.permanent_failures[:len(self.permanent_failures) - MAX_PERMANENT_FAILURES]

    def queue_grade_retry(self, word: str, lesson_name: str | None, grade: int, error: str) -> None:
        """Hold a failed grade write for replay."""
        self.retry_queue.append({
            'word': word,
            'lesson_name': lesson_name,
            'grade': grade,
            'attempts': 1,
            'error': error,
            'timestamp': _now_iso()
        })

    def take_grade_retries(self) -> list[dict]:
        """Remove and return every queued grade write."""
        pending, self.retry_queue = self.retry_queue, []
        return pending

    def requeue_grade_retry(self, entry: dict, error: str) -> bool:
        """Put a grade write back after another failed replay.

        Once RETRY_MAX_ATTEMPTS tries have failed the entry moves to the
        permanent-failure log instead. Returns True if it was requeued.
        """
        attempts = entry.get('attempts', 1) + 1
        if attempts >= RETRY_MAX_ATTEMPTS:
            self.add_permanent_failure('record_grade', f"{entry['word']}: {error}")
            return False
        self.retry_queue.append({**entry, 'attempts': attempts, 'error': error, 'timestamp': _now_iso()})
        return True

    def stats_rows(self) -> list[dict]:
        """Flatten lesson stats into rows for export."""
        return [
            {'lesson': name, **stats}
            for name, stats in sorted(self.lesson_stats.items())
        ]

    def to_dict(self) -> dict:
        return {
            'last_lesson': self.last_lesson,
            'lesson_stats': self.lesson_stats,
            'permanent_failures': self.permanent_failures,
            'retry_queue': self.retry_queue
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Progress':
        progress = cls()
        progress.last_lesson = data.get('last_lesson')
        progress.lesson_stats = data.get('lesson_stats', {})
        progress.permanent_failures = data.get('permanent_failures', [])
        progress.retry_queue = data.get('retry_queue', [])
        return progress
