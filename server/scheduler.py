"""FSRS-backed review scheduler."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from fsrs_rs_python import DEFAULT_PARAMETERS, FSRS, MemoryState

from core.config import (
    DESIRED_RETENTION, GRADE_AGAIN, GRADE_HARD, GRADE_GOOD, GRADE_EASY,
    RETRY_MAX_ATTEMPTS, RETRY_DELAY_MS
)
from core.interfaces import ReviewScheduler, Storage
from core.models import ReviewCard
from core.utils import retry_call, retry_operation

logger = logging.getLogger(__name__)


def _parse_time(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class FSRSScheduler(ReviewScheduler):
    """Schedules cards with fsrs-rs-python and persists them through Storage."""

    def __init__(self, storage: Storage, desired_retention: float = DESIRED_RETENTION,
                 parameters: list[float] = None, clock=None):
        self.storage = storage
        self.desired_retention = desired_retention
        self.fsrs = FSRS(parameters=parameters or list(DEFAULT_PARAMETERS))
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _find_card(self, user_id: str, word: str, lesson_name: str | None) -> dict | None:
        for card in self.storage.load_cards(user_id):
            if card['word'] == word and card.get('lesson_name') == lesson_name:
                return card
        return None

    def _next_state(self, card: dict | None, grade: int, now: datetime):
        memory = None
        days_elapsed = 0
        if card and card.get('reps', 0) > 0 and card.get('stability'):
            memory = MemoryState(
                stability=max(0.1, float(card['stability'])),
                difficulty=max(1.0, min(10.0, float(card['difficulty'])))
            )
            last_review = _parse_time(card.get('last_review'))
            if last_review:
                days_elapsed = max(0, (now - last_review).days)
        states = self.fsrs.next_states(memory, self.desired_retention, days_elapsed)
        return {
            GRADE_AGAIN: states.again,
            GRADE_HARD: states.hard,
            GRADE_GOOD: states.good,
            GRADE_EASY: states.easy,
        }[grade]

    def record_grade(self, user_id: str, word: str, lesson_name: str | None, grade: int) -> None:
        if grade not in (GRADE_AGAIN, GRADE_HARD, GRADE_GOOD, GRADE_EASY):
            raise ValueError(f"Grade must be 1-4, got {grade}")
        now = self._clock()
        card = self._find_card(user_id, word, lesson_name)
        state = self._next_state(card, grade, now)
        due_at = now + timedelta(days=float(state.interval))
        self.storage.save_card(user_id, {
            'word': word,
            'lesson_name': lesson_name,
            'stability': state.memory.stability,
            'difficulty': state.memory.difficulty,
            'due_at': due_at.isoformat(),
            'last_review': now.isoformat(),
            'reps': (card.get('reps', 0) if card else 0) + 1
        })
        logger.info(f"Graded {word!r} for {user_id}: {grade}, next due {due_at.isoformat()}")

    def due_cards(self, user_id: str, limit: int) -> list[ReviewCard]:
        now = self._clock()
        due = []
        for card in self.storage.load_cards(user_id):
            due_at = _parse_time(card.get('due_at'))
            if due_at and due_at <= now:
                due.append(ReviewCard(card['word'], card.get('lesson_name'), due_at))
        # Stable sort keeps storage order for equal due times
        due.sort(key=lambda c: c.due_at)
        return due[:limit]

    async def select_due_cards(self, user_id: str, limit: int) -> list[ReviewCard]:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, lambda: self.due_cards(user_id, limit))


class RetryingScheduler(ReviewScheduler):
    """Retries due-card fetches and grade writes with backoff before giving up."""

    def __init__(self, inner: ReviewScheduler, max_attempts: int = RETRY_MAX_ATTEMPTS,
                 delay_ms: int = RETRY_DELAY_MS):
        self.inner = inner
        self.max_attempts = max_attempts
        self.delay_ms = delay_ms

    async def select_due_cards(self, user_id: str, limit: int) -> list[ReviewCard]:
        return await retry_operation(
            lambda: self.inner.select_due_cards(user_id, limit),
            max_attempts=self.max_attempts,
            delay_ms=self.delay_ms
        )

    def record_grade(self, user_id: str, word: str, lesson_name: str | None, grade: int) -> None:
        retry_call(
            lambda: self.inner.record_grade(user_id, word, lesson_name, grade),
            max_attempts=self.max_attempts,
            delay_ms=self.delay_ms
        )
