"""Abstract base classes for dependency injection."""

import asyncio
from abc import ABC, abstractmethod

from .models import ReviewCard, WordItem


class LessonSource(ABC):
    """Supplies validated lesson words."""

    @abstractmethod
    def load_words(self) -> list[WordItem]:
        """Load every lesson word, in source order."""
        pass

    @abstractmethod
    def list_lessons(self) -> list[str]:
        """Lesson names in first-appearance order."""
        pass


class ReviewScheduler(ABC):
    """Due-card provider and grade sink for spaced repetition."""

    @abstractmethod
    async def select_due_cards(self, user_id: str, limit: int) -> list[ReviewCard]:
        """Return up to `limit` due cards, earliest due first."""
        pass

    @abstractmethod
    def record_grade(self, user_id: str, word: str, lesson_name: str | None, grade: int) -> None:
        """Record a 1-4 grade for a word."""
        pass

    async def record_grade_async(self, user_id: str, word: str, lesson_name: str | None, grade: int) -> None:
        """Run record_grade in the default executor."""
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, lambda: self.record_grade(user_id, word, lesson_name, grade))



class Storage(ABC):
    """Abstract base class for config, progress and card storage."""

    @abstractmethod
    def load_config(self) -> dict:
        """Load user preferences. Returns {} when none are stored."""
        pass

    @abstractmethod
    def load_progress(self, user_id: str = "default") -> dict | None:
        """Load progress for a user. Returns progress dict or None if not found."""
        pass

    @abstractmethod
    def save_progress(self, progress: dict, user_id: str = "default") -> None:
        """Save progress for a user."""
        pass

    @abstractmethod
    def load_cards(self, user_id: str) -> list[dict]:
        """Load scheduling state for a user's cards.
        Returns list of {word, lesson_name, stability, difficulty, due_at, last_review, reps}."""
        pass

    @abstractmethod
    def save_card(self, user_id: str, card: dict) -> None:
        """Insert or replace the card keyed by (word, lesson_name)."""
        pass

    @abstractmethod
    def log_event(self, event: str, user_id: str, session_id: str = None, **data) -> None:
        """Append an event to the event log."""
        pass
