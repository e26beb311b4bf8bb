"""Compose practice sessions from due review cards and lesson words."""

import logging
from collections.abc import Iterable, Sequence

from .config import REVIEW_OVERFETCH_FACTOR
from .interfaces import ReviewScheduler
from .models import Degraded, NotFound, Ok, ReviewCard, Session, WordItem

logger = logging.getLogger(__name__)

SCHEDULER_UNAVAILABLE = 'Review scheduler unavailable; continuing without reviews'


def _lesson_items(lesson_name: str, lesson_words: Iterable[WordItem]) -> list[WordItem]:
    return [
        WordItem(w.word, w.sentence, w.lesson_name, is_review=False)
        for w in lesson_words
        if w.lesson_name == lesson_name
    ]


def dedupe_due_cards(due_cards: Sequence[ReviewCard], max_reviews: int) -> list[ReviewCard]:
    """Keep the first card per word, then cap at max_reviews.

    Input is assumed ordered earliest-due first, so the earliest instance of
    each word survives. Only the first REVIEW_OVERFETCH_FACTOR * max_reviews
    candidates are considered.
    """
    if max_reviews <= 0:
        return []
    candidates = due_cards[:REVIEW_OVERFETCH_FACTOR * max_reviews]
    first_index = {}
    for i, card in enumerate(candidates):
        first_index.setdefault(card.word, i)
    # Rebuild order from the candidate list rather than the dict
    kept = [card for i, card in enumerate(candidates) if first_index[card.word] == i]
    return kept[:max_reviews]


def _find_sentence(card: ReviewCard, lesson_words: Sequence[WordItem]) -> str:
    fallback = ''
    for w in lesson_words:
        if w.word != card.word:
            continue
        if w.lesson_name == card.lesson_name:
            return w.sentence
        if not fallback:
            fallback = w.sentence
    return fallback


def build_lesson_session(lesson_name: str, lesson_words: Iterable[WordItem]) -> Ok | NotFound:
    """Wrap every word of a lesson, in source order."""
    items = _lesson_items(lesson_name, lesson_words)
    if not items:
        return NotFound(lesson_name)
    session = Session(lesson_name, tuple(items), review_count=0, lesson_count=len(items))
    return Ok(session)


def build_review_session(due_cards: Sequence[ReviewCard] | None, lesson_name: str,
                         lesson_words: Sequence[WordItem], max_reviews: int) -> Ok | Degraded | NotFound:
    """Merge due reviews ahead of a lesson's words.

    `due_cards` of None means the scheduler could not supply cards; the
    result is then a Degraded plain lesson session. Dedup applies to the
    review segment only.
    """
    lesson_items = _lesson_items(lesson_name, lesson_words)
    if not lesson_items:
        return NotFound(lesson_name)

    if due_cards is None:
        session = Session(lesson_name, tuple(lesson_items), 0, len(lesson_items))
        return Degraded(session, (SCHEDULER_UNAVAILABLE,))

    review_items = [
        WordItem(card.word, _find_sentence(card, lesson_words), card.lesson_name, is_review=True)
        for card in dedupe_due_cards(due_cards, max_reviews)
    ]
    session = Session(
        lesson_name,
        tuple(review_items + lesson_items),
        review_count=len(review_items),
        lesson_count=len(lesson_items)
    )
    return Ok(session)


async def fetch_review_session(scheduler: ReviewScheduler, user_id: str, lesson_name: str,
                               lesson_words: Sequence[WordItem], max_reviews: int) -> Ok | Degraded | NotFound:
    """Fetch one snapshot of due cards and compose a review session."""
    try:
        due_cards = list(await scheduler.select_due_cards(user_id, REVIEW_OVERFETCH_FACTOR * max_reviews))
    except Exception as e:
        logger.error(f"Due card fetch failed for {user_id}: {type(e).__name__}: {e}")
        due_cards = None
    return build_review_session(due_cards, lesson_name, lesson_words, max_reviews)
