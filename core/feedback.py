"""Guess evaluation and Wordle-style positional feedback."""

from .config import GREEN, YELLOW, GRAY, EXTRANEOUS
from .models import FeedbackEntry, FeedbackResult


def evaluate_guess(guess: str, target: str) -> bool:
    """Return True if guess exactly matches target (case-sensitive)."""
    if not guess or not target:
        return False
    return guess == target


def classify(guess: str, target: str) -> FeedbackResult:
    """Classify each guessed character against the target.

    Greens are claimed first. Each remaining character then claims the
    leftmost unused target position holding the same letter (yellow), or
    is gray if none is left. Characters past the end of the target are
    extraneous.
    """
    if not guess or not target:
        return FeedbackResult()

    types = [None] * len(guess)
    used = [False] * len(target)

    # First pass: exact position matches
    for i, letter in enumerate(guess):
        if i < len(target) and letter == target[i]:
            types[i] = GREEN
            used[i] = True

    # Second pass: misplaced or absent
    for i, letter in enumerate(guess):
        if types[i] is not None:
            continue
        types[i] = GRAY
        for j, target_letter in enumerate(target):
            if not used[j] and target_letter == letter and i != j:
                types[i] = YELLOW
                used[j] = True
                break

    for i in range(len(target), len(guess)):
        types[i] = EXTRANEOUS

    entries = tuple(
        FeedbackEntry(letter, kind, i)
        for i, (letter, kind) in enumerate(zip(guess, types))
    )
    return FeedbackResult(
        entries=entries,
        is_correct=guess == target,
        guess_length=len(guess),
        target_length=len(target)
    )


def get_missing_letters(guess: str, target: str) -> list[tuple[str, int]]:
    """Target letters that appear nowhere in the guess, with their positions."""
    if not guess or not target:
        return []
    guessed = set(guess)
    return [(letter, i) for i, letter in enumerate(target) if letter not in guessed]
