from .models import (
    WordItem, FeedbackEntry, FeedbackResult, ReviewCard, Session,
    ValidationResult, Ok, NotFound, Degraded, Progress
)
from .interfaces import LessonSource, ReviewScheduler, Storage
from .feedback import evaluate_guess, classify, get_missing_letters
from .validation import grade_from_attempts, validate_guess_input, validate_clue_input
from .session import build_lesson_session, build_review_session, fetch_review_session
from .drill import Drill, WordResult
from .utils import parse_lesson_csv, export_to_csv, export_to_json, retry_operation, retry_call, RetryError
from .config import (
    MAX_REVIEWS_PER_LESSON, REVIEW_OVERFETCH_FACTOR, DESIRED_RETENTION,
    GREEN, YELLOW, GRAY, EXTRANEOUS
)

__all__ = [
    'WordItem', 'FeedbackEntry', 'FeedbackResult', 'ReviewCard', 'Session',
    'ValidationResult', 'Ok', 'NotFound', 'Degraded', 'Progress',
    'LessonSource', 'ReviewScheduler', 'Storage',
    'evaluate_guess', 'classify', 'get_missing_letters',
    'grade_from_attempts', 'validate_guess_input', 'validate_clue_input',
    'build_lesson_session', 'build_review_session', 'fetch_review_session',
    'Drill', 'WordResult',
    'parse_lesson_csv', 'export_to_csv', 'export_to_json', 'retry_operation', 'retry_call', 'RetryError',
    'MAX_REVIEWS_PER_LESSON', 'REVIEW_OVERFETCH_FACTOR', 'DESIRED_RETENTION',
    'GREEN', 'YELLOW', 'GRAY', 'EXTRANEOUS'
]
