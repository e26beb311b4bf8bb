"""Utility functions for spelldle application."""

import asyncio
import csv
import io
import json
import logging
import time

from .config import RETRY_MAX_ATTEMPTS, RETRY_DELAY_MS
from .models import WordItem

logger = logging.getLogger(__name__)

LESSON_COLUMNS = ('lesson', 'word', 'sentence')


class RetryError(Exception):
    """Raised when every retry attempt has failed."""

    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(f"Operation failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def parse_lesson_csv(text: str) -> list[WordItem]:
    """Parse lesson rows into WordItems.

    Expects a header with lesson, word and sentence columns. Rows with an
    empty field or a word containing inner whitespace are skipped.
    """
    if not text or not text.strip():
        return []
    reader = csv.reader(io.StringIO(text.strip()))
    header = next(reader, None)
    if not header:
        return []
    columns = [h.strip().strip('"').lower() for h in header]
    missing = [c for c in LESSON_COLUMNS if c not in columns]
    if missing:
        raise ValueError(f"Lesson CSV missing columns: {', '.join(missing)}")
    idx = {c: columns.index(c) for c in LESSON_COLUMNS}

    items = []
    for line_no, row in enumerate(reader, start=2):
        values = {c: row[i].strip() if i < len(row) else '' for c, i in idx.items()}
        if not all(values.values()):
            logger.info(f"Skipping incomplete lesson row {line_no}")
            continue
        if any(ch.isspace() for ch in values['word']):
            logger.info(f"Skipping lesson row {line_no}: word contains whitespace: {values['word']!r}")
            continue
        items.append(WordItem(values['word'], values['sentence'], values['lesson']))
    return items


def export_to_csv(rows: list[dict], headers: list[str] = None) -> str:
    """Export records as CSV with every value quoted."""
    if not rows:
        return ''
    headers = headers or list(rows[0].keys())
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(headers)
    for row in rows:
        writer.writerow(['' if row.get(h) is None else str(row.get(h)) for h in headers])
    return buf.getvalue().rstrip('\n')


def export_to_json(data) -> str:
    return json.dumps(data, indent=2, default=str)


async def retry_operation(operation, max_attempts: int = RETRY_MAX_ATTEMPTS,
                          delay_ms: int = RETRY_DELAY_MS):
    """Await `operation()` until it succeeds, backing off exponentially."""
    last_error = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            logger.warning(f"Attempt {attempt}/{max_attempts} failed: {e}")
            if attempt == max_attempts:
                break
            delay = delay_ms * 2 ** (attempt - 1)
            await asyncio.sleep(delay / 1000)
    raise RetryError(max_attempts, last_error)


def retry_call(func, max_attempts: int = RETRY_MAX_ATTEMPTS, delay_ms: int = RETRY_DELAY_MS):
    """Blocking counterpart of retry_operation for synchronous calls."""
    last_error = None
    for attempt in range(1, max_attempts + 1):
        try:
            return func()
        except Exception as e:
            last_error = e
            logger.warning(f"Attempt {attempt}/{max_attempts} failed: {e}")
            if attempt == max_attempts:
                break
            time.sleep(delay_ms * 2 ** (attempt - 1) / 1000)
    raise RetryError(max_attempts, last_error)
