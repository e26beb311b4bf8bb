"""PostgreSQL storage implementation."""

import json
import logging
import os
import psycopg2
from psycopg2.extras import RealDictCursor

from core.config import DEFAULT_CONFIG_FILE
from core.interfaces import LessonSource, Storage
from core.models import WordItem

logger = logging.getLogger(__name__)


class PostgresStorage(Storage, LessonSource):
    """PostgreSQL-based storage implementation."""

    def __init__(self, config_file: str = None, db_url: str = None):
        self.config_file = os.path.expanduser(config_file or DEFAULT_CONFIG_FILE)
        self.db_url = db_url or os.environ.get(
            'DATABASE_URL',
            'postgresql://localhost:5432/spelldle'
        )
        self._conn = None
        self._initialized = False

    @property
    def conn(self):
        """Lazy connection initialization."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.db_url)
            if not self._initialized:
                self._init_db()
                self._initialized = True
        return self._conn

    def _init_db(self):
        """Create tables if they don't exist."""
        with self._conn.cursor() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS lesson_words (
                    id SERIAL PRIMARY KEY,
                    lesson_name VARCHAR(255) NOT NULL,
                    word VARCHAR(255) NOT NULL,
                    sentence TEXT NOT NULL
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_lesson_words_lesson
                ON lesson_words(lesson_name)
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS user_progress (
                    user_id VARCHAR(255) PRIMARY KEY,
                    progress JSONB NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            # Scheduling state per (user, word, lesson); lesson '' stands for none
            cur.execute("""
                CREATE TABLE IF NOT EXISTS review_cards (
                    user_id VARCHAR(255) NOT NULL,
                    word VARCHAR(255) NOT NULL,
                    lesson_name VARCHAR(255) NOT NULL DEFAULT '',
                    stability DOUBLE PRECISION,
                    difficulty DOUBLE PRECISION,
                    due_at TIMESTAMPTZ NOT NULL,
                    last_review TIMESTAMPTZ,
                    reps INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY (user_id, word, lesson_name)
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_review_cards_due
                ON review_cards(user_id, due_at)
            """)
            cur.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id SERIAL PRIMARY KEY,
                    timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    event VARCHAR(50) NOT NULL,
                    user_id VARCHAR(255) NOT NULL,
                    session_id VARCHAR(64),
                    data JSONB
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_events_user_id ON events(user_id)
            """)
        self._conn.commit()

    def close(self):
        """Close the database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            return {}
        with open(self.config_file, 'r') as f:
            return json.load(f)

    # Lessons

    def load_words(self) -> list[WordItem]:
        with self.conn.cursor() as cur:
            cur.execute("SELECT lesson_name, word, sentence FROM lesson_words ORDER BY id")
            rows = cur.fetchall()
        return [WordItem(word, sentence, lesson_name) for lesson_name, word, sentence in rows]

    def list_lessons(self) -> list[str]:
        with self.conn.cursor() as cur:
            cur.execute("""
                SELECT lesson_name FROM lesson_words
                GROUP BY lesson_name ORDER BY MIN(id)
            """)
            return [row[0] for row in cur.fetchall()]

    def seed_words(self, items: list[WordItem]) -> None:
        """Replace all lesson words."""
        try:
            with self.conn.cursor() as cur:
                cur.execute("DELETE FROM lesson_words")
                cur.executemany(
                    "INSERT INTO lesson_words (lesson_name, word, sentence) VALUES (%s, %s, %s)",
                    [(w.lesson_name, w.word, w.sentence) for w in items]
                )
            self.conn.commit()
        except Exception as e:
            logger.error(f"Error seeding lesson words: {e}")
            self.conn.rollback()
            raise

    # Progress

    def load_progress(self, user_id: str = "default") -> dict | None:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    "SELECT progress FROM user_progress WHERE user_id = %s",
                    (user_id,)
                )
                row = cur.fetchone()
                if row:
                    return row['progress']
                return None
        except psycopg2.Error as e:
            logger.error(f"Error loading progress: {e}")
            return None

    def save_progress(self, progress: dict, user_id: str = "default") -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO user_progress (user_id, progress, updated_at)
                    VALUES (%s, %s, CURRENT_TIMESTAMP)
                    ON CONFLICT (user_id)
                    DO UPDATE SET progress = EXCLUDED.progress, updated_at = CURRENT_TIMESTAMP
                """, (user_id, json.dumps(progress)))
            self.conn.commit()
        except Exception as e:
            logger.error(f"Error saving progress: {e}")
            self.conn.rollback()
            raise

    # Cards

    def load_cards(self, user_id: str) -> list[dict]:
        with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute("""
                SELECT word, lesson_name, stability, difficulty, due_at, last_review, reps
                FROM review_cards WHERE user_id = %s
                ORDER BY due_at
            """, (user_id,))
            rows = cur.fetchall()
        cards = []
        for row in rows:
            card = dict(row)
            card['lesson_name'] = card['lesson_name'] or None
            cards.append(card)
        return cards

    def save_card(self, user_id: str, card: dict) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO review_cards
                        (user_id, word, lesson_name, stability, difficulty, due_at, last_review, reps)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (user_id, word, lesson_name)
                    DO UPDATE SET stability = EXCLUDED.stability,
                                  difficulty = EXCLUDED.difficulty,
                                  due_at = EXCLUDED.due_at,
                                  last_review = EXCLUDED.last_review,
                                  reps = EXCLUDED.reps
                """, (user_id, card['word'], card.get('lesson_name') or '',
                      card.get('stability'), card.get('difficulty'),
                      card['due_at'], card.get('last_review'), card.get('reps', 0)))
            self.conn.commit()
        except Exception as e:
            logger.error(f"Error saving card: {e}")
            self.conn.rollback()
            raise

    # Events

    def log_event(self, event: str, user_id: str, session_id: str = None, **data) -> None:
        """Log an event to the database."""
        try:
            with self.conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO events (event, user_id, session_id, data)
                    VALUES (%s, %s, %s, %s)
                """, (event, user_id, session_id, json.dumps(data) if data else None))
            self.conn.commit()
        except psycopg2.Error as e:
            logger.error(f"Error logging event: {e}")
            self.conn.rollback()

    def get_user_events(self, user_id: str, event_type: str = None,
                        limit: int = 100) -> list[dict]:
        """Get recent events for a user."""
        with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
            if event_type:
                cur.execute("""
                    SELECT * FROM events
                    WHERE user_id = %s AND event = %s
                    ORDER BY timestamp DESC LIMIT %s
                """, (user_id, event_type, limit))
            else:
                cur.execute("""
                    SELECT * FROM events
                    WHERE user_id = %s
                    ORDER BY timestamp DESC LIMIT %s
                """, (user_id, limit))
            return [dict(row) for row in cur.fetchall()]
