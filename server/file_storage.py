"""File-based storage implementation."""

import json
import logging
import os
from datetime import datetime, timezone

from core.config import DEFAULT_CONFIG_FILE, DEFAULT_LESSONS_FILE
from core.interfaces import LessonSource, Storage
from core.models import WordItem
from core.utils import parse_lesson_csv

logger = logging.getLogger(__name__)


class FileStorage(Storage, LessonSource):
    """Lessons from a CSV file; progress, cards and events as JSON files."""

    def __init__(self, config_file: str = None, state_dir: str = None, lessons_file: str = None):
        self.config_file = os.path.expanduser(config_file or DEFAULT_CONFIG_FILE)
        # Project root is one level up from server/
        project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.state_dir = state_dir or project_root
        self.lessons_file = lessons_file or os.environ.get(
            'SPELLDLE_LESSONS', os.path.join(self.state_dir, DEFAULT_LESSONS_FILE)
        )
        self._words = None

    def _get_progress_file(self, user_id: str) -> str:
        if user_id == "default":
            return os.path.join(self.state_dir, 'spelldle_progress.json')
        return os.path.join(self.state_dir, f'spelldle_progress_{user_id}.json')

    def _get_cards_file(self, user_id: str) -> str:
        return os.path.join(self.state_dir, f'spelldle_cards_{user_id}.json')

    def _get_events_file(self) -> str:
        return os.path.join(self.state_dir, 'spelldle_events.jsonl')

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            return {}
        with open(self.config_file, 'r') as f:
            return json.load(f)

    # Lessons

    def load_words(self) -> list[WordItem]:
        if self._words is None:
            if not os.path.exists(self.lessons_file):
                raise FileNotFoundError(f"Lessons file not found at {self.lessons_file}")
            with open(self.lessons_file, 'r', encoding='utf-8') as f:
                self._words = parse_lesson_csv(f.read())
            logger.info(f"Loaded {len(self._words)} lesson words from {self.lessons_file}")
        return list(self._words)

    def list_lessons(self) -> list[str]:
        names = []
        for item in self.load_words():
            if item.lesson_name not in names:
                names.append(item.lesson_name)
        return names

    # Progress

    def load_progress(self, user_id: str = "default") -> dict | None:
        progress_file = self._get_progress_file(user_id)
        if os.path.exists(progress_file):
            try:
                with open(progress_file, 'r') as f:
                    return json.load(f)
            except json.JSONDecodeError as e:
                logger.error(f"Corrupt progress file {progress_file}: {e}")
                return None
        return None

    def save_progress(self, progress: dict, user_id: str = "default") -> None:
        with open(self._get_progress_file(user_id), 'w') as f:
            json.dump(progress, f, indent=2)

    # Cards

    def load_cards(self, user_id: str) -> list[dict]:
        cards_file = self._get_cards_file(user_id)
        if not os.path.exists(cards_file):
            return []
        with open(cards_file, 'r') as f:
            return json.load(f)

    def save_card(self, user_id: str, card: dict) -> None:
        cards = [
            c for c in self.load_cards(user_id)
            if not (c['word'] == card['word'] and c.get('lesson_name') == card.get('lesson_name'))
        ]
        cards.append(card)
        with open(self._get_cards_file(user_id), 'w') as f:
            json.dump(cards, f, indent=2)

    # Events

    def log_event(self, event: str, user_id: str, session_id: str = None, **data) -> None:
        entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'event': event,
            'user_id': user_id,
            'session_id': session_id,
            'data': data or None
        }
        try:
            with open(self._get_events_file(), 'a') as f:
                f.write(json.dumps(entry) + '\n')
        except OSError as e:
            logger.error(f"Error logging event: {e}")

    def get_user_events(self, user_id: str, event_type: str = None, limit: int = 100) -> list[dict]:
        """Most recent events first."""
        events_file = self._get_events_file()
        if not os.path.exists(events_file):
            return []
        with open(events_file, 'r') as f:
            events = [json.loads(line) for line in f if line.strip()]
        events = [
            e for e in events
            if e['user_id'] == user_id and (event_type is None or e['event'] == event_type)
        ]
        return list(reversed(events))[:limit]
