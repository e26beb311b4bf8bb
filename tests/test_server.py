"""API tests for spelldle server."""

import json
import os
import tempfile
import unittest
from datetime import datetime, timezone

from fastapi.testclient import TestClient

from core.interfaces import ReviewScheduler
from core.models import ReviewCard
from server.app import AppContext, create_app
from server.file_storage import FileStorage

LESSONS_CSV = """lesson,word,sentence
Lesson 1,cat,"The cat sat on the mat."
Lesson 1,dog,"The dog barked."
Lesson 2,friend,"My friend lives next door."
Lesson 2,people,"Many people came."
"""


class MockScheduler(ReviewScheduler):
    """Mock scheduler for testing."""

    def __init__(self):
        self.cards = []
        self.error = None
        self.grade_error = None
        self.grades = []

    async def select_due_cards(self, user_id: str, limit: int) -> list:
        if self.error:
            raise self.error
        return self.cards[:limit]

    def record_grade(self, user_id: str, word: str, lesson_name, grade: int) -> None:
        if self.grade_error:
            raise self.grade_error
        self.grades.append((user_id, word, lesson_name, grade))


class ServerTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        lessons_file = os.path.join(self.tmp.name, 'lessons.csv')
        with open(lessons_file, 'w', encoding='utf-8') as f:
            f.write(LESSONS_CSV)
        self.storage = FileStorage(
            config_file=os.path.join(self.tmp.name, 'config.json'),
            state_dir=self.tmp.name,
            lessons_file=lessons_file
        )
        self.scheduler = MockScheduler()
        self.context = AppContext(self.storage, self.storage, self.scheduler)
        self.client = TestClient(create_app(self.context))

    def tearDown(self):
        self.tmp.cleanup()

    def start(self, lesson_name: str = 'Lesson 1', **kwargs) -> dict:
        response = self.client.post('/api/session', json={'lesson_name': lesson_name, **kwargs})
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()


class TestLessons(ServerTestCase):

    def test_health(self):
        self.assertEqual(self.client.get('/').json()['status'], 'ok')

    def test_list_lessons(self):
        lessons = self.client.get('/api/lessons').json()['lessons']
        self.assertEqual(lessons, [
            {'name': 'Lesson 1', 'word_count': 2},
            {'name': 'Lesson 2', 'word_count': 2},
        ])


class TestSession(ServerTestCase):

    def test_unknown_lesson_returns_404(self):
        response = self.client.post('/api/session', json={'lesson_name': 'Nope'})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['detail'], 'Lesson not found: Nope')

    def test_reviews_come_first(self):
        due = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self.scheduler.cards = [
            ReviewCard('friend', 'Lesson 2', due),
            ReviewCard('friend', 'Lesson 2', due),
        ]
        data = self.start('Lesson 1')
        self.assertEqual(data['status'], 'ok')
        self.assertEqual(data['review_count'], 1)
        self.assertEqual(data['lesson_count'], 2)
        current = data['current']
        self.assertEqual(current['word'], 'friend')
        self.assertEqual(current['sentence'], 'My friend lives next door.')
        self.assertTrue(current['is_review'])
        self.assertEqual(current['remaining'], 3)

    def test_without_reviews(self):
        self.scheduler.cards = [ReviewCard('friend', 'Lesson 2', datetime.now(timezone.utc))]
        data = self.start('Lesson 1', include_reviews=False)
        self.assertEqual(data['review_count'], 0)
        self.assertEqual(data['current']['word'], 'cat')

    def test_scheduler_failure_degrades(self):
        self.scheduler.error = ConnectionError('scheduler down')
        data = self.start('Lesson 1')
        self.assertEqual(data['status'], 'degraded')
        self.assertTrue(data['warnings'])
        self.assertEqual(data['review_count'], 0)
        self.assertEqual(data['lesson_count'], 2)

    def test_max_reviews_from_config(self):
        with open(self.storage.config_file, 'w') as f:
            json.dump({'max_reviews_per_lesson': 1}, f)
        due = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self.scheduler.cards = [ReviewCard('friend', 'Lesson 2', due), ReviewCard('people', 'Lesson 2', due)]
        self.assertEqual(self.start('Lesson 1')['review_count'], 1)

    def test_session_start_logged(self):
        self.start('Lesson 1')
        events = self.client.get('/api/events/recent', params={'user_id': 'default'}).json()['events']
        self.assertEqual(events[0]['event'], 'session.start')


class TestGuess(ServerTestCase):

    def test_guess_without_session(self):
        response = self.client.post('/api/guess', json={'guess': 'cat'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['detail'], 'No active session')

    def test_empty_guess_rejected(self):
        self.start()
        response = self.client.post('/api/guess', json={'guess': '  '})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['detail'], 'Please enter a guess')

    def test_wrong_then_right(self):
        self.start()
        wrong = self.client.post('/api/guess', json={'guess': 'act'}).json()
        self.assertFalse(wrong['is_correct'])
        self.assertEqual([e['type'] for e in wrong['feedback']], ['yellow', 'yellow', 'green'])
        self.assertEqual(wrong['attempts'], 1)
        self.assertIsNone(wrong['grade'])
        self.assertTrue(wrong['current']['clue_phase'])

        short = self.client.post('/api/guess', json={'guess': 'ca'})
        self.assertEqual(short.status_code, 400)
        self.assertEqual(short.json()['detail'], 'Your guess should have 3 letters, but has 2')

        right = self.client.post('/api/guess', json={'guess': 'cat'}).json()
        self.assertTrue(right['is_correct'])
        self.assertEqual(right['grade'], 3)
        self.assertEqual(right['grade_name'], 'Good')
        self.assertEqual(right['current']['word'], 'dog')
        self.assertEqual(self.scheduler.grades, [('default', 'cat', 'Lesson 1', 3)])

    def test_missing_letters(self):
        self.start()
        data = self.client.post('/api/guess', json={'guess': 'cut'}).json()
        self.assertEqual(data['missing_letters'], [{'letter': 'a', 'position': 1}])

    def test_grade_failure_is_queued_not_raised(self):
        self.scheduler.grade_error = RuntimeError('store offline')
        self.start()
        response = self.client.post('/api/guess', json={'guess': 'cat'})
        self.assertEqual(response.status_code, 200)
        stats = self.client.get('/api/stats').json()
        self.assertEqual(stats['permanent_failures'], [])
        self.assertEqual(len(stats['retry_queue']), 1)
        queued = stats['retry_queue'][0]
        self.assertEqual((queued['word'], queued['lesson_name'], queued['grade']), ('cat', 'Lesson 1', 4))
        self.assertEqual(queued['attempts'], 1)
        self.assertEqual(self.storage.load_progress('default')['retry_queue'][0]['word'], 'cat')

    def test_failed_grade_replayed_on_next_grade(self):
        self.scheduler.grade_error = ConnectionError('store offline')
        self.start()
        self.client.post('/api/guess', json={'guess': 'cat'})
        self.assertEqual(self.scheduler.grades, [])

        self.scheduler.grade_error = None
        self.client.post('/api/guess', json={'guess': 'dog'})
        self.assertEqual(self.scheduler.grades, [
            ('default', 'cat', 'Lesson 1', 4),
            ('default', 'dog', 'Lesson 1', 4),
        ])
        stats = self.client.get('/api/stats').json()
        self.assertEqual(stats['retry_queue'], [])
        self.assertEqual(stats['permanent_failures'], [])
        self.assertEqual(self.storage.load_progress('default')['retry_queue'], [])

    def test_failed_grade_replayed_on_session_start(self):
        self.scheduler.grade_error = ConnectionError('store offline')
        self.start()
        self.client.post('/api/guess', json={'guess': 'cat'})

        self.scheduler.grade_error = None
        self.start('Lesson 2')
        self.assertEqual(self.scheduler.grades, [('default', 'cat', 'Lesson 1', 4)])
        self.assertEqual(self.client.get('/api/stats').json()['retry_queue'], [])

    def test_grade_moves_to_failure_log_after_max_attempts(self):
        self.scheduler.grade_error = RuntimeError('store offline')
        self.start()
        self.client.post('/api/guess', json={'guess': 'cat'})  # cat: 1 attempt
        self.client.post('/api/guess', json={'guess': 'dog'})  # cat: 2, dog: 1
        self.start()                                           # cat: 3 -> failure log, dog: 2

        stats = self.client.get('/api/stats').json()
        self.assertEqual(len(stats['permanent_failures']), 1)
        self.assertEqual(stats['permanent_failures'][0]['operation'], 'record_grade')
        self.assertTrue(stats['permanent_failures'][0]['error'].startswith('cat: '))
        self.assertEqual([(e['word'], e['attempts']) for e in stats['retry_queue']], [('dog', 2)])
        self.assertEqual(self.scheduler.grades, [])


class TestFinishSession(ServerTestCase):

    def test_complete_lesson_updates_stats(self):
        self.start()
        self.client.post('/api/guess', json={'guess': 'cat'})
        current = self.client.post('/api/skip', json={}).json()
        self.assertTrue(current['finished'])
        self.assertIsNone(current['word'])
        self.assertEqual(self.scheduler.grades, [
            ('default', 'cat', 'Lesson 1', 4),
            ('default', 'dog', 'Lesson 1', 1),
        ])

        summary = self.client.get('/api/summary').json()
        self.assertEqual(summary['words_completed'], 1)
        self.assertEqual(summary['words_skipped'], 1)
        self.assertEqual(summary['first_try_correct'], 1)
        self.assertEqual(len(summary['results']), 2)

        stats = self.client.get('/api/stats').json()
        self.assertEqual(stats['last_lesson'], 'Lesson 1')
        self.assertEqual(stats['lesson_stats']['Lesson 1']['sessions'], 1)

        # Persisted through storage
        self.assertEqual(self.storage.load_progress('default')['last_lesson'], 'Lesson 1')

        finished = self.client.post('/api/guess', json={'guess': 'dog'})
        self.assertEqual(finished.status_code, 400)
        self.assertEqual(self.client.post('/api/skip', json={}).status_code, 400)

    def test_export_stats(self):
        self.start()
        self.client.post('/api/guess', json={'guess': 'cat'})
        self.client.post('/api/guess', json={'guess': 'dog'})

        csv_text = self.client.get('/api/stats/export', params={'fmt': 'csv'}).text
        lines = csv_text.splitlines()
        self.assertTrue(lines[0].startswith('"lesson","sessions"'))
        self.assertTrue(lines[1].startswith('"Lesson 1","1"'))

        exported = json.loads(self.client.get('/api/stats/export', params={'fmt': 'json'}).text)
        self.assertEqual(exported['lesson_stats']['Lesson 1']['words_completed'], 2)

        self.assertEqual(self.client.get('/api/stats/export', params={'fmt': 'xml'}).status_code, 400)


class TestStats(ServerTestCase):

    def test_unknown_user_is_not_cached(self):
        stats = self.client.get('/api/stats', params={'user_id': 'ghost'}).json()
        self.assertIsNone(stats['last_lesson'])
        self.assertEqual(stats['lesson_stats'], {})
        self.client.get('/api/stats/export', params={'user_id': 'ghost', 'fmt': 'json'})
        self.assertNotIn('ghost', self.context.progress)
        self.assertIsNone(self.storage.load_progress('ghost'))

    def test_stored_user_is_cached(self):
        self.storage.save_progress({'last_lesson': 'Lesson 2'}, 'alice')
        stats = self.client.get('/api/stats', params={'user_id': 'alice'}).json()
        self.assertEqual(stats['last_lesson'], 'Lesson 2')
        self.assertIn('alice', self.context.progress)


class TestDueReviews(ServerTestCase):

    def test_lists_due_cards(self):
        due = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self.scheduler.cards = [ReviewCard('cat', 'Lesson 1', due)]
        data = self.client.get('/api/reviews/due').json()
        self.assertEqual(data['total'], 1)
        self.assertEqual(data['cards'][0]['word'], 'cat')

    def test_scheduler_down(self):
        self.scheduler.error = ConnectionError('down')
        self.assertEqual(self.client.get('/api/reviews/due').status_code, 503)


class TestFileStorage(ServerTestCase):

    def test_save_card_replaces_same_word_and_lesson(self):
        self.storage.save_card('alice', {'word': 'cat', 'lesson_name': 'L1', 'due_at': 'a', 'reps': 1})
        self.storage.save_card('alice', {'word': 'cat', 'lesson_name': 'L2', 'due_at': 'b', 'reps': 1})
        self.storage.save_card('alice', {'word': 'cat', 'lesson_name': 'L1', 'due_at': 'c', 'reps': 2})
        cards = self.storage.load_cards('alice')
        self.assertEqual([(c['lesson_name'], c['due_at']) for c in cards], [('L2', 'b'), ('L1', 'c')])
        self.assertEqual(self.storage.load_cards('bob'), [])

    def test_missing_lessons_file(self):
        storage = FileStorage(state_dir=self.tmp.name, lessons_file=os.path.join(self.tmp.name, 'none.csv'))
        with self.assertRaises(FileNotFoundError):
            storage.load_words()

    def test_corrupt_progress_file(self):
        with open(os.path.join(self.tmp.name, 'spelldle_progress_carol.json'), 'w') as f:
            f.write('{not json')
        self.assertIsNone(self.storage.load_progress('carol'))


if __name__ == '__main__':
    unittest.main()
