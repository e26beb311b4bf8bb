"""Console UI for spelldle application."""

import requests

from core.config import GREEN, YELLOW, GRAY, EXTRANEOUS
from cli.api_client import SpelldleAPIClient

# Letter markers used in place of colored boxes
MARKERS = {
    GREEN: '[{}]',
    YELLOW: '({})',
    GRAY: ' {} ',
    EXTRANEOUS: '+{}+',
}


def mask_word(sentence: str, word: str) -> str:
    """Blank out the target word in its example sentence."""
    if not sentence:
        return '_' * len(word)
    return sentence.replace(word, '_' * len(word))


def format_feedback(entries: list[dict]) -> str:
    return ''.join(MARKERS[e['type']].format(e['letter'].upper()) for e in entries)


def error_detail(e: requests.HTTPError) -> str:
    try:
        return e.response.json().get('detail', str(e))
    except ValueError:
        return str(e)


class ConsoleUI:
    """Console user interface for spelldle application."""

    def __init__(self, client: SpelldleAPIClient):
        self.client = client

    def print_lessons(self, lessons: list[dict]):
        print('\n' + '=' * 40)
        print('LESSONS')
        print('=' * 40)
        for i, lesson in enumerate(lessons, start=1):
            print(f"  {i}. {lesson['name']} ({lesson['word_count']} words)")
        print('=' * 40)

    def print_word(self, current: dict):
        """Print the prompt for the current word."""
        tag = ' (review)' if current['is_review'] else ''
        print(f"\nWord {current['position'] + 1}, {current['remaining']} left{tag}")
        print(f">>> {mask_word(current['sentence'], current['word'])}")
        print(f"    ({len(current['word'])} letters)")

    def print_guess_result(self, result: dict):
        print(f"    {format_feedback(result['feedback'])}")
        if result['is_correct']:
            print(f"Correct in {result['attempts']} attempt(s): {result['grade_name']}")
        elif result['missing_letters']:
            missing = ', '.join(m['letter'] for m in result['missing_letters'])
            print(f"    Not used yet: {missing}")

    def print_summary(self, summary: dict):
        print('\n' + '=' * 40)
        print(f"SESSION SUMMARY: {summary['lesson_name']}")
        print('=' * 40)
        print(f"Words completed: {summary['words_completed']}/{summary['words_total']}")
        print(f"First try: {summary['first_try_correct']}")
        print(f"Skipped: {summary['words_skipped']}")
        print(f"Average grade: {summary['average_grade']}")
        print('=' * 40 + '\n')

    def choose_lesson(self) -> str | None:
        lessons = self.client.list_lessons()
        if not lessons:
            print('No lessons available.')
            return None
        self.print_lessons(lessons)
        while True:
            choice = input('Lesson number (or "exit"): ').strip()
            if choice.lower() == 'exit':
                return None
            if choice.isdigit() and 1 <= int(choice) <= len(lessons):
                return lessons[int(choice) - 1]['name']
            print('Please enter a listed number.')

    def print_due_reviews(self):
        data = self.client.get_due_reviews()
        if not data['cards']:
            print('No reviews due.')
            return
        print(f"{data['total']} review(s) due:")
        for card in data['cards']:
            print(f"  {card['word']} ({card['lesson_name'] or '-'}), due {card['due_at'][:10]}")

    def run(self, lesson_name: str = None, include_reviews: bool = True):
        """Run the main application loop."""
        try:
            self.client.health_check()
        except requests.RequestException:
            print(f"Error: Cannot connect to server at {self.client.base_url}")
            print("Make sure the server is running: python run_server.py")
            return

        if lesson_name is None:
            lesson_name = self.choose_lesson()
        if lesson_name is None:
            print('Goodbye!')
            return

        try:
            session = self.client.start_session(lesson_name, include_reviews=include_reviews)
        except requests.HTTPError as e:
            print(f"Error starting lesson: {error_detail(e)}")
            return
        for warning in session['warnings']:
            print(f"Note: {warning}")
        print(f"\n{session['review_count']} review word(s), {session['lesson_count']} lesson word(s)")
        print('Commands: "skip" to give up on a word, "exit" to quit\n')

        current = session['current']
        while not current['finished']:
            self.print_word(current)
            user_input = input('==> ').strip()

            if user_input.lower() == 'exit':
                break
            if user_input.lower() == 'skip':
                print(f"The word was: {current['word']}")
                current = self.client.skip()
                continue

            try:
                result = self.client.submit_guess(user_input)
            except requests.HTTPError as e:
                print(error_detail(e))
                continue
            self.print_guess_result(result)
            current = result['current']

        self.print_summary(self.client.get_summary())
        print('Goodbye!')
