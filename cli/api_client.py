"""REST API client for spelldle server."""

import requests


class SpelldleAPIClient:
    """Client for communicating with the spelldle REST API."""

    def __init__(self, base_url: str = "http://localhost:8000", user_id: str = "default"):
        self.base_url = base_url.rstrip('/')
        self.user_id = user_id
        self.session = requests.Session()

    def _get(self, endpoint: str, params: dict = None) -> dict:
        """Make a GET request."""
        if params is None:
            params = {}
        params['user_id'] = self.user_id
        response = self.session.get(f"{self.base_url}{endpoint}", params=params)
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, data: dict) -> dict:
        """Make a POST request."""
        data['user_id'] = self.user_id
        response = self.session.post(f"{self.base_url}{endpoint}", json=data)
        response.raise_for_status()
        return response.json()

    def health_check(self) -> dict:
        """Check if the server is running."""
        response = self.session.get(f"{self.base_url}/")
        response.raise_for_status()
        return response.json()

    def list_lessons(self) -> list[dict]:
        return self._get("/api/lessons")['lessons']

    def start_session(self, lesson_name: str, include_reviews: bool = True) -> dict:
        """Start a lesson session."""
        return self._post("/api/session", {
            'lesson_name': lesson_name,
            'include_reviews': include_reviews
        })

    def get_current(self) -> dict:
        return self._get("/api/current")

    def submit_guess(self, guess: str) -> dict:
        """Submit a guess for the current word."""
        return self._post("/api/guess", {'guess': guess})

    def skip(self) -> dict:
        return self._post("/api/skip", {})

    def get_summary(self) -> dict:
        return self._get("/api/summary")

    def get_due_reviews(self, limit: int = 20) -> dict:
        return self._get("/api/reviews/due", {'limit': limit})

    def get_stats(self) -> dict:
        return self._get("/api/stats")
