"""Configuration constants for spelldle application."""

# Review selection
MAX_REVIEWS_PER_LESSON = 5    # Review words mixed into a lesson session
REVIEW_OVERFETCH_FACTOR = 2   # Candidates fetched per review slot (survives dedup loss)
DESIRED_RETENTION = 0.90      # Target recall probability passed to the scheduler

# Feedback types
GREEN = 'green'
YELLOW = 'yellow'
GRAY = 'gray'
EXTRANEOUS = 'extraneous'

# Grades (FSRS rating scale)
GRADE_AGAIN = 1
GRADE_HARD = 2
GRADE_GOOD = 3
GRADE_EASY = 4
GRADE_NAMES = {
    GRADE_AGAIN: 'Again',
    GRADE_HARD: 'Hard',
    GRADE_GOOD: 'Good',
    GRADE_EASY: 'Easy',
}

# Drill
CLUE_PHASE_AFTER_ATTEMPTS = 1  # Wrong guesses before the length-checked clue phase

# Progress tracking
MAX_PERMANENT_FAILURES = 50   # Oldest entries dropped beyond this

# Retry policy for collaborator calls
RETRY_MAX_ATTEMPTS = 3
RETRY_DELAY_MS = 1000         # Doubles after each failed attempt

# Default locations
DEFAULT_CONFIG_FILE = '~/.config/spelldle/config.json'
DEFAULT_LESSONS_FILE = 'lessons.csv'
