"""FastAPI server for spelldle application."""

import logging
import os
import uuid

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from typing import Optional

from core.config import GRADE_NAMES, MAX_REVIEWS_PER_LESSON, DESIRED_RETENTION
from core.drill import Drill
from core.interfaces import LessonSource, ReviewScheduler, Storage
from core.models import NotFound, Progress
from core.session import build_lesson_session, fetch_review_session
from core.utils import export_to_csv, export_to_json

from server.file_storage import FileStorage
from server.postgres_storage import PostgresStorage
from server.scheduler import FSRSScheduler, RetryingScheduler

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Pydantic models for API
class SessionRequest(BaseModel):
    lesson_name: str
    user_id: str = "default"
    include_reviews: bool = True


class GuessRequest(BaseModel):
    guess: str
    user_id: str = "default"


class SkipRequest(BaseModel):
    user_id: str = "default"


class CurrentWordResponse(BaseModel):
    word: Optional[str]
    sentence: Optional[str]
    lesson_name: Optional[str]
    is_review: bool
    position: int
    remaining: int
    attempts: int
    clue_phase: bool
    finished: bool


class SessionResponse(BaseModel):
    session_id: str
    lesson_name: str
    status: str  # ok | degraded
    warnings: list[str]
    review_count: int
    lesson_count: int
    current: CurrentWordResponse


class GuessResponse(BaseModel):
    is_correct: bool
    feedback: list[dict]  # [{letter, type, position}]
    missing_letters: list[dict]  # [{letter, position}]
    attempts: int
    grade: Optional[int]
    grade_name: Optional[str]
    current: CurrentWordResponse


class AppContext:
    """Collaborators and per-user drill state for one server instance."""

    def __init__(self, storage: Storage, lessons: LessonSource, scheduler: ReviewScheduler):
        self.storage = storage
        self.lessons = lessons
        self.scheduler = scheduler
        self.drills: dict[str, Drill] = {}
        self.session_ids: dict[str, str] = {}
        self.progress: dict[str, Progress] = {}

    def get_progress(self, user_id: str, create: bool = False) -> Progress:
        """Get or load progress for a user.

        Stored progress is cached. A user with nothing stored gets a blank
        Progress that is only cached when `create` is set, i.e. when the
        caller is about to record something for them.
        """
        if user_id in self.progress:
            return self.progress[user_id]
        data = self.storage.load_progress(user_id)
        if not data and not create:
            return Progress()
        self.progress[user_id] = Progress.from_dict(data) if data else Progress()
        return self.progress[user_id]

    def save_progress(self, user_id: str) -> None:
        if user_id in self.progress:
            self.storage.save_progress(self.progress[user_id].to_dict(), user_id)

    def log_event(self, event: str, user_id: str, **data) -> None:
        self.storage.log_event(event, user_id, self.session_ids.get(user_id), **data)

    def preferences(self) -> dict:
        config = self.storage.load_config()
        return {
            'max_reviews_per_lesson': int(config.get('max_reviews_per_lesson', MAX_REVIEWS_PER_LESSON)),
            'desired_retention': float(config.get('desired_retention', DESIRED_RETENTION)),
        }


def context_from_env() -> AppContext:
    """Build storage and scheduler from environment settings."""
    # File storage by default, set SPELLDLE_STORAGE=postgres to use PostgreSQL
    storage_type = os.environ.get('SPELLDLE_STORAGE', 'file')
    if storage_type == 'postgres':
        storage = PostgresStorage()
        logger.info("Using PostgreSQL storage")
    else:
        storage = FileStorage()
        logger.info("Using file storage")
    retention = float(storage.load_config().get('desired_retention', DESIRED_RETENTION))
    scheduler = RetryingScheduler(FSRSScheduler(storage, desired_retention=retention))
    return AppContext(storage, storage, scheduler)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_drill(ctx: AppContext, user_id: str) -> Drill:
    drill = ctx.drills.get(user_id)
    if drill is None:
        raise HTTPException(status_code=400, detail="No active session")
    return drill


def current_word(drill: Drill) -> CurrentWordResponse:
    item = drill.current
    return CurrentWordResponse(
        word=item.word if item else None,
        sentence=item.sentence if item else None,
        lesson_name=item.lesson_name if item else None,
        is_review=item.is_review if item else False,
        position=drill.index,
        remaining=drill.remaining,
        attempts=drill.attempts,
        clue_phase=drill.in_clue_phase,
        finished=drill.is_finished
    )


async def replay_grade_retries(ctx: AppContext, user_id: str) -> None:
    """Retry grade writes that failed earlier for this user."""
    progress = ctx.get_progress(user_id)
    pending = progress.take_grade_retries()
    if not pending:
        return
    for entry in pending:
        try:
            await ctx.scheduler.record_grade_async(user_id, entry['word'], entry['lesson_name'], entry['grade'])
            logger.info(f"Replayed grade for {user_id}/{entry['word']}")
        except Exception as e:
            logger.warning(f"Replaying grade failed for {user_id}/{entry['word']}: {type(e).__name__}: {e}")
            if not progress.requeue_grade_retry(entry, str(e)):
                logger.error(f"Giving up on grade for {user_id}/{entry['word']}")
    ctx.save_progress(user_id)


async def finish_word(ctx: AppContext, user_id: str, drill: Drill, result) -> None:
    """Send the grade to the scheduler and close out the drill if done."""
    await replay_grade_retries(ctx, user_id)
    item = result.item
    try:
        await ctx.scheduler.record_grade_async(user_id, item.word, item.lesson_name, result.grade)
    except Exception as e:
        logger.error(f"Recording grade failed for {user_id}/{item.word}: {type(e).__name__}: {e}")
        ctx.get_progress(user_id, create=True).queue_grade_retry(item.word, item.lesson_name, result.grade, str(e))
        ctx.save_progress(user_id)
    ctx.log_event('word.complete', user_id, **result.to_dict())

    if drill.is_finished:
        summary = drill.summary()
        ctx.get_progress(user_id, create=True).record_session(drill.session.lesson_name, summary)
        ctx.save_progress(user_id)
        ctx.log_event('session.finish', user_id, **summary)


router = APIRouter()


@router.get("/")
async def root():
    """Health check."""
    return {"name": "spelldle", "status": "ok"}


@router.get("/api/lessons")
async def list_lessons(request: Request):
    """List lessons with their word counts."""
    ctx = get_context(request)
    words = ctx.lessons.load_words()
    lessons = []
    for name in ctx.lessons.list_lessons():
        lessons.append({
            'name': name,
            'word_count': sum(1 for w in words if w.lesson_name == name)
        })
    return {"lessons": lessons}


@router.post("/api/session", response_model=SessionResponse)
async def start_session(request: Request, body: SessionRequest):
    """Start a lesson, optionally with due reviews merged in front."""
    ctx = get_context(request)
    words = ctx.lessons.load_words()
    await replay_grade_retries(ctx, body.user_id)

    if body.include_reviews:
        max_reviews = ctx.preferences()['max_reviews_per_lesson']
        result = await fetch_review_session(
            ctx.scheduler, body.user_id, body.lesson_name, words, max_reviews
        )
    else:
        result = build_lesson_session(body.lesson_name, words)

    if isinstance(result, NotFound):
        raise HTTPException(status_code=404, detail=result.message)

    warnings = list(getattr(result, 'warnings', ()))
    for warning in warnings:
        logger.warning(f"Session for {body.user_id}: {warning}")

    session = result.session
    drill = Drill(session)
    ctx.drills[body.user_id] = drill
    ctx.session_ids[body.user_id] = str(uuid.uuid4())[:8]
    ctx.log_event('session.start', body.user_id,
                  lesson_name=session.lesson_name,
                  review_count=session.review_count,
                  lesson_count=session.lesson_count,
                  status=result.status)

    return SessionResponse(
        session_id=ctx.session_ids[body.user_id],
        lesson_name=session.lesson_name,
        status=result.status,
        warnings=warnings,
        review_count=session.review_count,
        lesson_count=session.lesson_count,
        current=current_word(drill)
    )


@router.get("/api/current", response_model=CurrentWordResponse)
async def get_current(request: Request, user_id: str = "default"):
    """Get the word currently being practiced."""
    return current_word(get_drill(get_context(request), user_id))


@router.post("/api/guess", response_model=GuessResponse)
async def submit_guess(request: Request, body: GuessRequest):
    """Submit a guess for the current word."""
    ctx = get_context(request)
    drill = get_drill(ctx, body.user_id)
    if drill.is_finished:
        raise HTTPException(status_code=400, detail="Session is finished")

    outcome = drill.submit(body.guess)
    if not outcome['valid']:
        raise HTTPException(status_code=400, detail=outcome['message'])

    feedback = outcome['feedback']
    result = outcome['result']
    if result is not None:
        await finish_word(ctx, body.user_id, drill, result)

    return GuessResponse(
        is_correct=feedback.is_correct,
        feedback=[e.to_dict() for e in feedback.entries],
        missing_letters=[{'letter': letter, 'position': pos} for letter, pos in outcome['missing_letters']],
        attempts=outcome['attempts'],
        grade=result.grade if result else None,
        grade_name=GRADE_NAMES[result.grade] if result else None,
        current=current_word(drill)
    )


@router.post("/api/skip", response_model=CurrentWordResponse)
async def skip_word(request: Request, body: SkipRequest):
    """Give up on the current word."""
    ctx = get_context(request)
    drill = get_drill(ctx, body.user_id)
    result = drill.skip()
    if result is None:
        raise HTTPException(status_code=400, detail="Session is finished")
    await finish_word(ctx, body.user_id, drill, result)
    return current_word(drill)


@router.get("/api/summary")
async def get_summary(request: Request, user_id: str = "default"):
    """Summary of the current drill."""
    drill = get_drill(get_context(request), user_id)
    summary = drill.summary()
    summary['results'] = [r.to_dict() for r in drill.results]
    return summary


@router.get("/api/reviews/due")
async def get_due_reviews(request: Request, user_id: str = "default", limit: int = 20):
    """List due review cards, earliest first."""
    ctx = get_context(request)
    try:
        cards = await ctx.scheduler.select_due_cards(user_id, limit)
    except Exception as e:
        logger.error(f"Due card listing failed for {user_id}: {e}")
        raise HTTPException(status_code=503, detail="Review scheduler unavailable")
    return {"total": len(cards), "cards": [c.to_dict() for c in cards]}


@router.get("/api/stats")
async def get_stats(request: Request, user_id: str = "default"):
    """Get lesson statistics for a user."""
    return get_context(request).get_progress(user_id).to_dict()


@router.get("/api/stats/export")
async def export_stats(request: Request, user_id: str = "default", fmt: str = "json"):
    """Export lesson statistics as CSV or JSON."""
    progress = get_context(request).get_progress(user_id)
    if fmt == 'csv':
        return PlainTextResponse(export_to_csv(progress.stats_rows()), media_type='text/csv')
    if fmt == 'json':
        return PlainTextResponse(export_to_json(progress.to_dict()), media_type='application/json')
    raise HTTPException(status_code=400, detail=f"Unknown export format: {fmt}")


@router.get("/api/events/recent")
async def get_recent_events(request: Request, user_id: str, event_type: str = None, limit: int = 50):
    """Get recent events for a user."""
    storage = get_context(request).storage
    if not hasattr(storage, 'get_user_events'):
        return {"events": []}
    events = storage.get_user_events(user_id, event_type, limit)
    for event in events:
        if 'timestamp' in event and hasattr(event['timestamp'], 'isoformat'):
            event['timestamp'] = event['timestamp'].isoformat()
    return {"events": events}


def create_app(context: AppContext = None) -> FastAPI:
    """Factory function for creating the app (useful for testing)."""
    app = FastAPI(title="Spelldle API", description="Spelling drill with spaced repetition")
    app.state.context = context
    app.include_router(router)

    if context is None:
        @app.on_event("startup")
        async def startup():
            """Initialize storage and scheduler on startup."""
            app.state.context = context_from_env()

    return app


app = create_app()
