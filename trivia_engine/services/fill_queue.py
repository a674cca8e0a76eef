"""
Fill queue: paced batch generation into the durable library
"""
import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from trivia_engine.errors import ChatTransportError, ContentGenerationError, RateLimitError
from trivia_engine.schemas.library import QuestionDocInput
from trivia_engine.schemas.trivia import Difficulty, Tone, TriviaCategory
from trivia_engine.services.library_mirror import LibraryMirror
from trivia_engine.services.library_service import LibraryService
from trivia_engine.services.trivia_generator import TriviaGenerator

logger = logging.getLogger(__name__)


class FillOptions(BaseModel):
    category: TriviaCategory
    difficulty: Difficulty
    tone: Tone = "snark"
    amount: int = Field(..., ge=1, le=500)
    delay_seconds: Optional[float] = Field(None, ge=0)
    sync_to_cloud: bool = False
    job_id: Optional[str] = Field(None, min_length=1, max_length=64)


class FillSummary(BaseModel):
    job_id: str
    requested: int
    processed: int = 0
    inserted: int = 0
    duplicates: int = 0
    errors: int = 0
    cancelled: bool = False


class FillJob:
    """One fill run; cancelling it never touches other runs"""

    def __init__(self, job_id: str, options: FillOptions):
        self.id = job_id
        self.options = options
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FillQueue:
    """
    Generates questions one at a time and stores each as it arrives

    Generation failures are counted and skipped; library failures propagate.
    """

    def __init__(
        self,
        generator: TriviaGenerator,
        library: LibraryService,
        mirror: Optional[LibraryMirror] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        default_delay: float = 1.2,
    ):
        self.generator = generator
        self.library = library
        self.mirror = mirror
        self.default_delay = default_delay
        self._sleep = sleep
        self.jobs: Dict[str, FillJob] = {}

    def create_job(self, options: FillOptions) -> FillJob:
        """
        Register a run so it can be cancelled by id while it is going

        Raises:
            ValueError: a run with the same id is still going
        """
        job_id = options.job_id or uuid.uuid4().hex
        if job_id in self.jobs:
            raise ValueError(f"Fill {job_id} is already running")
        job = FillJob(job_id, options)
        self.jobs[job_id] = job
        return job

    def cancel(self, job_id: str) -> bool:
        """Stop the given run after the item in progress; False if it is not running"""
        job = self.jobs.get(job_id)
        if job is None:
            return False
        job.cancel()
        return True

    async def start(self, db: Session, options: FillOptions) -> FillSummary:
        return await self.run(db, self.create_job(options))

    async def run(self, db: Session, job: FillJob) -> FillSummary:
        options = job.options
        delay = self.default_delay if options.delay_seconds is None else options.delay_seconds
        summary = FillSummary(job_id=job.id, requested=options.amount)

        try:
            for i in range(options.amount):
                if job.cancelled:
                    break
                try:
                    trivia = await self.generator.generate_question(
                        category=options.category,
                        difficulty=options.difficulty,
                        tone=options.tone,
                    )
                except (ContentGenerationError, RateLimitError, ChatTransportError) as e:
                    logger.error(f"Fill {job.id} generation error: {str(e)}")
                    summary.errors += 1
                else:
                    candidate = QuestionDocInput(**trivia.model_dump(), tone=options.tone, source="generated")
                    unique = self.library.ensure_unique_by_hash(db, candidate)
                    result = self.library.put_many(db, [QuestionDocInput(**unique.doc.model_dump())])
                    summary.inserted += result.inserted
                    summary.duplicates += result.duplicates
                    if options.sync_to_cloud and result.inserted > 0 and self.mirror is not None:
                        await self.mirror.upsert_many([unique.doc])

                summary.processed += 1
                if job.cancelled:
                    break
                if delay > 0 and i < options.amount - 1:
                    await self._sleep(delay)
        finally:
            self.jobs.pop(job.id, None)

        summary.cancelled = job.cancelled
        logger.info(
            f"Fill {job.id} finished for {options.category}/{options.difficulty}: "
            f"{summary.inserted} inserted, {summary.duplicates} duplicates, {summary.errors} errors"
        )
        return summary
