"""
Question library API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from trivia_engine.api.dependencies import get_fill_queue, get_generator, get_library, get_pack_delay
from trivia_engine.database import get_db
from trivia_engine.schemas.game import BankQuestion
from trivia_engine.schemas.library import (
    DrawRequest,
    ImportSummary,
    LibraryCounts,
    PackRequest,
    QuestionDoc,
)
from trivia_engine.schemas.trivia import Difficulty, TriviaCategory
from trivia_engine.services.fill_queue import FillOptions, FillQueue, FillSummary
from trivia_engine.services.library_service import LibraryService
from trivia_engine.services.packs import export_pack, generate_pack, import_pack
from trivia_engine.services.quip_fallback import to_bank_question
from trivia_engine.services.trivia_generator import TriviaGenerator

router = APIRouter(prefix="/api/library", tags=["library"])
logger = logging.getLogger(__name__)


@router.get("/counts", response_model=LibraryCounts)
async def library_counts(
    db: Session = Depends(get_db),
    library: LibraryService = Depends(get_library),
):
    return library.counts(db)


@router.get("/questions", response_model=List[QuestionDoc])
async def list_questions(
    category: Optional[TriviaCategory] = None,
    difficulty: Optional[Difficulty] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    library: LibraryService = Depends(get_library),
):
    return library.list_questions(db, category, difficulty, limit=limit, offset=offset)


@router.post("/draw", response_model=BankQuestion)
async def draw_question(
    request: DrawRequest,
    db: Session = Depends(get_db),
    library: LibraryService = Depends(get_library),
):
    """
    Draw an unused library question in bank form and mark it used

    Falls back to any difficulty within the category.
    """
    doc = library.draw_one(db, request.category, request.difficulty, request.exclude_ids)
    if doc is None:
        raise HTTPException(status_code=404, detail="No unused questions for that category")
    library.mark_used(db, doc.id)
    return to_bank_question(doc, doc.id)


@router.post("/{question_id}/used", status_code=204)
async def mark_used(
    question_id: str,
    db: Session = Depends(get_db),
    library: LibraryService = Depends(get_library),
):
    if not library.mark_used(db, question_id):
        raise HTTPException(status_code=404, detail="Question not found")


@router.post("/import", response_model=ImportSummary)
async def import_questions(
    request: Request,
    db: Session = Depends(get_db),
    library: LibraryService = Depends(get_library),
):
    """Import a pack document; every item is re-validated and de-duplicated"""
    return import_pack(db, library, await request.body())


@router.get("/export")
async def export_questions(
    category: Optional[TriviaCategory] = None,
    difficulty: Optional[Difficulty] = None,
    db: Session = Depends(get_db),
    library: LibraryService = Depends(get_library),
):
    docs = library.list_questions(db, category, difficulty)
    logger.info(f"Exporting {len(docs)} library questions")
    return Response(content=export_pack(docs), media_type="application/json")


@router.post("/fill", response_model=FillSummary)
async def fill_library(
    options: FillOptions,
    db: Session = Depends(get_db),
    fill_queue: FillQueue = Depends(get_fill_queue),
):
    """
    Generate questions into the library, paced to respect the rate limit

    Pass job_id to be able to cancel the fill from another request.
    """
    try:
        job = fill_queue.create_job(options)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return await fill_queue.run(db, job)


@router.post("/fill/{job_id}/cancel", status_code=204)
async def cancel_fill(job_id: str, fill_queue: FillQueue = Depends(get_fill_queue)):
    """Stop a running fill after the item in progress"""
    if not fill_queue.cancel(job_id):
        raise HTTPException(status_code=404, detail="No running fill with that id")


@router.post("/pack")
async def generate_question_pack(
    request: PackRequest,
    generator: TriviaGenerator = Depends(get_generator),
    delay: float = Depends(get_pack_delay),
):
    """Generate a pack document without storing it; import it later to keep it"""
    docs = await generate_pack(
        generator,
        request.count,
        request.category,
        request.difficulty,
        request.tone,
        seed_base=request.seed_base,
        delay=delay,
    )
    meta = {"category": request.category, "difficulty": request.difficulty, "tone": request.tone}
    return Response(content=export_pack(docs, meta), media_type="application/json")
