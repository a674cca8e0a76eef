"""
Round generation and scoring API endpoints
"""
from fastapi import APIRouter, Depends
import logging

from trivia_engine.api.dependencies import get_generator
from trivia_engine.schemas.rounds import (
    GenerateRequest,
    RoundMeta,
    ScoreBreakdown,
    ScoreRoundArgs,
    TriviaPair,
)
from trivia_engine.schemas.trivia import TriviaQuestion
from trivia_engine.services.paired_round import generate_paired_round
from trivia_engine.services.scoring import score_round
from trivia_engine.services.trivia_generator import TriviaGenerator

router = APIRouter(prefix="/api/rounds", tags=["rounds"])
logger = logging.getLogger(__name__)


@router.post("/generate", response_model=TriviaQuestion, response_model_by_alias=True)
async def generate_question(
    request: GenerateRequest,
    generator: TriviaGenerator = Depends(get_generator),
):
    """
    Generate a single question straight from the provider

    Rate-limit and generation failures are returned as errors, there is
    no local fallback on this path.
    """
    return await generator.generate_question(
        category=request.category,
        difficulty=request.difficulty,
        seed=request.seed,
        tone=request.tone,
        role_discriminator=request.role_discriminator,
        diff_token=request.diff_token,
    )


@router.post("/paired", response_model=TriviaPair, response_model_by_alias=True)
async def paired_round(
    meta: RoundMeta,
    generator: TriviaGenerator = Depends(get_generator),
):
    return await generate_paired_round(generator, meta)


@router.post("/score", response_model=ScoreBreakdown)
async def score(args: ScoreRoundArgs):
    return score_round(
        correct=args.correct,
        answered_at=args.answered_at,
        open_at=args.open_at,
        round_ends_at=args.round_ends_at,
        prev_streak=args.prev_streak,
    )
