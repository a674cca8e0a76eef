"""
Pydantic schemas for paired rounds and scoring
"""
from pydantic import BaseModel, Field
from typing import Literal, Optional

from trivia_engine.schemas.trivia import Difficulty, Tone, TriviaCategory, TriviaQuestion


RoundType = Literal["normal", "binary_blitz", "speed_link", "final_attack"]


class RoundMeta(BaseModel):
    round_id: str
    round_seed: str = Field(..., min_length=1)
    category: TriviaCategory
    difficulty: Difficulty
    tone: Optional[Tone] = None
    type: RoundType = "normal"


class TriviaPair(BaseModel):
    """Two fact-distinct questions of matched difficulty for roles A and B"""
    A: TriviaQuestion
    B: TriviaQuestion


class ScoreRoundArgs(BaseModel):
    """Timestamps are epoch milliseconds"""
    correct: bool
    answered_at: int
    open_at: int
    round_ends_at: int
    prev_streak: int = Field(0, ge=0)


class ScoreBreakdown(BaseModel):
    base: int
    time_bonus: int
    streak_bonus: int
    delta: int
    next_streak: int


class GenerateRequest(BaseModel):
    category: TriviaCategory
    difficulty: Difficulty
    seed: Optional[str] = None
    tone: Optional[Tone] = None
    role_discriminator: Literal["A", "B"] = "A"
    diff_token: Optional[str] = None
