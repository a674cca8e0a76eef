"""
Pydantic schemas for the question library
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional

from trivia_engine.schemas.trivia import Difficulty, Tone, TriviaCategory, TriviaQuestion


LibrarySource = Literal["library", "generated", "imported", "cloud"]


class QuestionDoc(TriviaQuestion):
    """Library-stored question"""
    id: str = Field(..., min_length=1)
    stem_hash: str = Field(..., min_length=1, alias="stemHash")
    tone: Optional[Tone] = None
    created_at: int = Field(..., ge=0, alias="createdAt")
    source: Optional[LibrarySource] = None
    used_at: Optional[int] = Field(None, alias="usedAt")

    class Config:
        populate_by_name = True


class QuestionDocInput(TriviaQuestion):
    """Candidate for insertion; library fills in whatever is missing"""
    id: Optional[str] = None
    stem_hash: Optional[str] = Field(None, alias="stemHash")
    tone: Optional[Tone] = None
    created_at: Optional[int] = Field(None, alias="createdAt")
    source: Optional[LibrarySource] = None
    used_at: Optional[int] = Field(None, alias="usedAt")

    class Config:
        populate_by_name = True


class UniqueResult(BaseModel):
    doc: QuestionDoc
    duplicate: bool


class InsertSummary(BaseModel):
    inserted: int = 0
    duplicates: int = 0


class ImportSummary(InsertSummary):
    total: int = 0


class LibraryCounts(BaseModel):
    total: int
    by_category: Dict[str, int]
    by_difficulty: Dict[str, int]


class DrawRequest(BaseModel):
    category: TriviaCategory
    difficulty: Difficulty
    exclude_ids: List[str] = []


class PackRequest(BaseModel):
    category: TriviaCategory
    difficulty: Difficulty
    tone: Tone = "snark"
    count: int = Field(..., ge=1, le=100)
    seed_base: Optional[str] = None
