"""
Pydantic schemas for generated trivia questions
"""
from pydantic import BaseModel, Field
from typing import Annotated, List, Literal, Optional, get_args


TriviaCategory = Literal[
    "history",
    "science",
    "arts",
    "pop_culture",
    "sports",
    "geography",
    "literature",
    "technology",
]
TRIVIA_CATEGORIES: List[str] = list(get_args(TriviaCategory))

Difficulty = Literal["easy", "medium", "hard"]
DIFFICULTIES: List[str] = list(get_args(Difficulty))

Tone = Literal["snark", "deadpan", "professor", "roast-lite"]
TONES: List[str] = list(get_args(Tone))

RoleDiscriminator = Literal["A", "B"]

OptionText = Annotated[str, Field(min_length=1)]


class Quips(BaseModel):
    """One-liners shown after an answer"""
    correct: str = Field(..., min_length=2, max_length=160)
    incorrect: str = Field(..., min_length=2, max_length=160)


class TriviaQuestion(BaseModel):
    """Canonical generated question; exactly four options, correct_index into them"""
    category: TriviaCategory
    difficulty: Difficulty
    seed_echo: str = Field(..., min_length=1, alias="seedEcho")
    question: str = Field(..., min_length=6, max_length=280)
    options: List[OptionText] = Field(..., min_length=4, max_length=4)
    correct_index: int = Field(..., ge=0, le=3, alias="correctIndex")
    explanation: str = Field(..., min_length=6, max_length=300)
    quips: Quips

    class Config:
        populate_by_name = True

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class PersonalityFlags(BaseModel):
    """Content toggles for generation; keep_kind cannot be switched off"""
    pg13_snark: bool = True
    no_politics: bool = True
    allow_light_innuendo: bool = False
    keep_kind: Literal[True] = True

    @classmethod
    def resolve(cls, overrides: Optional[dict] = None) -> "PersonalityFlags":
        values = dict(overrides or {})
        values["keep_kind"] = True
        return cls(**values)
