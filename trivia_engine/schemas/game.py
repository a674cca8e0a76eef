"""
Pydantic schemas for game sessions and the session question bank
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional, get_args


GameCategory = Literal["History", "Science", "Pop Culture", "Art & Music", "Sports", "Random"]
GAME_CATEGORIES: List[str] = list(get_args(GameCategory))

GameStatus = Literal["waiting", "active", "completed"]
GameMode = Literal["single", "multiplayer"]


class BankQuestion(BaseModel):
    """Ready-to-serve question held by the session bank"""
    id: str
    category: str
    question: str
    choices: List[str] = Field(..., min_length=4, max_length=4)
    answer_index: int = Field(..., ge=0, le=3)
    correct_quip: str
    wrong_answer_quips: Dict[str, str] = {}
    used: bool = False


class Player(BaseModel):
    id: str
    name: str
    completed_categories: List[GameCategory] = []
    streak: int = Field(0, ge=0)
    score: int = 0
    is_host: bool = False


class GameState(BaseModel):
    id: str
    status: GameStatus
    current_turn: str
    players: List[Player]
    winner: Optional[str] = None
    game_mode: GameMode
    current_category: Optional[GameCategory] = None
    current_question: Optional[BankQuestion] = None


class GameStats(BaseModel):
    total_questions: int = 0
    correct_answers: int = 0
    accuracy: int = 0
    longest_streak: int = 0
    categories_completed: int = 0
    session_time: int = 0  # seconds since the game was created


class AnswerResult(BaseModel):
    correct: bool
    quip: str


class BankStats(BaseModel):
    total: int
    used: int
    available: int


# Request bodies

class SinglePlayerRequest(BaseModel):
    player_name: str = Field(..., min_length=1, max_length=40)


class MultiplayerRequest(BaseModel):
    host_name: str = Field(..., min_length=1, max_length=40)
    game_code: str = Field(..., min_length=1, max_length=32)


class JoinRequest(BaseModel):
    player_name: str = Field(..., min_length=1, max_length=40)
    game_code: str = Field(..., min_length=1, max_length=32)


class QuestionRequest(BaseModel):
    category: Optional[GameCategory] = None


class AnswerRequest(BaseModel):
    answer_index: int = Field(..., ge=0, le=3)
