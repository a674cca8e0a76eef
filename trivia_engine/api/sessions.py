"""
Game session API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from typing import Optional
import logging

from trivia_engine.api.dependencies import get_game_service
from trivia_engine.schemas.game import (
    AnswerRequest,
    AnswerResult,
    BankQuestion,
    BankStats,
    GameState,
    GameStats,
    JoinRequest,
    MultiplayerRequest,
    QuestionRequest,
    SinglePlayerRequest,
)
from trivia_engine.services.game_service import GameSessionService

router = APIRouter(prefix="/api/sessions/{session_id}", tags=["sessions"])
logger = logging.getLogger(__name__)


@router.post("/single", response_model=GameState, status_code=201)
async def create_single_player_game(
    request: SinglePlayerRequest,
    game: GameSessionService = Depends(get_game_service),
):
    """Start a solo game; it is active immediately"""
    return game.create_single_player_game(request.player_name)


@router.post("/multiplayer", response_model=GameState, status_code=201)
async def create_multiplayer_game(
    request: MultiplayerRequest,
    game: GameSessionService = Depends(get_game_service),
):
    """Open a multiplayer game that waits for a second player"""
    return game.create_multiplayer_game(request.host_name, request.game_code)


@router.post("/join", response_model=GameState)
async def join_multiplayer_game(
    request: JoinRequest,
    game: GameSessionService = Depends(get_game_service),
):
    state = game.join_multiplayer_game(request.player_name, request.game_code)
    if state is None:
        raise HTTPException(status_code=404, detail="No waiting game with that code")
    return state


@router.post("/question", response_model=Optional[BankQuestion])
async def next_question(
    request: QuestionRequest,
    game: GameSessionService = Depends(get_game_service),
):
    """
    Draw the next question

    A category may be chosen only while the current player holds the
    streak privilege; otherwise one is picked at random.
    """
    category = request.category
    if category and not game.can_choose_category():
        raise HTTPException(status_code=403, detail="Category choice requires a streak of 3")
    return await game.get_next_question(category)


@router.post("/answer", response_model=AnswerResult)
async def answer_question(
    request: AnswerRequest,
    game: GameSessionService = Depends(get_game_service),
):
    return game.answer_question(request.answer_index)


@router.get("/state", response_model=GameState)
async def get_state(game: GameSessionService = Depends(get_game_service)):
    state = game.get_game_state()
    if state is None:
        raise HTTPException(status_code=404, detail="Game not found")
    return state


@router.get("/stats", response_model=GameStats)
async def get_stats(game: GameSessionService = Depends(get_game_service)):
    return game.get_game_stats()


@router.get("/can-choose")
async def can_choose_category(game: GameSessionService = Depends(get_game_service)):
    return {"can_choose_category": game.can_choose_category()}


@router.delete("/", status_code=204)
async def reset_game(game: GameSessionService = Depends(get_game_service)):
    game.reset_game()


@router.get("/bank/stats", response_model=BankStats)
async def bank_stats(game: GameSessionService = Depends(get_game_service)):
    """Stock of the question bank owned by this session"""
    return game.bank.get_stats()
