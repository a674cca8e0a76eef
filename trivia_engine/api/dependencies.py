"""
FastAPI dependencies resolving services built at startup
"""
from fastapi import Request
from typing import Iterator

from trivia_engine.services.fill_queue import FillQueue
from trivia_engine.services.game_service import GameSessionService
from trivia_engine.services.library_service import LibraryService
from trivia_engine.services.trivia_generator import TriviaGenerator


def get_generator(request: Request) -> TriviaGenerator:
    return request.app.state.generator


def get_library(request: Request) -> LibraryService:
    return request.app.state.library


def get_fill_queue(request: Request) -> FillQueue:
    return request.app.state.fill_queue


def get_pack_delay(request: Request) -> float:
    return request.app.state.pack_delay


def get_game_service(session_id: str, request: Request) -> Iterator[GameSessionService]:
    """
    One service per live session id, restored from the key-value store on first use

    Each session owns its question bank. A session left without a game
    after the request (reset, or never created) is dropped from memory.
    """
    sessions = request.app.state.sessions
    service = sessions.get(session_id)
    if service is None:
        service = GameSessionService(
            request.app.state.bank_factory(),
            request.app.state.kv_store,
            namespace=session_id,
        )
        sessions[session_id] = service
    try:
        yield service
    finally:
        if not service.has_game:
            sessions.pop(session_id, None)
