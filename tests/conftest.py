from __future__ import annotations

import json
import random
from typing import Any, Callable

import pytest

from trivia_engine.database import create_engine_for, create_session_factory, init_db
from trivia_engine.errors import ChatTransportError
from trivia_engine.schemas.chat import ChatChoice, ChatMessage, ChatRequest, ChatResponse
from trivia_engine.utils.cache import InMemoryKeyValueStore


def chat_response(content: str, model: str = "test-model") -> ChatResponse:
    return ChatResponse(
        id="resp-1",
        choices=[ChatChoice(index=0, message=ChatMessage(role="assistant", content=content))],
        model=model,
    )


def trivia_payload(seed: str = "seed-1", **overrides: Any) -> dict[str, Any]:
    payload = {
        "category": "science",
        "difficulty": "easy",
        "seedEcho": seed,
        "question": "What gas do plants absorb during photosynthesis?",
        "options": ["Oxygen", "Hydrogen", "Carbon Dioxide", "Nitrogen"],
        "correctIndex": 2,
        "explanation": "Plants absorb carbon dioxide and release oxygen.",
        "quips": {"correct": "Photosynthetic perfection.", "incorrect": "That pick didn't leaf a mark."},
    }
    payload.update(overrides)
    return payload


class ScriptedChatClient:
    """Replays queued replies; a queued exception is raised instead of returned"""

    def __init__(self, replies: list[Any] | None = None) -> None:
        self.replies = list(replies or [])
        self.requests: list[ChatRequest] = []

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    async def chat(self, request: ChatRequest) -> ChatResponse:
        self.requests.append(request)
        if not self.replies:
            raise AssertionError("unexpected chat call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            reply = json.dumps(reply)
        return chat_response(reply, model=request.model)

    @property
    def calls(self) -> int:
        return len(self.requests)


class EchoChatClient:
    """Answers every generation request with a valid question echoing its seed"""

    def __init__(self, build: Callable[[str, str], dict[str, Any]] | None = None) -> None:
        self.requests: list[ChatRequest] = []
        self._build = build

    async def chat(self, request: ChatRequest) -> ChatResponse:
        self.requests.append(request)
        user = request.messages[-1].content
        seed = user.split("SEED: ", 1)[1].split(".", 1)[0]
        role = user.split("ROLE: ", 1)[1].split(".", 1)[0]
        payload = self._build(seed, role) if self._build else trivia_payload(
            seed,
            question=f"Question number {len(self.requests)} for role {role}?",
        )
        return chat_response(json.dumps(payload), model=request.model)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def no_sleep(_seconds: float) -> None:
    return None


def transport_error(status_code: int | None) -> ChatTransportError:
    return ChatTransportError(status_code, "boom")


@pytest.fixture
def engine():
    engine = create_engine_for("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(7)
