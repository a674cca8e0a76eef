from __future__ import annotations

import pytest
from conftest import EchoChatClient, no_sleep

from trivia_engine.errors import ChatTransportError, ContentGenerationError, RateLimitError
from trivia_engine.schemas.rounds import RoundMeta
from trivia_engine.schemas.trivia import TriviaQuestion
from trivia_engine.services.paired_round import (
    MAX_ATTEMPTS_PER_ROLE,
    diff_token_for,
    generate_for_role,
    generate_paired_round,
)
from trivia_engine.services.trivia_generator import TriviaGenerator
from trivia_engine.utils.rate_limiter import MinIntervalRateLimiter

META = RoundMeta(round_id="r1", round_seed="round-seed", category="science", difficulty="easy", tone="deadpan")


class _FakeGenerator:
    """Stands in for TriviaGenerator; replays per-role outcomes"""

    def __init__(self, outcomes: dict[str, list]) -> None:
        self.outcomes = outcomes
        self.calls: list[dict] = []

    async def generate_question(self, **kwargs) -> TriviaQuestion:
        self.calls.append(kwargs)
        outcome = self.outcomes[kwargs["role_discriminator"]].pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _question(role: str) -> TriviaQuestion:
    return TriviaQuestion.model_validate({
        "category": "science",
        "difficulty": "easy",
        "seedEcho": "round-seed",
        "question": f"Which fact belongs to role {role}?",
        "options": ["One", "Two", "Three", "Four"],
        "correctIndex": 0,
        "explanation": "Because the fixture says so.",
        "quips": {"correct": "Yep.", "incorrect": "Nope."},
    })


def test_diff_token_combines_seed_category_and_difficulty() -> None:
    assert diff_token_for(META) == "round-seed:science:easy"


@pytest.mark.asyncio
async def test_both_roles_share_seed_and_diff_token() -> None:
    generator = _FakeGenerator({"A": [_question("A")], "B": [_question("B")]})

    pair = await generate_paired_round(generator, META, sleep=no_sleep)

    assert "role A" in pair.A.question
    assert "role B" in pair.B.question
    assert {c["diff_token"] for c in generator.calls} == {"round-seed:science:easy"}
    assert {c["seed"] for c in generator.calls} == {"round-seed"}
    assert {c["tone"] for c in generator.calls} == {"deadpan"}


@pytest.mark.asyncio
async def test_role_retries_after_rate_limit_wait() -> None:
    waits: list[float] = []

    async def _sleep(seconds: float) -> None:
        waits.append(seconds)

    generator = _FakeGenerator({"A": [RateLimitError("slow down", retry_after=0.7), _question("A")]})
    question = await generate_for_role(generator, META, "A", diff_token_for(META), sleep=_sleep)

    assert "role A" in question.question
    assert waits == [0.7]


@pytest.mark.asyncio
async def test_round_fails_when_one_role_exhausts_attempts() -> None:
    failures = [ContentGenerationError("bad output") for _ in range(MAX_ATTEMPTS_PER_ROLE)]
    generator = _FakeGenerator({"A": [_question("A")], "B": failures})

    with pytest.raises(ContentGenerationError):
        await generate_paired_round(generator, META, sleep=no_sleep)
    assert sum(1 for c in generator.calls if c["role_discriminator"] == "B") == MAX_ATTEMPTS_PER_ROLE


@pytest.mark.asyncio
async def test_transport_error_is_retried_within_the_role_budget() -> None:
    generator = _FakeGenerator({
        "A": [ChatTransportError(None, "connection reset"), _question("A")],
        "B": [_question("B")],
    })

    pair = await generate_paired_round(generator, META, sleep=no_sleep)

    assert "role A" in pair.A.question
    assert sum(1 for c in generator.calls if c["role_discriminator"] == "A") == 2


@pytest.mark.asyncio
async def test_failed_round_still_waits_for_the_other_role() -> None:
    failures = [ChatTransportError(502, "bad gateway") for _ in range(MAX_ATTEMPTS_PER_ROLE)]
    generator = _FakeGenerator({"A": failures, "B": [_question("B")]})

    with pytest.raises(ChatTransportError):
        await generate_paired_round(generator, META, sleep=no_sleep)
    assert generator.outcomes["B"] == []


@pytest.mark.asyncio
async def test_paired_round_through_real_generator(kv_store) -> None:
    client = EchoChatClient()
    limiter = MinIntervalRateLimiter(0.0)
    generator = TriviaGenerator(client, kv_store, model="test-model", rate_limiter=limiter)

    pair = await generate_paired_round(generator, META, sleep=no_sleep)

    assert pair.A.seed_echo == pair.B.seed_echo == "round-seed"
    assert pair.A.question != pair.B.question
    prompts = [r.messages[1].content for r in client.requests]
    assert any("ROLE: A." in p for p in prompts)
    assert any("ROLE: B." in p for p in prompts)
    assert all("DIFF_TOKEN: round-seed:science:easy." in p for p in prompts)
