"""
Paired-round generation: one question per role, matched in difficulty
"""
import asyncio
import logging
from typing import Awaitable, Callable

from trivia_engine.errors import ChatTransportError, ContentGenerationError, RateLimitError
from trivia_engine.schemas.rounds import RoundMeta, TriviaPair
from trivia_engine.schemas.trivia import TriviaQuestion
from trivia_engine.services.trivia_generator import TriviaGenerator

logger = logging.getLogger(__name__)

MAX_ATTEMPTS_PER_ROLE = 3


def diff_token_for(meta: RoundMeta) -> str:
    return f"{meta.round_seed}:{meta.category}:{meta.difficulty}"


async def generate_for_role(
    generator: TriviaGenerator,
    meta: RoundMeta,
    role: str,
    diff_token: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> TriviaQuestion:
    """
    Generate the question for one role

    Both roles share a category, so a rate-limit rejection waits out the
    window and counts as an attempt. Content and transport failures are
    retried immediately.
    """
    last_error: Exception = ContentGenerationError(f"Role {role} generation not attempted")
    for attempt in range(1, MAX_ATTEMPTS_PER_ROLE + 1):
        try:
            return await generator.generate_question(
                category=meta.category,
                difficulty=meta.difficulty,
                tone=meta.tone,
                seed=meta.round_seed,
                role_discriminator=role,
                diff_token=diff_token,
            )
        except RateLimitError as e:
            last_error = e
            if attempt < MAX_ATTEMPTS_PER_ROLE:
                await sleep(e.retry_after)
        except (ContentGenerationError, ChatTransportError) as e:
            logger.debug(f"Round {meta.round_id} role {role} attempt {attempt} failed: {str(e)}")
            last_error = e
    raise last_error


async def generate_paired_round(
    generator: TriviaGenerator,
    meta: RoundMeta,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> TriviaPair:
    """Generate both roles concurrently; fails if either role runs out of attempts"""
    diff_token = diff_token_for(meta)
    a, b = await asyncio.gather(
        generate_for_role(generator, meta, "A", diff_token, sleep),
        generate_for_role(generator, meta, "B", diff_token, sleep),
        return_exceptions=True,
    )
    for outcome in (a, b):
        if isinstance(outcome, BaseException):
            raise outcome
    logger.info(f"Paired round {meta.round_id} generated for {meta.category}/{meta.difficulty}")
    return TriviaPair(A=a, B=b)
