"""
Exponential backoff with jitter for chat backend calls
"""
import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from trivia_engine.errors import ChatTransportError
from trivia_engine.schemas.chat import ChatRequest, ChatResponse
from trivia_engine.services.chat_client import ChatClient

logger = logging.getLogger(__name__)

JITTER_RATIO = 0.25

RetryCallback = Callable[[int, int], None]


def backoff_delay(attempt_index: int, base_delay: float, rng: Optional[random.Random] = None) -> float:
    """Delay before retrying after the 0-based attempt_index, base doubled per attempt +/-25%"""
    rng = rng or random
    exp = base_delay * (2 ** attempt_index)
    jitter = rng.uniform(-JITTER_RATIO, JITTER_RATIO) * exp
    return max(0.0, exp + jitter)


async def chat_with_retry(
    client: ChatClient,
    request: ChatRequest,
    attempts: int = 3,
    base_delay: float = 0.5,
    on_retry: Optional[RetryCallback] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> ChatResponse:
    """
    Call client.chat, retrying on 429, 5xx and connection failures

    on_retry receives the upcoming 1-based attempt number and the total.

    Raises:
        ChatTransportError: non-retryable status, or retries exhausted
    """
    for i in range(attempts):
        try:
            return await client.chat(request)
        except ChatTransportError as e:
            if not e.retryable or i >= attempts - 1:
                raise
            delay = backoff_delay(i, base_delay)
            logger.debug(f"Chat call failed ({e.status_code}), retry {i + 2}/{attempts} in {delay:.2f}s")
            if on_retry:
                on_retry(i + 2, attempts)
            await sleep(delay)
    raise ChatTransportError(None, "no attempts made")
