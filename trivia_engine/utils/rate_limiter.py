"""
Per-key minimum-interval rate limiting for generation requests
"""
import time
import logging
from typing import Callable, Dict

from trivia_engine.errors import RateLimitError

logger = logging.getLogger(__name__)


class MinIntervalRateLimiter:
    """
    In-memory limiter allowing one request per key per interval

    The timestamp is recorded when a request is admitted, so the window
    also covers requests that are still in flight.
    """

    def __init__(self, min_interval_seconds: float = 1.0, clock: Callable[[], float] = time.monotonic):
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._last_call: Dict[str, float] = {}

    def check(self, key: str) -> None:
        """
        Admit a request for key or reject it

        Raises:
            RateLimitError: if the previous request for key was too recent
        """
        now = self._clock()
        last = self._last_call.get(key)
        if last is not None:
            elapsed = now - last
            if elapsed < self.min_interval_seconds:
                retry_after = self.min_interval_seconds - elapsed
                logger.debug(f"Rate limit exceeded for {key}, retry in {retry_after:.2f}s")
                raise RateLimitError("Rate limit: try again in a moment", retry_after=retry_after)
        self._last_call[key] = now

    def reset(self) -> None:
        self._last_call.clear()
