"""
Exception hierarchy for the trivia engine
"""
from typing import Optional


class TriviaEngineError(Exception):
    pass


class ContentGenerationError(TriviaEngineError):
    """Generation exhausted its retries or produced unusable content"""


class SchemaValidationError(ContentGenerationError):
    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail


class SeedEchoMismatchError(ContentGenerationError):
    pass


class ContentFilterError(ContentGenerationError):
    pass


class RateLimitError(TriviaEngineError):
    def __init__(self, message: str, retry_after: float):
        super().__init__(message)
        self.retry_after = retry_after


class ChatTransportError(TriviaEngineError):
    """Network or HTTP failure talking to the generation backend"""

    def __init__(self, status_code: Optional[int], body: str = ""):
        label = f"HTTP {status_code}" if status_code is not None else "connection failure"
        super().__init__(f"Chat backend error ({label}): {body}")
        self.status_code = status_code
        self.body = body

    @property
    def retryable(self) -> bool:
        if self.status_code is None:
            return True
        return self.status_code == 429 or 500 <= self.status_code <= 599


class PersistenceError(TriviaEngineError):
    pass


class PackFormatError(TriviaEngineError):
    pass
