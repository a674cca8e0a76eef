"""
Session question bank with generation-backed refills

Pools are per category and start from the static fallback stock. When a
category runs dry the bank refills it: from the generation backend when a
credential is configured and the category is not cooling down, otherwise
by recycling the existing stock. Concurrent refills of one category share
a single in-flight operation.
"""
import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from trivia_engine.errors import TriviaEngineError
from trivia_engine.schemas.chat import ChatMessage, ChatRequest
from trivia_engine.schemas.game import BankQuestion, BankStats
from trivia_engine.services.batch_sanitizer import sanitize_batch
from trivia_engine.services.chat_client import ChatClient
from trivia_engine.services.fallback_questions import fallback_bank
from trivia_engine.utils.json_text import parse_json_lenient
from trivia_engine.utils.retry import chat_with_retry

logger = logging.getLogger(__name__)

DEFAULT_BANK_MODELS = [
    "anthropic/claude-3-haiku",
    "openai/gpt-4o-mini",
    "openrouter/auto",
]

BATCH_SYSTEM_PROMPT = """You are a trivia generator. Output ONLY valid JSON matching this shape:
{"questions": [{"question": string, "choices": [string, string, string, string], "correctIndex": number, "wrongQuips": {"<index>": string}, "correctQuip": string}]}"""


def batch_user_prompt(category: str, count: int) -> str:
    return f"""Generate {count} short, clear, family-friendly multiple-choice trivia questions for the category: {category}.
Rules:
- Exactly 4 choices per question.
- correctIndex must be 0..3.
- wrongQuips must include keys '0','1','2','3' with snappy, humorous one-liners.
- correctQuip is a single upbeat one-liner.
- Do not include explanations.
Return JSON only."""


@dataclass
class RefillEvent:
    """Lifecycle notification; phase is start, end, error or retry"""
    category: str
    phase: str
    detail: Dict[str, Any] = field(default_factory=dict)


RefillListener = Callable[[RefillEvent], None]


@dataclass
class FailureState:
    fails: int = 0
    cooldown_until: float = 0.0


class QuestionBankService:
    """In-memory per-category pool of ready-to-serve questions"""

    def __init__(
        self,
        chat_client: Optional[ChatClient] = None,
        models: Optional[List[str]] = None,
        refill_size: int = 6,
        fail_threshold: int = 3,
        cooldown_seconds: float = 60.0,
        retry_attempts: int = 3,
        retry_base_delay: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.chat_client = chat_client
        self.models = list(models or DEFAULT_BANK_MODELS)
        self.refill_size = refill_size
        self.fail_threshold = fail_threshold
        self.cooldown_seconds = cooldown_seconds
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay
        self._clock = clock
        self._rng = rng or random.Random()
        self._sleep = sleep

        self._bank: Dict[str, List[BankQuestion]] = {}
        self._pending_refills: Dict[str, "asyncio.Future[None]"] = {}
        self._failure_state: Dict[str, FailureState] = {}
        self._listeners: List[RefillListener] = []
        self._initialize_with_fallback()

    def _initialize_with_fallback(self) -> None:
        self._bank = fallback_bank()

    @property
    def has_credential(self) -> bool:
        return self.chat_client is not None

    # Observers

    def subscribe(self, listener: RefillListener) -> Callable[[], None]:
        """Register a refill listener; returns a function that unregisters it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, category: str, phase: str, **detail: Any) -> None:
        event = RefillEvent(category=category, phase=phase, detail=detail)
        for listener in list(self._listeners):
            listener(event)

    # Drawing

    def pool(self, category: str) -> List[BankQuestion]:
        return self._bank.get(category, [])

    def _available(self, category: str) -> List[BankQuestion]:
        return [q for q in self.pool(category) if not q.used]

    def _select_random(self, questions: List[BankQuestion]) -> BankQuestion:
        selected = questions[self._rng.randrange(len(questions))]
        selected.used = True
        return selected

    async def get_next_question(self, category: str) -> Optional[BankQuestion]:
        """
        Draw an unused question, refilling the category once if it is dry

        Returns:
            The drawn question (now marked used), or None when the category
            is still empty after a refill
        """
        available = self._available(category)
        if available:
            return self._select_random(available)

        await self.refill_category(category)
        refilled = self._available(category)
        if not refilled:
            return None
        return self._select_random(refilled)

    # Refill

    def is_in_cooldown(self, category: str) -> bool:
        state = self._failure_state.get(category)
        return state is not None and self._clock() < state.cooldown_until

    async def refill_category(self, category: str) -> None:
        """Refill a category, joining the in-flight refill when one exists"""
        existing = self._pending_refills.get(category)
        if existing is not None and not existing.done():
            await asyncio.shield(existing)
            return

        task = asyncio.ensure_future(self._run_refill(category))
        self._pending_refills[category] = task

        def _clear(done: "asyncio.Future[None]") -> None:
            if self._pending_refills.get(category) is done:
                del self._pending_refills[category]

        task.add_done_callback(_clear)
        await asyncio.shield(task)

    def _recycle(self, category: str) -> None:
        for question in self.pool(category):
            question.used = False
        logger.info(f"{category} questions refilled from local bank")

    def _record_failure(self, category: str) -> int:
        state = self._failure_state.setdefault(category, FailureState())
        fails = state.fails + 1
        if fails >= self.fail_threshold:
            state.fails = 0
            state.cooldown_until = self._clock() + self.cooldown_seconds
            logger.warning(f"{category} refills cooling down for {self.cooldown_seconds}s")
        else:
            state.fails = fails
        return fails

    async def _run_refill(self, category: str) -> None:
        in_cooldown = self.is_in_cooldown(category)
        logger.info(f"Refilling {category} questions")
        if in_cooldown:
            self._emit(category, "start", cooldown=True)
        else:
            self._emit(category, "start")

        if not self.has_credential or in_cooldown:
            self._recycle(category)
            self._emit(
                category,
                "end",
                source="local-cooldown" if in_cooldown else "local",
                cooldown=in_cooldown,
            )
            return

        try:
            fresh, model = await self.fetch_questions(category, self.refill_size)
            if fresh:
                self._bank[category] = fresh
                self._failure_state[category] = FailureState()
                logger.info(f"{category} questions fetched: {len(fresh)} via {model}")
                self._emit(category, "end", source="generated", model=model, count=len(fresh))
                return
        except (TriviaEngineError, ValueError) as e:
            logger.warning(f"Question fetch failed for {category}, falling back to local reset: {str(e)}")
            fails = self._record_failure(category)
            self._emit(category, "error", error=str(e), fails=fails)

        self._recycle(category)
        self._emit(category, "end", source="local-fallback")

    async def fetch_questions(self, category: str, count: int) -> Tuple[List[BankQuestion], Optional[str]]:
        """
        Ask the backend for a batch, trying each model in order

        Returns:
            Tuple of (sanitized questions, model that answered)

        Raises:
            TriviaEngineError: every model failed
            ValueError: the content could not be parsed as JSON
        """
        last_error: Optional[Exception] = None
        content: Optional[str] = None
        used_model: Optional[str] = None

        def on_retry(attempt: int, total: int) -> None:
            self._emit(category, "retry", attempt=attempt, total=total)

        for model in self.models:
            request = ChatRequest(
                model=model,
                messages=[
                    ChatMessage(role="system", content=BATCH_SYSTEM_PROMPT),
                    ChatMessage(role="user", content=batch_user_prompt(category, count)),
                ],
                temperature=0.7,
            )
            try:
                response = await chat_with_retry(
                    self.chat_client,
                    request,
                    attempts=self.retry_attempts,
                    base_delay=self.retry_base_delay,
                    on_retry=on_retry,
                    sleep=self._sleep,
                )
            except TriviaEngineError as e:
                logger.debug(f"Model {model} failed for {category}: {str(e)}")
                last_error = e
                continue
            if not response.content.strip():
                last_error = TriviaEngineError(f"No content from model {model}")
                continue
            content = response.content
            used_model = model
            break

        if content is None:
            raise last_error or TriviaEngineError("Failed to generate questions")

        payload = parse_json_lenient(content)
        now_ms = int(time.time() * 1000)
        return sanitize_batch(payload, category, count, now_ms=now_ms), used_model

    # Lifecycle

    def get_stats(self) -> BankStats:
        all_questions = [q for pool in self._bank.values() for q in pool]
        used = sum(1 for q in all_questions if q.used)
        return BankStats(total=len(all_questions), used=used, available=len(all_questions) - used)

    def reset(self) -> None:
        """Restore the static stock and clear failure state"""
        self._initialize_with_fallback()
        self._failure_state.clear()
