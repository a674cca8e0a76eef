"""
Generative question provider

Wraps one chat-completion call per attempt with prompt construction,
schema validation, seed-echo verification, content filtering, a
per-category rate limit and a key-value cache.
"""
import json
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from trivia_engine.errors import (
    ContentFilterError,
    ContentGenerationError,
    SchemaValidationError,
    SeedEchoMismatchError,
)
from trivia_engine.schemas.chat import ChatMessage, ChatRequest
from trivia_engine.schemas.trivia import PersonalityFlags, TriviaQuestion
from trivia_engine.services.chat_client import ChatClient
from trivia_engine.services.content_filter import ContentFilter, passes_content_rules
from trivia_engine.utils.cache import KeyValueStore, get_json, set_json
from trivia_engine.utils.json_text import strip_code_fences
from trivia_engine.utils.rate_limiter import MinIntervalRateLimiter

logger = logging.getLogger(__name__)

CACHE_PREFIX = "trivia.cache::"
CONTENT_REMINDER = (
    " Reminder: You violated content constraints; rewrite within PG-13 and kindness rules."
)


@dataclass(frozen=True)
class GenerationParams:
    """Fully resolved request; every field takes part in the cache key"""
    category: str
    difficulty: str
    seed: str
    tone: str
    flags: PersonalityFlags
    role_discriminator: str
    diff_token: str

    @property
    def cache_key(self) -> str:
        return (
            f"{CACHE_PREFIX}{self.category}|{self.difficulty}|{self.seed}"
            f"|{self.role_discriminator}|{self.diff_token}"
        )


def new_seed() -> str:
    return secrets.token_urlsafe(16)


def system_prompt(flags: PersonalityFlags, tone: Optional[str]) -> str:
    tone_text = f"Tone: {tone}." if tone else "Tone: snarky but kind."
    constraints = [
        "You are a trivia writer blended with a late-night monologue writer.",
        "You output strictly JSON and never include prose outside the JSON.",
        "No slurs, no targeted harassment, no punching down.",
        "Stay playful, PG-13. Keep it kind and witty.",
        "Avoid copyrighted one-line quotes as answers; paraphrase instead.",
        "No explicit sexual content. No medical or legal advice.",
    ]
    if flags.no_politics:
        constraints.append("Avoid modern political punditry or partisan content.")
    if not flags.allow_light_innuendo:
        constraints.append("Avoid sexual innuendo.")
    return " ".join([" ".join(constraints), tone_text, "Output must be valid JSON only."])


def user_prompt(params: GenerationParams, example: str, stricter: bool = False) -> str:
    fairness_line = (
        f"ROLE: {params.role_discriminator}. DIFF_TOKEN: {params.diff_token}. "
        "Produce questions of equivalent difficulty/style for roles A/B using the same diffToken; "
        "do NOT reuse the same fact."
    )
    seed_line = (
        f"SEED: {params.seed}. Use this to choose facts and phrasing deterministically. "
        'Include "seedEcho" with the same value in the JSON.'
    )
    rules = [
        f"Category: {params.category}. Difficulty: {params.difficulty}.",
        "Exactly 4 options. Exactly one correctIndex in 0..3.",
        "Quips are one-liners. They must reference the chosen option text implicitly, not the player.",
        "Return only JSON. No backticks, no commentary.",
    ]
    if stricter:
        rules.append("Absolutely no text outside JSON. If unsure, output the JSON schema shape verbatim.")
    return "\n".join([fairness_line, seed_line, "\n".join(rules), "Schema example:", example])


def schema_example() -> str:
    return json.dumps({
        "category": "science",
        "difficulty": "easy",
        "seedEcho": "abc123",
        "question": "What gas do plants absorb during photosynthesis?",
        "options": ["Oxygen", "Hydrogen", "Carbon Dioxide", "Nitrogen"],
        "correctIndex": 2,
        "explanation": "Plants absorb carbon dioxide and release oxygen during photosynthesis.",
        "quips": {
            "correct": "Photosynthetic perfection.",
            "incorrect": "That pick didn't leaf you looking smart.",
        },
    }, indent=2)


def parse_trivia(text: str) -> TriviaQuestion:
    """
    Parse model output into a validated question

    Raises:
        SchemaValidationError: if the text is not JSON or does not match the schema
    """
    cleaned = strip_code_fences(text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise SchemaValidationError("Model output is not valid JSON", detail=str(e)) from e
    try:
        return TriviaQuestion.model_validate(payload)
    except ValidationError as e:
        raise SchemaValidationError("Model output does not match the question schema", detail=str(e)) from e


class TriviaGenerator:
    """Service producing one validated TriviaQuestion per call"""

    def __init__(
        self,
        chat_client: Optional[ChatClient],
        cache: KeyValueStore,
        model: str,
        rate_limiter: Optional[MinIntervalRateLimiter] = None,
        content_filter: ContentFilter = passes_content_rules,
        max_attempts: int = 3,
        max_content_retries: int = 2,
        cache_ttl: Optional[int] = None,
    ):
        self.chat_client = chat_client
        self.cache = cache
        self.model = model
        self.rate_limiter = rate_limiter or MinIntervalRateLimiter(1.0)
        self.content_filter = content_filter
        self.max_attempts = max_attempts
        self.max_content_retries = max_content_retries
        self.cache_ttl = cache_ttl

    def _load_cache(self, params: GenerationParams) -> Optional[TriviaQuestion]:
        cached = get_json(self.cache, params.cache_key)
        if cached is None:
            return None
        try:
            return TriviaQuestion.model_validate(cached)
        except ValidationError:
            logger.warning(f"Ignoring invalid cached question at {params.cache_key}")
            return None

    def _save_cache(self, params: GenerationParams, trivia: TriviaQuestion) -> None:
        set_json(self.cache, params.cache_key, trivia.to_json_dict(), self.cache_ttl)

    async def _complete(self, system: str, user: str, temperature: float) -> str:
        response = await self.chat_client.chat(ChatRequest(
            model=self.model,
            messages=[
                ChatMessage(role="system", content=system),
                ChatMessage(role="user", content=user),
            ],
            temperature=temperature,
        ))
        return response.content

    async def generate_question(
        self,
        category: str,
        difficulty: str,
        seed: Optional[str] = None,
        tone: Optional[str] = None,
        flags: Optional[dict] = None,
        role_discriminator: str = "A",
        diff_token: Optional[str] = None,
    ) -> TriviaQuestion:
        """
        Generate one question

        Args:
            category: Trivia category
            difficulty: easy/medium/hard
            seed: Determinism token echoed back by the model (generated if omitted)
            tone: Writing tone, snark by default
            flags: Overrides for PersonalityFlags
            role_discriminator: A or B for paired rounds
            diff_token: Shared difficulty token (defaults to the seed)

        Returns:
            Validated TriviaQuestion

        Raises:
            RateLimitError: same category requested too recently
            ContentGenerationError: retries exhausted or content rejected
            ChatTransportError: backend unreachable
        """
        seed = seed or new_seed()
        params = GenerationParams(
            category=category,
            difficulty=difficulty,
            seed=seed,
            tone=tone or "snark",
            flags=PersonalityFlags.resolve(flags),
            role_discriminator=role_discriminator or "A",
            diff_token=diff_token or seed,
        )

        self.rate_limiter.check(params.category)

        cached = self._load_cache(params)
        if cached is not None:
            logger.info(f"Returning cached question for {params.cache_key}")
            return cached

        if self.chat_client is None:
            raise ContentGenerationError("No generation backend configured")

        system = system_prompt(params.flags, params.tone)
        example = schema_example()
        last_error: ContentGenerationError = SchemaValidationError("No attempts made")
        content_retries = 0

        for attempt in range(1, self.max_attempts + 1):
            logger.debug(f"Generating {category}/{difficulty} attempt {attempt}/{self.max_attempts}")
            text = await self._complete(system, user_prompt(params, example, stricter=attempt > 1), 0.7)
            try:
                trivia = parse_trivia(text)
            except SchemaValidationError as e:
                last_error = e
                continue

            if trivia.seed_echo != params.seed:
                last_error = SeedEchoMismatchError(
                    f"Seed echo mismatch: expected {params.seed!r}, got {trivia.seed_echo!r}"
                )
                if attempt < self.max_attempts:
                    continue
                raise last_error

            if not self.content_filter(trivia, params.flags):
                if content_retries >= self.max_content_retries:
                    raise ContentFilterError("Content filter rejection")
                content_retries += 1
                logger.warning(f"Regenerating {category} question due to content filter")
                text = await self._complete(
                    system + CONTENT_REMINDER,
                    user_prompt(params, example, stricter=True),
                    0.5,
                )
                try:
                    trivia = parse_trivia(text)
                except SchemaValidationError as e:
                    last_error = e
                    continue
                if not self.content_filter(trivia, params.flags):
                    raise ContentFilterError("Content filter rejection after retry")

            self._save_cache(params, trivia)
            return trivia

        logger.error(f"Generation failed for {category}/{difficulty} after {self.max_attempts} attempts")
        raise last_error
