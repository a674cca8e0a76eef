"""
Content-safety predicate for generated trivia
"""
import re
from typing import Callable, Iterable

from trivia_engine.schemas.trivia import PersonalityFlags, TriviaQuestion

ContentFilter = Callable[[TriviaQuestion, PersonalityFlags], bool]

BANNED_PHRASES = (
    "kill yourself",
    "nazi",
    "lynch",
)

EXPLICIT_PATTERN = re.compile(r"(sex|porn|explicit)")
ADVICE_PATTERN = re.compile(r"(diagnose|prescribe|lawsuit|legal advice|medical advice)")
VIOLENCE_PATTERN = re.compile(r"(graphic violence|gore)")


def question_text(trivia: TriviaQuestion) -> str:
    """Every user-visible string of a question, lowercased"""
    parts: Iterable[str] = [
        trivia.question,
        *trivia.options,
        trivia.explanation,
        trivia.quips.correct,
        trivia.quips.incorrect,
    ]
    return " ".join(parts).lower()


def passes_content_rules(trivia: TriviaQuestion, flags: PersonalityFlags) -> bool:
    text = question_text(trivia)
    if any(phrase in text for phrase in BANNED_PHRASES):
        return False
    if not flags.allow_light_innuendo and EXPLICIT_PATTERN.search(text):
        return False
    if ADVICE_PATTERN.search(text):
        return False
    if VIOLENCE_PATTERN.search(text):
        return False
    return True
