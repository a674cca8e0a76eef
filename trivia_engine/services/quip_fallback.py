"""
Fallback quips and conversion of generated questions into bank questions
"""
import random
from typing import Optional

from trivia_engine.schemas.game import BankQuestion
from trivia_engine.schemas.library import QuestionDoc
from trivia_engine.schemas.trivia import TriviaQuestion

_BASE_CORRECT = [
    "Clean hit on {opt}.",
    "Right on the money with {opt}.",
    "Nailed it, {opt} was the move.",
]
_BASE_WRONG = [
    "Not {opt}. Happens to the best of us.",
    "{opt}? Bold. Not correct though.",
    "Close, but {opt} wasn't it.",
]
_BY_TONE = {
    "snark": (
        ["Look at you, {opt} savant.", "Flexing knowledge with {opt}."],
        ["{opt}? Respect the chaos, not the answer.", "Spicy choice with {opt}. Spicier nope."],
    ),
    "deadpan": (["{opt}. Correct. Minimal applause."], ["{opt}. Incorrect. Proceed."]),
    "professor": (["Indeed, {opt}. Textbook answer."], ["{opt} is a common misconception."]),
    "roast-lite": (["Okay brainiac, {opt} was obvious."], ["{opt}? I admire the confidence."]),
}


def quip_for(
    correct: bool,
    chosen_index: int,
    tone: str = "snark",
    option_text: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> str:
    rng = rng or random
    opt = f'"{option_text}"' if option_text else f"option {chosen_index + 1}"
    tone_correct, tone_wrong = _BY_TONE.get(tone, _BY_TONE["snark"])
    pool = _BASE_CORRECT + tone_correct if correct else _BASE_WRONG + tone_wrong
    return rng.choice(pool).format(opt=opt)


def to_bank_question(
    trivia: TriviaQuestion,
    question_id: str,
    category: Optional[str] = None,
    tone: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> BankQuestion:
    """
    Bank form of a generated question

    The generated correct quip is kept; each wrong option gets a quip
    written for that option.
    """
    tone = tone or (trivia.tone if isinstance(trivia, QuestionDoc) and trivia.tone else "snark")
    wrong = {
        str(i): quip_for(False, i, tone, option, rng)
        for i, option in enumerate(trivia.options)
        if i != trivia.correct_index
    }
    return BankQuestion(
        id=question_id,
        category=category or trivia.category,
        question=trivia.question,
        choices=list(trivia.options),
        answer_index=trivia.correct_index,
        correct_quip=trivia.quips.correct,
        wrong_answer_quips=wrong,
        used=False,
    )
