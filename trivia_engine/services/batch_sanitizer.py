"""
Sanitization of loosely-typed batch output from the generation backend

Kept apart from schema validation: every item is coerced into a usable
BankQuestion instead of being rejected.

Defaulting rules:
- choices: first four kept; missing slots padded with the letter A-D of that slot
- correctIndex: coerced to int (0 when not numeric) and clamped into 0..3
- wrongQuips: every index except the correct one gets a quip, generic filler when missing
- correctQuip / question: stringified, generic default when missing
"""
import time
from typing import Any, Dict, List, Optional

from trivia_engine.schemas.game import BankQuestion

CHOICE_LABELS = ["A", "B", "C", "D"]
WRONG_QUIP_FILLERS = {
    "0": "Nope, not quite.",
    "1": "Nice try, still wrong.",
    "2": "Swing and a miss.",
    "3": "That answer tripped over itself.",
}
DEFAULT_CORRECT_QUIP = "Boom! Nailed it."
DEFAULT_QUESTION = "Unknown question"


def _clamp_index(value: Any) -> int:
    try:
        index = int(value)
    except (TypeError, ValueError):
        index = 0
    return max(0, min(3, index))


def _choices(value: Any) -> List[str]:
    raw = [str(c) for c in value[:4]] if isinstance(value, list) else []
    return raw + CHOICE_LABELS[len(raw):]


def _wrong_quips(value: Any, answer_index: int) -> Dict[str, str]:
    source = value if isinstance(value, dict) else {}
    quips = {}
    for key, filler in WRONG_QUIP_FILLERS.items():
        if int(key) == answer_index:
            continue
        text = source.get(key)
        quips[key] = str(text) if text else filler
    return quips


def sanitize_item(item: Any, category: str, item_id: str) -> BankQuestion:
    data = item if isinstance(item, dict) else {}
    answer_index = _clamp_index(data.get("correctIndex", 0))
    return BankQuestion(
        id=item_id,
        category=category,
        question=str(data.get("question") or DEFAULT_QUESTION),
        choices=_choices(data.get("choices")),
        answer_index=answer_index,
        correct_quip=str(data.get("correctQuip") or DEFAULT_CORRECT_QUIP),
        wrong_answer_quips=_wrong_quips(data.get("wrongQuips"), answer_index),
        used=False,
    )


def sanitize_batch(payload: Any, category: str, count: int, now_ms: Optional[int] = None) -> List[BankQuestion]:
    """Turn a parsed {"questions": [...]} payload into at most count bank questions"""
    items = payload.get("questions") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        return []
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return [
        sanitize_item(item, category, f"{category}_{stamp}_{i}")
        for i, item in enumerate(items[:count])
    ]
