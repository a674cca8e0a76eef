"""
Content fingerprints for question de-duplication
"""
import hashlib
from typing import Union

from trivia_engine.schemas.trivia import TriviaQuestion


def _norm(text: str) -> str:
    return text.strip().lower()


def build_hash_payload(doc: TriviaQuestion) -> str:
    """
    Canonical text for a question

    Case and surrounding whitespace are ignored; option order is kept.
    """
    parts = [
        doc.category,
        doc.difficulty,
        _norm(doc.question),
        "|".join(_norm(option) for option in doc.options),
        _norm(doc.explanation),
    ]
    return "::".join(parts)


def sha256_hex(text: Union[str, bytes]) -> str:
    if isinstance(text, str):
        text = text.encode("utf-8")
    return hashlib.sha256(text).hexdigest()


def compute_stem_hash(doc: TriviaQuestion) -> str:
    """
    Stem hash of a question - same semantic content, same hash

    Any change to category, difficulty, question, options or explanation
    yields a different hash.
    """
    return sha256_hex(build_hash_payload(doc))
