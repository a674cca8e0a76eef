"""
Question packs: batch generation, JSON export and validated import
"""
import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import aiofiles
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from trivia_engine.errors import PackFormatError
from trivia_engine.schemas.library import ImportSummary, QuestionDoc, QuestionDocInput
from trivia_engine.schemas.trivia import DIFFICULTIES
from trivia_engine.services.library_service import LibraryService, now_ms
from trivia_engine.services.trivia_generator import TriviaGenerator
from trivia_engine.utils.hashing import compute_stem_hash

logger = logging.getLogger(__name__)

_DOC_LIST = TypeAdapter(List[QuestionDoc])


def build_counts(questions: List[QuestionDoc]) -> Dict[str, Dict[str, int]]:
    by_category: Dict[str, int] = {}
    by_difficulty = {d: 0 for d in DIFFICULTIES}
    for q in questions:
        by_category[q.category] = by_category.get(q.category, 0) + 1
        by_difficulty[q.difficulty] += 1
    return {"byCategory": by_category, "byDifficulty": by_difficulty}


async def generate_pack(
    generator: TriviaGenerator,
    count: int,
    category: str,
    difficulty: str,
    tone: str,
    seed_base: Optional[str] = None,
    delay: float = 1.1,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> List[QuestionDoc]:
    """
    Generate count questions one after another

    The delay between items keeps each request outside the per-category
    rate-limit window.
    """
    out: List[QuestionDoc] = []
    for i in range(count):
        if i > 0 and delay > 0:
            await sleep(delay)
        seed = f"{seed_base}-{i + 1}" if seed_base else None
        trivia = await generator.generate_question(
            category=category,
            difficulty=difficulty,
            tone=tone,
            seed=seed,
        )
        out.append(QuestionDoc(
            **trivia.model_dump(),
            id=f"{category}-{uuid.uuid4().hex[:12]}",
            stem_hash=compute_stem_hash(trivia),
            tone=tone,
            created_at=now_ms(),
            source="generated",
            used_at=None,
        ))
    logger.info(f"Generated pack of {len(out)} {category}/{difficulty} questions")
    return out


def export_pack(questions: List[QuestionDoc], meta: Optional[Dict[str, Any]] = None) -> str:
    payload: Dict[str, Any] = {
        "createdAt": datetime.now(timezone.utc).isoformat(),
        "counts": build_counts(questions),
        "items": [q.model_dump(by_alias=True, mode="json") for q in questions],
    }
    payload.update(meta or {})
    return json.dumps(payload, indent=2)


async def write_pack_file(path: str, questions: List[QuestionDoc], meta: Optional[Dict[str, Any]] = None) -> str:
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(export_pack(questions, meta))
    logger.info(f"Wrote {len(questions)} questions to {path}")
    return path


def parse_pack(json_text: Union[str, bytes]) -> List[QuestionDoc]:
    """
    Validate a pack document (bare array or {"items": [...]})

    Raw bytes must be UTF-8.

    Raises:
        PackFormatError: undecodable bytes, invalid JSON, missing items,
            or an invalid item
    """
    if isinstance(json_text, bytes):
        try:
            json_text = json_text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PackFormatError(f"Pack is not UTF-8 text: {str(e)}") from e
    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise PackFormatError(f"Pack is not valid JSON: {str(e)}") from e

    items = parsed if isinstance(parsed, list) else (parsed.get("items") if isinstance(parsed, dict) else None)
    if not isinstance(items, list):
        raise PackFormatError("Pack has no items array")
    try:
        return _DOC_LIST.validate_python(items)
    except ValidationError as e:
        raise PackFormatError(f"Pack contains invalid questions: {str(e)}") from e


def import_pack(db: Session, library: LibraryService, json_text: Union[str, bytes]) -> ImportSummary:
    """Insert every pack item through the unique-by-hash path; file hashes are recomputed"""
    items = parse_pack(json_text)
    inputs = [
        QuestionDocInput(
            **item.model_dump(exclude={"stem_hash", "source"}),
            stem_hash=None,
            source=item.source or "imported",
        )
        for item in items
    ]
    result = library.put_many(db, inputs)
    logger.info(f"Imported pack: {result.inserted} inserted, {result.duplicates} duplicates of {len(items)}")
    return ImportSummary(inserted=result.inserted, duplicates=result.duplicates, total=len(items))
