"""
Durable question library backed by SQLAlchemy

Every stored question is unique by stem hash. Inserting a duplicate is a
no-op reported as a duplicate, never an overwrite.
"""
import logging
import random
import time
import uuid
from typing import Callable, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trivia_engine.errors import PersistenceError
from trivia_engine.models import QuestionRecord
from trivia_engine.schemas.library import (
    InsertSummary,
    LibraryCounts,
    QuestionDoc,
    QuestionDocInput,
    UniqueResult,
)
from trivia_engine.schemas.trivia import DIFFICULTIES, TRIVIA_CATEGORIES
from trivia_engine.utils.hashing import compute_stem_hash

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def record_to_doc(record: QuestionRecord) -> QuestionDoc:
    return QuestionDoc(
        id=record.id,
        stem_hash=record.stem_hash,
        category=record.category,
        difficulty=record.difficulty,
        seed_echo=record.seed_echo,
        question=record.question,
        options=list(record.options),
        correct_index=record.correct_index,
        explanation=record.explanation,
        quips=dict(record.quips),
        tone=record.tone,
        source=record.source,
        created_at=record.created_at,
        used_at=record.used_at,
    )


def doc_to_record(doc: QuestionDoc) -> QuestionRecord:
    return QuestionRecord(
        id=doc.id,
        stem_hash=doc.stem_hash,
        category=doc.category,
        difficulty=doc.difficulty,
        seed_echo=doc.seed_echo,
        question=doc.question,
        options=list(doc.options),
        correct_index=doc.correct_index,
        explanation=doc.explanation,
        quips=doc.quips.model_dump(),
        tone=doc.tone,
        source=doc.source,
        created_at=doc.created_at,
        used_at=doc.used_at,
    )


class LibraryService:
    """Read/write operations over the questions table"""

    def __init__(self, clock: Callable[[], int] = now_ms, rng: Optional[random.Random] = None):
        self._clock = clock
        self._rng = rng or random.Random()

    def ensure_unique_by_hash(self, db: Session, candidate: QuestionDocInput) -> UniqueResult:
        """
        Look a candidate up by stem hash

        Returns:
            The stored document with duplicate=True, or the candidate
            completed with id/hash/timestamp/source and duplicate=False
        """
        stem_hash = candidate.stem_hash or compute_stem_hash(candidate)
        existing = db.query(QuestionRecord).filter(QuestionRecord.stem_hash == stem_hash).first()
        if existing is not None:
            return UniqueResult(doc=record_to_doc(existing), duplicate=True)

        values = candidate.model_dump(exclude={"id", "stem_hash", "created_at", "source", "used_at"})
        doc = QuestionDoc(
            **values,
            id=candidate.id or uuid.uuid4().hex,
            stem_hash=stem_hash,
            created_at=candidate.created_at or self._clock(),
            source=candidate.source or "generated",
            used_at=candidate.used_at,
        )
        return UniqueResult(doc=doc, duplicate=False)

    def put_many(self, db: Session, candidates: Iterable[QuestionDocInput]) -> InsertSummary:
        """
        Insert candidates in one transaction, skipping duplicates

        Raises:
            PersistenceError: the batch could not be committed (nothing is kept)
        """
        summary = InsertSummary()
        batch = list(candidates)
        if not batch:
            return summary

        seen_hashes = set()
        try:
            for candidate in batch:
                result = self.ensure_unique_by_hash(db, candidate)
                if result.duplicate or result.doc.stem_hash in seen_hashes:
                    summary.duplicates += 1
                    continue
                seen_hashes.add(result.doc.stem_hash)
                db.add(doc_to_record(result.doc))
                summary.inserted += 1
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Library batch insert failed: {str(e)}")
            raise PersistenceError(f"Failed to store questions: {str(e)}") from e

        logger.info(f"Library insert: {summary.inserted} inserted, {summary.duplicates} duplicates")
        return summary

    def draw_one(
        self,
        db: Session,
        category: str,
        difficulty: str,
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> Optional[QuestionDoc]:
        """
        Pick a random unused question

        Prefers the exact category and difficulty, then any difficulty in
        the category. Excluded and used questions are never returned.
        """
        exclude = set(exclude_ids or [])
        base = db.query(QuestionRecord).filter(
            QuestionRecord.category == category,
            QuestionRecord.used_at.is_(None),
        )
        if exclude:
            base = base.filter(QuestionRecord.id.notin_(sorted(exclude)))

        pool = base.filter(QuestionRecord.difficulty == difficulty).all()
        if not pool:
            pool = base.all()
        if not pool:
            return None
        return record_to_doc(self._rng.choice(pool))

    def mark_used(self, db: Session, question_id: str) -> bool:
        """Stamp used_at; returns False when the id is unknown"""
        record = db.get(QuestionRecord, question_id)
        if record is None:
            return False
        try:
            record.used_at = self._clock()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Failed to mark question used: {str(e)}") from e
        return True

    def _filtered(self, db: Session, category: Optional[str], difficulty: Optional[str]):
        query = db.query(QuestionRecord)
        if category:
            query = query.filter(QuestionRecord.category == category)
        if difficulty:
            query = query.filter(QuestionRecord.difficulty == difficulty)
        return query

    def count(self, db: Session, category: Optional[str] = None, difficulty: Optional[str] = None) -> int:
        return self._filtered(db, category, difficulty).count()

    def list_questions(
        self,
        db: Session,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[QuestionDoc]:
        query = self._filtered(db, category, difficulty).order_by(
            QuestionRecord.created_at, QuestionRecord.id
        ).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [record_to_doc(r) for r in query.all()]

    def counts(self, db: Session) -> LibraryCounts:
        """Totals by category and by difficulty, zeros included"""
        by_category = {c: 0 for c in TRIVIA_CATEGORIES}
        by_difficulty = {d: 0 for d in DIFFICULTIES}
        for category, total in db.query(QuestionRecord.category, func.count()).group_by(QuestionRecord.category):
            by_category[category] = total
        for difficulty, total in db.query(QuestionRecord.difficulty, func.count()).group_by(QuestionRecord.difficulty):
            by_difficulty[difficulty] = total
        return LibraryCounts(
            total=sum(by_category.values()),
            by_category=by_category,
            by_difficulty=by_difficulty,
        )
