"""
Question library model - durable store of generated and imported questions
"""
from sqlalchemy import BigInteger, Column, Index, Integer, String, Text, JSON

from trivia_engine.database import Base


class QuestionRecord(Base):
    """
    Questions table - one row per semantically distinct question

    stem_hash is unique: the same content can never be stored twice.
    Timestamps are epoch milliseconds.
    """
    __tablename__ = "questions"

    id = Column(String(64), primary_key=True)
    stem_hash = Column(String(64), unique=True, nullable=False, index=True)
    category = Column(String(32), nullable=False, index=True)
    difficulty = Column(String(10), nullable=False)
    seed_echo = Column(String(128), nullable=False)
    question = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)  # ["opt0", "opt1", "opt2", "opt3"]
    correct_index = Column(Integer, nullable=False)
    explanation = Column(Text, nullable=False)
    quips = Column(JSON, nullable=False)  # {"correct": "...", "incorrect": "..."}
    tone = Column(String(20))
    source = Column(String(20), default="generated")
    created_at = Column(BigInteger, nullable=False)
    used_at = Column(BigInteger, nullable=True)

    __table_args__ = (
        Index("ix_questions_category_difficulty", "category", "difficulty"),
    )

    def __repr__(self):
        return f"<QuestionRecord(id={self.id}, category={self.category}, difficulty={self.difficulty})>"
