"""
Database models package
"""
from trivia_engine.models.question_doc import QuestionRecord

__all__ = ["QuestionRecord"]
