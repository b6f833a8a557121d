"""
Database models package
"""
from quizforge.models.document import Document
from quizforge.models.quiz_template import QuizTemplate
from quizforge.models.quiz_attempt import QuizAttempt

__all__ = ["Document", "QuizTemplate", "QuizAttempt"]
