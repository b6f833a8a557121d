"""
QuizAttempt model - one completed quiz
"""
from sqlalchemy import Column, Integer, TIMESTAMP, ForeignKey, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from quizforge.database import Base, utcnow
import uuid


class QuizAttempt(Base):
    """
    Quiz attempts table - immutable record of a finished quiz

    selected_question_indices holds template indices, never the 0..n-1
    display numbering.
    """
    __tablename__ = "quiz_attempts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    document_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    template_id = Column(Uuid(as_uuid=True), nullable=True)
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    selected_question_indices = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    metadata_ = Column("metadata", JSON().with_variant(JSONB(), "postgresql"), default=dict)
    completed_at = Column(TIMESTAMP, default=utcnow)

    document = relationship("Document", back_populates="attempts")

    def __repr__(self):
        return f"<QuizAttempt(document_id={self.document_id}, score={self.score}/{self.total_questions})>"
