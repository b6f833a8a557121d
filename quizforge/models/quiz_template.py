"""
QuizTemplate model - the full generated question pool for a document
"""
from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from quizforge.database import Base, utcnow
import uuid


class QuizTemplate(Base):
    """
    Quiz templates table - at most one live template per document

    Regeneration replaces the question list in place (keyed by document_id).
    """
    __tablename__ = "quiz_templates"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    document_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    questions = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    model_used = Column(String(100))
    generated_at = Column(TIMESTAMP, default=utcnow)
    last_accessed_at = Column(TIMESTAMP, default=utcnow)
    expires_at = Column(TIMESTAMP, nullable=False)

    document = relationship("Document", back_populates="template")

    def __repr__(self):
        return f"<QuizTemplate(id={self.id}, document_id={self.document_id}, questions={len(self.questions or [])})>"
