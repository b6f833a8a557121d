"""
Document model - uploaded PDF metadata and blob references
"""
from sqlalchemy import Column, String, Text, TIMESTAMP, Uuid
from sqlalchemy.orm import relationship
from quizforge.database import Base, utcnow
import uuid


class Document(Base):
    """
    Documents table - one row per uploaded PDF

    Immutable after upload except for the cover reference, the summary and
    the background processing fields.
    """
    __tablename__ = "documents"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    file_ref = Column(String, nullable=False)
    cover_ref = Column(String, nullable=True)
    summary = Column(Text, nullable=True)
    processing_status = Column(String(20), default="pending")  # pending/processing/complete/error
    processing_error = Column(Text, nullable=True)
    processing_updated_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow)

    template = relationship(
        "QuizTemplate",
        back_populates="document",
        uselist=False,
        cascade="all, delete-orphan",
    )
    attempts = relationship(
        "QuizAttempt",
        back_populates="document",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Document(id={self.id}, name={self.name})>"
