"""
Quiz template persistence

One template per document, replaced in place on regeneration. Storage
errors on save are returned as SaveResult(error=...) so a freshly generated
quiz can still be served from memory.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from quizforge.config import settings
from quizforge.database import utcnow
from quizforge.models import QuizTemplate

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    id: Optional[UUID] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TemplateService:
    """Update-or-insert store for quiz templates keyed by document id"""

    def _find(self, db: Session, document_id: UUID) -> Optional[QuizTemplate]:
        return db.query(QuizTemplate).filter(QuizTemplate.document_id == document_id).first()

    def _apply(self, template: QuizTemplate, questions: List[Dict[str, Any]], model_used: str):
        now = utcnow()
        template.questions = questions
        template.model_used = model_used
        template.generated_at = now
        template.last_accessed_at = now
        template.expires_at = now + timedelta(days=settings.TEMPLATE_TTL_DAYS)

    def save(
        self,
        db: Session,
        document_id: UUID,
        questions: List[Dict[str, Any]],
        model_used: str = None
    ) -> SaveResult:
        """
        Store the question pool for a document

        Args:
            db: Database session
            document_id: Owning document
            questions: Validated, deduplicated questions (non-empty)
            model_used: LLM model name recorded with the template

        Returns:
            SaveResult with the template id, or with ``error`` set
        """
        model_used = model_used or settings.GEMINI_MODEL
        try:
            if not questions:
                raise ValueError("Questions must be a non-empty list")

            existing = self._find(db, document_id)
            if existing:
                logger.info(f"Updating quiz template {existing.id} for document {document_id}")
                self._apply(existing, questions, model_used)
                db.commit()
                return SaveResult(id=existing.id)

            template = QuizTemplate(document_id=document_id)
            self._apply(template, questions, model_used)
            db.add(template)
            try:
                db.commit()
            except IntegrityError:
                # A concurrent save inserted first
                db.rollback()
                logger.info(f"Template for document {document_id} created concurrently, updating instead")
                existing = self._find(db, document_id)
                if existing is None:
                    raise
                self._apply(existing, questions, model_used)
                db.commit()
                return SaveResult(id=existing.id)

            logger.info(f"Created quiz template {template.id} with {len(questions)} questions")
            return SaveResult(id=template.id)

        except (SQLAlchemyError, ValueError) as e:
            db.rollback()
            logger.error(f"Error storing quiz template for document {document_id}: {str(e)}")
            return SaveResult(error=str(e))

    def get(self, db: Session, document_id: UUID) -> Optional[QuizTemplate]:
        """Fetch the template for a document, touching last_accessed_at"""
        template = self._find(db, document_id)
        if template is None:
            logger.info(f"No quiz template found for document {document_id}")
            return None

        template.last_accessed_at = utcnow()
        db.commit()
        return template

    def is_valid(self, db: Session, document_id: UUID) -> bool:
        """True if a template exists and has not expired"""
        try:
            template = self._find(db, document_id)
        except SQLAlchemyError as e:
            logger.error(f"Error checking quiz template: {str(e)}")
            return False

        if template is None or not template.questions:
            return False
        return utcnow() < template.expires_at


# Global instance
template_service = TemplateService()
