"""
Analytics service for per-document quiz performance
"""
import logging
from typing import Any, Dict, List
from uuid import UUID
from sqlalchemy.orm import Session
from quizforge.models import QuizAttempt, QuizTemplate
from quizforge.services.document_service import document_service

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Service for generating attempt statistics"""

    def get_document_analytics(self, db: Session, document_id: UUID) -> Dict[str, Any]:
        """
        Get performance analytics for a document

        Args:
            db: Database session
            document_id: Document UUID

        Returns:
            Dictionary with attempt statistics and question coverage
        """
        document = document_service.get_document(db, document_id)

        attempts = (
            db.query(QuizAttempt)
            .filter(QuizAttempt.document_id == document_id)
            .order_by(QuizAttempt.completed_at.asc())
            .all()
        )
        template = db.query(QuizTemplate).filter(QuizTemplate.document_id == document_id).first()
        pool_size = len(template.questions) if template and template.questions else 0

        percentages = [self._percentage(a) for a in attempts]
        seen = self._questions_seen(attempts, pool_size)

        return {
            "document_id": str(document.id),
            "document_name": document.name,
            "total_attempts": len(attempts),
            "avg_percentage": round(sum(percentages) / len(percentages), 2) if percentages else 0.0,
            "best_percentage": round(max(percentages), 2) if percentages else 0.0,
            "last_attempt_at": attempts[-1].completed_at if attempts else None,
            "template_questions": pool_size,
            "questions_seen": len(seen),
            "coverage": round(len(seen) / pool_size, 4) if pool_size else 0.0,
            "score_history": [
                {"score": a.score, "total_questions": a.total_questions, "completed_at": a.completed_at}
                for a in attempts
            ],
        }

    def _percentage(self, attempt: QuizAttempt) -> float:
        if not attempt.total_questions:
            return 0.0
        return attempt.score / attempt.total_questions * 100

    def _questions_seen(self, attempts: List[QuizAttempt], pool_size: int) -> set:
        """Distinct template indices presented across attempts, within the current pool"""
        seen = set()
        for attempt in attempts:
            for index in attempt.selected_question_indices or []:
                if isinstance(index, int) and 0 <= index < pool_size:
                    seen.add(index)
        return seen


# Global instance
analytics_service = AnalyticsService()
