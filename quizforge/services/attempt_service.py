"""
Quiz attempt recording
"""
import logging
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quizforge.database import SessionLocal, utcnow
from quizforge.models import QuizAttempt
from quizforge.services.quiz_runner import QuizResult
from quizforge.services.template_service import SaveResult

logger = logging.getLogger(__name__)


class AttemptService:

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def record_attempt(
        self,
        db: Session,
        document_id: UUID,
        score: int,
        total_questions: int,
        selected_indices: List[int],
        template_id: UUID = None,
        metadata: Dict[str, Any] = None
    ) -> SaveResult:
        """
        Store a finished quiz

        Args:
            db: Database session
            document_id: Quizzed document
            score: Number of correct answers
            total_questions: Questions presented
            selected_indices: Template indices presented, one per question
            template_id: Template the questions came from
            metadata: Extra JSON data (answers, timing)

        Returns:
            SaveResult with the attempt id, or with ``error`` set
        """
        try:
            indices = [int(index) for index in selected_indices]
            if len(indices) != total_questions:
                raise ValueError(
                    f"selected_question_indices has {len(indices)} entries, expected {total_questions}"
                )
            if not 0 <= score <= total_questions:
                raise ValueError(f"score {score} outside 0..{total_questions}")

            attempt = QuizAttempt(
                document_id=document_id,
                template_id=template_id,
                score=score,
                total_questions=total_questions,
                selected_question_indices=indices,
                metadata_=metadata or {},
                completed_at=utcnow(),
            )
            db.add(attempt)
            db.commit()
            db.refresh(attempt)

            logger.info(f"Quiz attempt saved: {attempt.id}, score: {score}/{total_questions}")
            return SaveResult(id=attempt.id)

        except (SQLAlchemyError, ValueError, TypeError) as e:
            db.rollback()
            logger.error(f"Error saving quiz attempt for document {document_id}: {str(e)}")
            return SaveResult(error=str(e))

    def record_result(self, result: QuizResult) -> SaveResult:
        """on_complete hook for QuizRunner; opens its own session"""
        db = self.session_factory()
        try:
            return self.record_attempt(
                db,
                document_id=result.document_id,
                score=result.score,
                total_questions=result.total_questions,
                selected_indices=result.selected_indices,
                template_id=result.template_id,
                metadata={"answers": result.answers},
            )
        finally:
            db.close()

    def list_attempts(self, db: Session, document_id: UUID) -> List[QuizAttempt]:
        return (
            db.query(QuizAttempt)
            .filter(QuizAttempt.document_id == document_id)
            .order_by(QuizAttempt.completed_at.desc())
            .all()
        )


# Global instance
attempt_service = AttemptService()
