"""
Analytics API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from quizforge.api.errors import http_error
from quizforge.database import get_db
from quizforge.exceptions import QuizForgeError
from quizforge.schemas.analytics import DocumentAnalytics
from quizforge.services.analytics_service import analytics_service

router = APIRouter(prefix="/api/documents", tags=["analytics"])
logger = logging.getLogger(__name__)


@router.get("/{document_id}/analytics", response_model=DocumentAnalytics)
async def get_document_analytics(document_id: UUID, db: Session = Depends(get_db)):
    """
    Quiz performance for a document

    Returns:
    - Attempt count, average and best percentage
    - Score history, oldest first
    - How much of the current question pool has been seen
    """
    try:
        analytics = analytics_service.get_document_analytics(db, document_id)
    except QuizForgeError as e:
        raise http_error(e)

    logger.info(f"Analytics computed for document {document_id}")
    return DocumentAnalytics(**analytics)
