"""
Document management API endpoints
"""
from fastapi import APIRouter, Depends, UploadFile, File, Form, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from uuid import UUID
import logging
import os
from typing import List, Optional

from quizforge.api.errors import http_error
from quizforge.database import get_db
from quizforge.exceptions import QuizForgeError
from quizforge.models import Document
from quizforge.schemas.document import DocumentResponse, ProcessingStatus, AttemptResponse
from quizforge.services.attempt_service import attempt_service
from quizforge.services.document_service import document_service
from quizforge.services.processing_queue import processing_queue
from quizforge.services.quiz_runner import session_manager
from quizforge.services.storage_service import storage_service

router = APIRouter(prefix="/api/documents", tags=["documents"])
logger = logging.getLogger(__name__)


def _to_response(document: Document, queued: bool = False) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        name=document.name,
        file_url=storage_service.public_url(document.file_ref),
        cover_url=storage_service.public_url(document.cover_ref) if document.cover_ref else None,
        summary=document.summary,
        processing_status=document.processing_status,
        processing_error=document.processing_error,
        created_at=document.created_at,
        queued=queued,
    )


@router.post("", response_model=DocumentResponse, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    auto_process: bool = Form(True),
    db: Session = Depends(get_db)
):
    """
    Upload a PDF document

    - Validates PDF file
    - Stores the blob, then the metadata row (blob removed if the row fails)
    - Queues background template generation unless auto_process is false
    """

    # Validate file type
    if not file.filename or not file.filename.lower().endswith('.pdf'):
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    title = name or os.path.splitext(file.filename)[0]

    try:
        logger.info(f"Uploading document PDF: {file.filename}")
        document = await document_service.create_document(db, title, content, file.filename)
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Failed to upload document: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to store document: {str(e)}")

    queued = processing_queue.enqueue(document.id) if auto_process else False
    return _to_response(document, queued=queued)


@router.get("", response_model=List[DocumentResponse])
async def list_documents(db: Session = Depends(get_db)):
    """List all documents, newest first"""
    return [_to_response(document) for document in document_service.list_documents(db)]


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: UUID, db: Session = Depends(get_db)):
    """Get document details"""
    try:
        document = document_service.get_document(db, document_id)
    except QuizForgeError as e:
        raise http_error(e)
    return _to_response(document)


@router.get("/{document_id}/status", response_model=ProcessingStatus)
async def get_processing_status(document_id: UUID, db: Session = Depends(get_db)):
    """
    Get background processing status

    Position 0 means the document is being processed right now.
    """
    try:
        document = document_service.get_document(db, document_id)
    except QuizForgeError as e:
        raise http_error(e)

    position = processing_queue.status(document_id)
    status = document.processing_status
    if position and position["position"] > 0:
        status = "queued"

    return ProcessingStatus(
        status=status,
        position=position["position"] if position else None,
        total=position["total"] if position else None,
        error=document.processing_error,
        updated_at=document.processing_updated_at,
    )


@router.post("/{document_id}/process", response_model=ProcessingStatus, status_code=202)
async def process_document(document_id: UUID, db: Session = Depends(get_db)):
    """Queue (re)generation of the document's question pool in the background"""
    try:
        document_service.get_document(db, document_id)
    except QuizForgeError as e:
        raise http_error(e)

    processing_queue.enqueue(document_id)
    position = processing_queue.status(document_id)
    return ProcessingStatus(
        status="queued" if position and position["position"] > 0 else "processing",
        position=position["position"] if position else None,
        total=position["total"] if position else None,
    )


@router.put("/{document_id}/cover", response_model=DocumentResponse)
async def update_cover(
    document_id: UUID,
    file: UploadFile = File(...),
    db: Session = Depends(get_db)
):
    """Replace the document's cover image"""

    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Cover must be an image")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    try:
        document = await document_service.update_cover(db, document_id, content, file.filename)
    except QuizForgeError as e:
        raise http_error(e)
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Failed to update cover: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to update cover: {str(e)}")

    return _to_response(document)


@router.delete("/{document_id}/cover", response_model=DocumentResponse)
async def remove_cover(document_id: UUID, db: Session = Depends(get_db)):
    """Clear the document's cover image"""
    try:
        document = await document_service.update_cover(db, document_id, None)
    except QuizForgeError as e:
        raise http_error(e)
    return _to_response(document)


@router.delete("/{document_id}")
async def delete_document(document_id: UUID, db: Session = Depends(get_db)):
    """Delete a document with its template, attempts, files and question history"""
    try:
        await document_service.delete_document(db, document_id)
    except QuizForgeError as e:
        raise http_error(e)
    except SQLAlchemyError as e:
        logger.error(f"Failed to delete document: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to delete document: {str(e)}")

    session_manager.discard_document(document_id)
    return {"message": "Document deleted", "document_id": str(document_id)}


@router.get("/{document_id}/attempts", response_model=List[AttemptResponse])
async def list_attempts(document_id: UUID, db: Session = Depends(get_db)):
    """Quiz attempts for a document, newest first"""
    try:
        document_service.get_document(db, document_id)
    except QuizForgeError as e:
        raise http_error(e)
    return attempt_service.list_attempts(db, document_id)
