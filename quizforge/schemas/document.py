"""
Pydantic schemas for document-related requests and responses
"""
from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class DocumentResponse(BaseModel):
    """Document metadata"""
    id: UUID
    name: str
    file_url: str
    cover_url: Optional[str] = None
    summary: Optional[str] = None
    processing_status: str
    processing_error: Optional[str] = None
    created_at: Optional[datetime] = None
    queued: bool = False

    class Config:
        from_attributes = True


class ProcessingStatus(BaseModel):
    """Background processing state for a document"""
    status: str  # queued / pending / processing / complete / error
    position: Optional[int] = None
    total: Optional[int] = None
    error: Optional[str] = None
    updated_at: Optional[datetime] = None


class AttemptResponse(BaseModel):
    """A recorded quiz attempt"""
    id: UUID
    document_id: UUID
    template_id: Optional[UUID] = None
    score: int
    total_questions: int
    selected_question_indices: List[int]
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
