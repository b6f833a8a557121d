"""
Pydantic schemas for quiz-related requests and responses
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class TemplateGenerateRequest(BaseModel):
    """Request schema for template generation"""
    force_refresh: bool = Field(False, description="Regenerate even if a valid template exists")
    questions_per_chunk: Optional[int] = Field(None, ge=1, le=20, description="Questions requested per chunk")


class ChunkFailureInfo(BaseModel):
    chunk_index: int
    reason: str


class TemplateResponse(BaseModel):
    """Question pool state for a document"""
    document_id: UUID
    template_id: Optional[UUID] = None
    question_count: int
    from_cache: bool = False
    chunk_count: int = 0
    failed_chunks: List[ChunkFailureInfo] = []
    duplicates_removed: int = 0
    expires_at: Optional[datetime] = None
    saved: bool = True
    warning: Optional[str] = None


class QuizStartRequest(BaseModel):
    """Request schema for starting a quiz session"""
    count: int = Field(10, ge=1, le=50, description="Number of questions")


class PresentedQuestion(BaseModel):
    """Question as shown to the user (no answer)"""
    number: int  # 0-based display index
    question: str
    options: List[str]


class SessionState(BaseModel):
    """Current state of a quiz session"""
    session_id: str
    document_id: UUID
    status: str  # presenting / completed
    total_questions: int
    score: Optional[int] = None
    current: Optional[PresentedQuestion] = None
    time_remaining: float = 0.0
    last_answer_correct: Optional[bool] = None
    warning: Optional[str] = None


class AnswerRequest(BaseModel):
    """Answer submission; null skips the question"""
    question_number: int = Field(..., ge=0, description="0-based number of the question being answered")
    option_index: Optional[int] = Field(None, ge=0)


class QuizResultResponse(BaseModel):
    """Final quiz result"""
    session_id: str
    document_id: UUID
    score: int
    total_questions: int
    score_display: str
    percentage: float
    selected_question_indices: List[int]
