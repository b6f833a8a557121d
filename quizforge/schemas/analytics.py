"""
Pydantic schemas for analytics endpoints
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from uuid import UUID


class ScorePoint(BaseModel):
    score: int
    total_questions: int
    completed_at: Optional[datetime] = None


class DocumentAnalytics(BaseModel):
    """Attempt statistics for one document"""
    document_id: UUID
    document_name: str
    total_attempts: int
    avg_percentage: float
    best_percentage: float
    last_attempt_at: Optional[datetime] = None
    template_questions: int
    questions_seen: int
    coverage: float
    score_history: List[ScorePoint]
