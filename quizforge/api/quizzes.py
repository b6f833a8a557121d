"""
Quiz template and quiz session API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from uuid import UUID
import logging
from typing import Optional

from quizforge.api.errors import http_error
from quizforge.database import get_db
from quizforge.exceptions import QuizForgeError, TemplateNotFoundError
from quizforge.schemas.quiz import (
    TemplateGenerateRequest,
    TemplateResponse,
    ChunkFailureInfo,
    QuizStartRequest,
    PresentedQuestion,
    SessionState,
    AnswerRequest,
    QuizResultResponse,
)
from quizforge.services.document_service import document_service
from quizforge.services.quiz_runner import QuizRunner, session_manager
from quizforge.services.quiz_service import quiz_service
from quizforge.services.rotation_service import rotation_service
from quizforge.services.template_service import template_service


router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])
logger = logging.getLogger(__name__)


def _session_state(
    session_id: str,
    runner: QuizRunner,
    last_answer_correct: Optional[bool] = None,
    warning: Optional[str] = None
) -> SessionState:
    # Reading the current question applies any expired countdowns first
    question = runner.current_question
    state = SessionState(
        session_id=session_id,
        document_id=runner.document_id,
        status="completed" if runner.is_completed else "presenting",
        total_questions=runner.total_questions,
        score=runner.score if runner.is_completed else None,
        time_remaining=round(runner.time_remaining(), 3),
        last_answer_correct=last_answer_correct,
        warning=warning,
    )
    if question is not None:
        state.current = PresentedQuestion(
            number=runner.state.index,
            question=question["question"],
            options=question["options"],
        )
    return state


@router.get("/sessions/{session_id}", response_model=SessionState)
async def get_session(session_id: str):
    """Current question and countdown of a quiz session"""
    try:
        runner = session_manager.get(session_id)
    except QuizForgeError as e:
        raise http_error(e)
    return _session_state(session_id, runner)


@router.post("/sessions/{session_id}/answer", response_model=SessionState)
async def submit_answer(session_id: str, answer: AnswerRequest):
    """
    Answer the current question

    - option_index null skips the question (counted as wrong)
    - question_number must be the question currently presented; an answer
      for a question whose countdown already ran out is refused with 409
    """
    try:
        runner = session_manager.get(session_id)
        question = runner.current_question
        if question is not None and answer.option_index is not None:
            if answer.option_index >= len(question["options"]):
                raise HTTPException(status_code=400, detail="option_index out of range")
        correct = runner.submit_answer(answer.option_index, expected_index=answer.question_number)
    except QuizForgeError as e:
        raise http_error(e)

    return _session_state(session_id, runner, last_answer_correct=correct)


@router.post("/sessions/{session_id}/complete", response_model=QuizResultResponse)
async def complete_session(session_id: str):
    """
    Final result of a finished quiz

    The attempt is recorded once when the last question is answered;
    calling this again returns the same result.
    """
    try:
        runner = session_manager.get(session_id)
        result = runner.complete()
    except QuizForgeError as e:
        raise http_error(e)

    return QuizResultResponse(
        session_id=session_id,
        document_id=result.document_id,
        score=result.score,
        total_questions=result.total_questions,
        score_display=f"{result.score}/{result.total_questions}",
        percentage=round(result.score / result.total_questions * 100, 2),
        selected_question_indices=result.selected_indices,
    )


@router.post("/{document_id}/template", response_model=TemplateResponse)
async def generate_template(
    document_id: UUID,
    request: Optional[TemplateGenerateRequest] = None,
    db: Session = Depends(get_db)
):
    """
    Build the question pool for a document

    - Reuses a stored, unexpired template unless force_refresh
    - Chunks the PDF text and generates questions per chunk with Gemini
    - Failed chunks are reported, not fatal, unless every chunk fails
    """
    request = request or TemplateGenerateRequest()

    try:
        build = await quiz_service.build_template(
            db,
            document_id,
            force_refresh=request.force_refresh,
            questions_per_chunk=request.questions_per_chunk,
        )
    except QuizForgeError as e:
        logger.error(f"Failed to generate quiz template: {str(e)}")
        raise http_error(e)

    return TemplateResponse(
        document_id=document_id,
        template_id=build.template_id,
        question_count=len(build.questions),
        from_cache=build.from_cache,
        chunk_count=build.chunk_count,
        failed_chunks=[
            ChunkFailureInfo(chunk_index=f.chunk_index, reason=f.reason) for f in build.failures
        ],
        duplicates_removed=build.duplicates_removed,
        expires_at=build.expires_at,
        saved=build.warning is None,
        warning=build.warning,
    )


@router.get("/{document_id}/template", response_model=TemplateResponse)
async def get_template(document_id: UUID, db: Session = Depends(get_db)):
    """Stored question pool info for a document"""
    try:
        document_service.get_document(db, document_id)
        template = template_service.get(db, document_id)
        if template is None:
            raise TemplateNotFoundError(f"No quiz template for document {document_id}")
    except QuizForgeError as e:
        raise http_error(e)

    return TemplateResponse(
        document_id=document_id,
        template_id=template.id,
        question_count=len(template.questions or []),
        from_cache=True,
        expires_at=template.expires_at,
    )


@router.delete("/{document_id}/history")
async def reset_history(document_id: UUID, db: Session = Depends(get_db)):
    """Forget which questions have been served for a document"""
    try:
        document_service.get_document(db, document_id)
    except QuizForgeError as e:
        raise http_error(e)

    rotation_service.reset(document_id)
    return {"message": "Question history reset", "document_id": str(document_id)}


@router.post("/{document_id}/sessions", response_model=SessionState, status_code=201)
async def start_session(
    document_id: UUID,
    request: Optional[QuizStartRequest] = None,
    db: Session = Depends(get_db)
):
    """
    Start a quiz attempt

    Questions are drawn from the document's pool, preferring ones not
    served in earlier attempts.
    """
    request = request or QuizStartRequest()

    try:
        session_id, runner, build = await quiz_service.start_quiz(db, document_id, request.count)
    except QuizForgeError as e:
        logger.error(f"Failed to start quiz: {str(e)}")
        raise http_error(e)

    return _session_state(session_id, runner, warning=build.warning)
