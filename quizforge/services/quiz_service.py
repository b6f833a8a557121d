"""
Quiz pipeline orchestration

extract text -> chunk -> generate -> dedupe -> store template -> rotate ->
run quiz -> record attempt
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from quizforge.config import settings
from quizforge.database import SessionLocal
from quizforge.exceptions import InsufficientContentError, NoValidQuestionsError, QuizForgeError
from quizforge.services.attempt_service import attempt_service
from quizforge.services.document_service import document_service
from quizforge.services.pdf_service import extract_text
from quizforge.services.question_generator import ChunkFailure, QuestionGenerator
from quizforge.services.quiz_runner import QuizRunner, session_manager
from quizforge.services.rotation_service import rotation_service
from quizforge.services.template_service import template_service
from quizforge.utils.chunker import chunk_text
from quizforge.utils.dedup import dedupe_questions

logger = logging.getLogger(__name__)

NOT_SAVED_WARNING = "Quiz generated successfully but could not be saved for future use"


@dataclass
class TemplateBuild:
    """Outcome of building (or reusing) a document's question pool"""
    document_id: UUID
    questions: List[Dict[str, Any]]
    template_id: Optional[UUID] = None
    from_cache: bool = False
    chunk_count: int = 0
    failures: List[ChunkFailure] = field(default_factory=list)
    duplicates_removed: int = 0
    expires_at: Optional[datetime] = None
    warning: Optional[str] = None
    source_text: Optional[str] = field(default=None, repr=False)


def check_content(text: str, min_chars: int = None, min_words: int = None):
    """Raise InsufficientContentError when text is too thin for a quiz"""
    min_chars = settings.MIN_CONTENT_CHARS if min_chars is None else min_chars
    min_words = settings.MIN_CONTENT_WORDS if min_words is None else min_words

    if len(text) < min_chars:
        raise InsufficientContentError(
            "The document does not contain enough text to generate quiz questions. "
            "Please use a PDF with more text content."
        )
    if len(text.split()) < min_words:
        raise InsufficientContentError(
            "The document doesn't contain enough meaningful text to generate a quiz."
        )


class QuizService:

    def __init__(
        self,
        generator: QuestionGenerator = None,
        templates=None,
        rotation=None,
        documents=None,
        attempts=None,
        sessions=None,
        session_factory=SessionLocal,
    ):
        self.generator = generator or QuestionGenerator()
        self.templates = templates or template_service
        self.rotation = rotation or rotation_service
        self.documents = documents or document_service
        self.attempts = attempts or attempt_service
        self.sessions = sessions or session_manager
        self.session_factory = session_factory

    async def generate_questions(
        self,
        text: str,
        questions_per_chunk: int = None,
        total_questions: int = None
    ) -> Tuple[List[Dict[str, Any]], List[ChunkFailure], int, int]:
        """
        Chunk text and generate a deduplicated question pool

        Returns:
            (questions, chunk failures, chunk count, duplicates removed)

        Raises:
            NoValidQuestionsError: generation produced no valid questions
        """
        chunks = list(chunk_text(text, settings.MAX_CHUNK_SIZE))
        if not chunks:
            raise NoValidQuestionsError("No text to generate questions from")

        if total_questions:
            per_chunk = max(1, math.ceil(total_questions / len(chunks)))
        else:
            per_chunk = questions_per_chunk or settings.QUESTIONS_PER_CHUNK

        logger.info(f"Text split into {len(chunks)} chunks, requesting {per_chunk} questions each")
        result = await self.generator.generate(chunks, per_chunk)

        questions = dedupe_questions(result.questions)
        removed = len(result.questions) - len(questions)
        if removed:
            logger.info(f"Removed {removed} duplicate questions")

        if not questions:
            raise NoValidQuestionsError("No valid quiz questions could be generated from this document")

        return questions, result.failures, len(chunks), removed

    async def build_template(
        self,
        db,
        document_id: UUID,
        force_refresh: bool = False,
        questions_per_chunk: int = None,
        total_questions: int = None
    ) -> TemplateBuild:
        """
        Return the document's question pool, generating it when needed

        A valid stored template is reused unless ``force_refresh``. A newly
        generated pool replaces the stored one and clears the rotation
        history. If storing fails the questions are still returned with a
        warning.
        """
        document = self.documents.get_document(db, document_id)

        if not force_refresh and self.templates.is_valid(db, document_id):
            template = self.templates.get(db, document_id)
            logger.info(f"Reusing quiz template {template.id} for document {document_id}")
            return TemplateBuild(
                document_id=document_id,
                questions=list(template.questions),
                template_id=template.id,
                from_cache=True,
                expires_at=template.expires_at,
            )

        data = await self.documents.read_pdf(document)
        text = extract_text(data)
        check_content(text)

        questions, failures, chunk_count, removed = await self.generate_questions(
            text, questions_per_chunk=questions_per_chunk, total_questions=total_questions
        )

        build = TemplateBuild(
            document_id=document_id,
            questions=questions,
            chunk_count=chunk_count,
            failures=failures,
            duplicates_removed=removed,
            source_text=text,
        )

        saved = self.templates.save(db, document_id, questions)
        if saved.ok:
            build.template_id = saved.id
            stored = self.templates.get(db, document_id)
            build.expires_at = stored.expires_at if stored else None
        else:
            logger.error(f"Template for document {document_id} generated but not saved: {saved.error}")
            build.warning = NOT_SAVED_WARNING

        # Indices from the replaced pool must not leak into the new one
        self.rotation.reset(document_id)
        self.sessions.discard_document(document_id)
        return build

    async def start_quiz(self, db, document_id: UUID, count: int = None) -> Tuple[str, QuizRunner, TemplateBuild]:
        """Select questions for one attempt and open a quiz session"""
        count = count or settings.DEFAULT_QUIZ_QUESTIONS
        build = await self.build_template(db, document_id)

        selection = self.rotation.select(document_id, build.questions, count)
        runner = QuizRunner(
            document_id=document_id,
            questions=selection.questions,
            template_indices=selection.selected_indices,
            template_id=build.template_id,
            on_complete=self.attempts.record_result,
        )
        session_id = self.sessions.create(runner)
        logger.info(f"Started quiz session {session_id} with {len(selection.questions)} questions")
        return session_id, runner, build

    async def process_document(self, document_id: UUID):
        """
        Background job: build a large template and a summary for a document

        Failures are recorded on the document's processing status.
        """
        db = self.session_factory()
        try:
            self.documents.set_processing_status(db, document_id, "processing")
            try:
                build = await self.build_template(
                    db,
                    document_id,
                    force_refresh=True,
                    total_questions=settings.BACKGROUND_TEMPLATE_QUESTIONS,
                )
                await self._store_summary(db, document_id, build.source_text or "")
            except QuizForgeError as e:
                logger.error(f"Error processing document {document_id}: {str(e)}")
                self.documents.set_processing_status(db, document_id, "error", str(e))
                return
            except Exception as e:
                logger.error(f"Unexpected error processing document {document_id}: {str(e)}", exc_info=True)
                db.rollback()
                self.documents.set_processing_status(db, document_id, "error", str(e))
                return

            self.documents.set_processing_status(db, document_id, "complete", build.warning)
        finally:
            db.close()

    async def _store_summary(self, db, document_id: UUID, text: str):
        first_chunk = next(chunk_text(text, settings.MAX_CHUNK_SIZE), "")
        if not first_chunk:
            return

        document = self.documents.get_document(db, document_id)
        document.summary = await self.generator.llm.summarize(first_chunk)
        db.commit()


# Global instance
quiz_service = QuizService()
