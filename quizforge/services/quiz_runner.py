"""
Quiz session state machine

Presenting(0) -> Presenting(1) -> ... -> Completed(score). Each question has
its own countdown; an expired question counts as wrong and advances.
Completion fires the on_complete callback exactly once.
"""
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from quizforge.config import settings
from quizforge.exceptions import QuizStateError, SessionNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class Presenting:
    index: int


@dataclass
class Completed:
    score: int


@dataclass
class QuizResult:
    document_id: Any
    template_id: Any
    score: int
    total_questions: int
    selected_indices: List[int]
    answers: List[Optional[int]] = field(default_factory=list)


class QuizRunner:

    def __init__(
        self,
        document_id,
        questions: List[Dict[str, Any]],
        template_indices: List[int],
        on_complete: Callable[[QuizResult], Any] = None,
        template_id=None,
        time_limit: float = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not questions:
            raise ValueError("A quiz needs at least one question")
        if len(questions) != len(template_indices):
            raise ValueError("questions and template_indices must have the same length")

        self.document_id = document_id
        self.template_id = template_id
        self.questions = questions
        self.template_indices = list(template_indices)
        self.on_complete = on_complete
        self.time_limit = settings.QUESTION_TIME_LIMIT if time_limit is None else time_limit
        self.clock = clock

        self.state = Presenting(0)
        self.score = 0
        self.answers: List[Optional[int]] = []
        self.deadline = self.clock() + self.time_limit
        self.result: Optional[QuizResult] = None
        self._completion_fired = False

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def is_completed(self) -> bool:
        return isinstance(self.state, Completed)

    @property
    def current_question(self) -> Optional[Dict[str, Any]]:
        self.apply_timeouts()
        if isinstance(self.state, Presenting):
            return self.questions[self.state.index]
        return None

    def time_remaining(self) -> float:
        self.apply_timeouts()
        if self.is_completed:
            return 0.0
        return max(0.0, self.deadline - self.clock())

    def _advance(self, selected: Optional[int]) -> bool:
        index = self.state.index
        correct = selected is not None and selected == self.questions[index]["answer"]
        if correct:
            self.score += 1
        self.answers.append(selected)

        if index + 1 < self.total_questions:
            self.state = Presenting(index + 1)
        else:
            self.state = Completed(self.score)
            self._fire_completion()
        return correct

    def apply_timeouts(self):
        """Advance past every question whose countdown has already run out"""
        now = self.clock()
        while isinstance(self.state, Presenting) and now >= self.deadline:
            logger.info(f"Question {self.state.index + 1} timed out")
            expired_at = self.deadline
            self._advance(None)
            self.deadline = expired_at + self.time_limit

    def submit_answer(self, option_index: Optional[int], expected_index: Optional[int] = None) -> bool:
        """
        Answer the current question; None skips it

        Args:
            option_index: Selected option, or None to skip
            expected_index: Question the answer was given for; if that
                question has since timed out the answer is refused

        Returns:
            True if the answer was correct

        Raises:
            QuizStateError: the quiz is already completed, or the answer
                arrived after its question expired
        """
        self.apply_timeouts()
        if not isinstance(self.state, Presenting):
            raise QuizStateError("Quiz is already completed")
        if expected_index is not None and expected_index != self.state.index:
            raise QuizStateError(
                f"Answer for question {expected_index + 1} is stale, "
                f"question {self.state.index + 1} is now being presented"
            )

        correct = self._advance(option_index)
        self.deadline = self.clock() + self.time_limit
        return correct

    def _fire_completion(self):
        if self._completion_fired:
            return
        self._completion_fired = True

        self.result = QuizResult(
            document_id=self.document_id,
            template_id=self.template_id,
            score=self.score,
            total_questions=self.total_questions,
            selected_indices=list(self.template_indices),
            answers=list(self.answers),
        )
        logger.info(f"Quiz completed: {self.score}/{self.total_questions} for document {self.document_id}")
        if self.on_complete:
            try:
                self.on_complete(self.result)
            except Exception as e:
                logger.error(f"Failed to record quiz attempt: {str(e)}", exc_info=True)

    def complete(self) -> QuizResult:
        """
        Return the final result; safe to call any number of times

        Raises:
            QuizStateError: questions are still pending
        """
        self.apply_timeouts()
        if not self.is_completed:
            raise QuizStateError(
                f"Quiz still in progress (question {self.state.index + 1}/{self.total_questions})"
            )
        self._fire_completion()
        return self.result


class QuizSessionManager:
    """In-memory registry of live quiz sessions"""

    def __init__(self, max_sessions: int = 1000):
        self.max_sessions = max_sessions
        self._sessions: Dict[str, QuizRunner] = {}
        self._lock = threading.Lock()

    def create(self, runner: QuizRunner) -> str:
        session_id = str(uuid.uuid4())
        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                # Drop the oldest session
                oldest = next(iter(self._sessions))
                del self._sessions[oldest]
            self._sessions[session_id] = runner
        return session_id

    def get(self, session_id: str) -> QuizRunner:
        runner = self._sessions.get(session_id)
        if runner is None:
            raise SessionNotFoundError(f"Quiz session {session_id} not found")
        return runner

    def discard(self, session_id: str):
        with self._lock:
            self._sessions.pop(session_id, None)

    def discard_document(self, document_id):
        with self._lock:
            for session_id in [s for s, r in self._sessions.items() if r.document_id == document_id]:
                del self._sessions[session_id]


# Global instance
session_manager = QuizSessionManager()
