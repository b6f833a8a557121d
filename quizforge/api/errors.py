"""
Translation of domain errors into HTTP errors
"""
from fastapi import HTTPException

from quizforge.exceptions import (
    ConfigurationError,
    DocumentNotFoundError,
    GenerationFailedError,
    InsufficientContentError,
    NoValidQuestionsError,
    QuizForgeError,
    QuizStateError,
    SessionNotFoundError,
    TemplateNotFoundError,
    TextExtractionError,
)

_STATUS_CODES = (
    ((DocumentNotFoundError, TemplateNotFoundError, SessionNotFoundError), 404),
    ((QuizStateError,), 409),
    ((TextExtractionError, InsufficientContentError, NoValidQuestionsError, GenerationFailedError), 422),
    ((ConfigurationError,), 503),
)


def status_code_for(error: QuizForgeError) -> int:
    for error_types, status_code in _STATUS_CODES:
        if isinstance(error, error_types):
            return status_code
    return 500


def http_error(error: QuizForgeError) -> HTTPException:
    return HTTPException(status_code=status_code_for(error), detail=str(error))
