"""
Domain errors raised by the quiz pipeline
"""


class QuizForgeError(Exception):
    """Base class for all service errors"""


class ConfigurationError(QuizForgeError):
    """Required configuration (e.g. the Gemini API key) is missing"""


class TextExtractionError(QuizForgeError):
    """PDF could not be read or contains no extractable text"""


class InsufficientContentError(QuizForgeError):
    """Extracted text is too short to generate questions from"""


class GenerationFailedError(QuizForgeError):
    """Every chunk failed during question generation"""


class NoValidQuestionsError(QuizForgeError):
    """Generation finished but produced zero valid questions"""


class DocumentNotFoundError(QuizForgeError):
    pass


class TemplateNotFoundError(QuizForgeError):
    pass


class SessionNotFoundError(QuizForgeError):
    pass


class QuizStateError(QuizForgeError):
    """Operation not allowed in the quiz session's current state"""
