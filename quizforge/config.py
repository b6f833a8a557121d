"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = "sqlite:///./quizforge.db"

    # Gemini API
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"

    # Redis (rotation history)
    REDIS_URL: str = "redis://redis:6379/0"
    ROTATION_BACKEND: str = "redis"  # redis | memory

    # Blob storage
    STORAGE_DIR: str = "./storage"

    # Application
    APP_NAME: str = "PDF Quiz Generation Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Generation
    MAX_CHUNK_SIZE: int = 4000
    QUESTIONS_PER_CHUNK: int = 5
    GENERATION_BATCH_SIZE: int = 3
    GENERATION_BATCH_DELAY: float = 2.0  # seconds between batches
    MIN_CONTENT_CHARS: int = 500
    MIN_CONTENT_WORDS: int = 100
    BACKGROUND_TEMPLATE_QUESTIONS: int = 50
    SUMMARY_MAX_CHARS: int = 800

    # LLM calls
    LLM_TIMEOUT_SECONDS: float = 60.0
    LLM_MAX_RETRIES: int = 5
    LLM_INITIAL_RETRY_DELAY: float = 1.0
    LLM_MAX_RETRY_DELAY: float = 60.0

    # Quiz Settings
    TEMPLATE_TTL_DAYS: int = 7
    DEFAULT_QUIZ_QUESTIONS: int = 10
    MAX_QUIZ_QUESTIONS: int = 50
    QUESTION_TIME_LIMIT: int = 60  # seconds per question
    ROTATION_RESET_RATIO: float = 0.5

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
