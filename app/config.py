"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Document store
    STORE_BACKEND: str = "sql"  # sql | memory
    DATABASE_URL: str = "sqlite:///./quizzes.db"
    TRANSACTION_MAX_ATTEMPTS: int = 5

    # Application
    APP_NAME: str = "Quiz Enrollment API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Quiz Settings
    RECENT_QUIZZES_LIMIT: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
