"""Application configuration."""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://cre:cre123@db:5432/cre"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Security
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    JWT_AUDIENCE: Optional[str] = None

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # Pagination
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 100

    # Property import
    IMPORT_ERROR_SAMPLE_SIZE: int = 10
    IMPORT_PROGRESS_INTERVAL: int = 50

    # Prospecting
    PREVIEW_ROW_LIMIT: int = 20

    # Verification
    VERIFICATION_INTERVAL_DAYS: int = 365
    VERIFICATION_QUEUE_LIMIT: int = 50

    # Contact normalization
    DEFAULT_PHONE_REGION: str = "US"

    @property
    def is_sqlite(self) -> bool:
        """Check if using SQLite database"""
        return self.DATABASE_URL.startswith("sqlite")

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
