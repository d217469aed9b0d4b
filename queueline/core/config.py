"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Queueline"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./queueline.db"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Analytics
    ANALYTICS_TIMEZONE: str = "UTC"
    ANALYTICS_DEFAULT_PERIOD: str = "7d"

    # Engine
    QUEUE_LOCK_TIMEOUT_SECONDS: float = 5.0

    # Field limits
    CUSTOMER_NAME_MAX_LENGTH: int = 100

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
