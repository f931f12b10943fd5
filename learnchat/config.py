"""
Application configuration using environment variables.
"""
import os
import secrets
from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "LearnChat API"
    debug: bool = False
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Security
    secret_key: str = os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./learnchat.db")

    # CORS
    cors_origins: List[str] = ["*"]

    # Rate limiting
    auth_rate_limit: str = "10/minute"
    chat_rate_limit: str = "30/minute"

    # External text generation (optional)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 30.0

    # Chat
    chat_context_turns: int = 6

    # Training simulation
    training_epoch_delay_seconds: float = 3.0
    seed_sample_data: bool = False  # default for seedIfEmpty on training requests

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Validate secret key on startup
settings = get_settings()
if settings.environment == "production" and not os.getenv("SECRET_KEY"):
    raise ValueError(
        "SECRET_KEY must be set in production! "
        "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
    )
