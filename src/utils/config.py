"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # DataForSEO (required before any provider call)
    DATAFORSEO_LOGIN: Optional[str] = None
    DATAFORSEO_PASSWORD: Optional[str] = None

    # Claude API (keyword brainstorming, conversion rates)
    ANTHROPIC_API_KEY: Optional[str] = None
    CLAUDE_MODEL: str = "claude-sonnet-4-20250514"

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Location taxonomy
    LOCATION_COUNTRY: str = "us"
    DEFAULT_LOCATION: str = "United States"
    LANGUAGE_CODE: str = "en"
    LOCATION_CACHE_TTL: int = 24 * 60 * 60

    # Limits
    RANKED_KEYWORDS_PER_COMPETITOR: int = 10
    RANKING_KEYWORD_LIMIT: int = 50
    RANKING_BATCH_SIZE: int = 50
    MAX_GENERATED_KEYWORDS: int = 50

    # SERP task polling (seconds)
    RANKING_SETTLE_DELAY: float = 30.0
    RANKING_POLL_ATTEMPTS: int = 10
    RANKING_POLL_INTERVAL: float = 5.0

    # HTTP client
    API_TIMEOUT: int = 60
    MAX_CONCURRENT_REQUESTS: int = 10

    # Scoring policy
    CTR_LOCAL: float = 0.35
    CTR_NATIONAL: float = 0.30

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
