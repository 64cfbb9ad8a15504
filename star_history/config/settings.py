"""Application settings and configuration"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "star-history"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # GitHub API
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_API_URL: str = "https://api.github.com"
    USER_AGENT: str = "star-history/1.0"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Stargazer listing
    STARGAZER_PAGE_SIZE: int = 100
    STARGAZER_PAGE_LIMIT: Optional[int] = 400  # GitHub refuses pages past this window

    # Sampling
    MAX_SAMPLES: int = 100
    MAX_CONCURRENT_REQUESTS: int = 5

    # Retries
    FETCH_MAX_ATTEMPTS: int = 3
    BACKOFF_BASE_SECONDS: float = 0.1
    BACKOFF_MAX_SECONDS: float = 2.0

    # Rate limit
    QUOTA_BLOCKING: bool = True
    QUOTA_MAX_WAIT_SECONDS: float = 3600.0
    QUOTA_RESET_BUFFER_SECONDS: float = 1.0

    # Run
    RUN_TIMEOUT_SECONDS: Optional[float] = None
    OUTPUT_DIR: Optional[str] = None  # defaults to <tmp>/star-history

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env


settings = Settings()
