"""
Configuration settings for RunWatch.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support."""
    
    # Application
    APP_NAME: str = "RunWatch"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    
    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    
    # GitHub
    GITHUB_HOST: str = "github.com"
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_API_URL: Optional[str] = None  # Derived from GITHUB_HOST when unset
    CORRELATION_INPUT: str = "correlation_id"
    
    # Dispatch engine
    RESOLVE_MAX_ATTEMPTS: int = 12
    POLL_INTERVAL_SECONDS: float = 5.0
    MONITOR_TIMEOUT_SECONDS: Optional[float] = None  # None = until cancelled
    HTTP_TIMEOUT_SECONDS: float = 30.0
    RUNS_PAGE_SIZE: int = 100
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
