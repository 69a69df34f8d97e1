"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support"""
    
    # Airtable
    AIRTABLE_API_BASE_URL: str = "https://api.airtable.com/v0"
    AIRTABLE_API_KEY: Optional[str] = None
    AIRTABLE_RATE_LIMIT_DELAY: float = 0.22  # seconds, Airtable allows ~5 req/sec per base
    AIRTABLE_PAGE_SIZE: int = 100
    
    # HTTP client
    HTTP_TIMEOUT: float = 30.0
    MAX_RETRIES: int = 3
    RETRY_DELAY: float = 1.0
    
    # Snapshot output
    SNAPSHOT_BATCH_SIZE: int = 500
    SNAPSHOT_OUTPUT_DIR: Optional[str] = None
    DEFAULT_BASE_NAME: str = "AirtableSnapshot"
    
    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3000
    
    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # text | json
    
    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
