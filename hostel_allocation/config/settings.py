"""
Environment configuration for the hostel allocation engine.
Uses Pydantic's settings management to handle environment variables
with proper type validation and default values.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file if it exists
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


class Environment(str, Enum):
    """Application environment types."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # Application configuration
    APP_NAME: str = Field(default="Hostel Allocation Engine", alias="PROJECT_NAME")
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    DEBUG: bool = False

    # Database configuration
    DATABASE_URL: str = "sqlite:///./hostel_allocation.db"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_POOL_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600
    DB_BUSY_TIMEOUT: int = Field(default=30, description="SQLite lock wait in seconds")
    SLOW_QUERY_THRESHOLD: float = 0.5

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True

    # Allocation engine
    ALLOCATION_MAX_RETRIES: int = Field(default=3, ge=1)
    BULK_CHUNK_SIZE: Optional[int] = Field(default=None, ge=1)

    # Credentials for profiles created by bulk roster uploads
    PASSWORD_HASH_SCHEMES: str = "bcrypt"
    PASSWORD_BCRYPT_ROUNDS: int = 12

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise and validate the log level name."""
        level = v.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v or "://" not in v:
            raise ValueError("DATABASE_URL must be a SQLAlchemy URL")
        return v

    @property
    def password_schemes(self) -> List[str]:
        """Hash schemes parsed from the comma separated setting."""
        return [s.strip() for s in self.PASSWORD_HASH_SCHEMES.split(",") if s.strip()]

    def is_development(self) -> bool:
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        return self.ENVIRONMENT == Environment.TESTING

    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
