"""
Configuration module for the clinic booking webhook.

Loads environment variables and provides configuration settings for the
database, PII hashing, the in-memory session store and logging.
"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        database_url: SQLAlchemy connection string for the slot store
        pii_hash_secret: Key used to hash patient-identifying fields
        session_store_capacity: Maximum number of in-progress booking drafts
        environment: Runtime environment (development, production, test)
        log_level: Optional override for the environment's log level
        log_dir: Directory for rotating log files
        host: Interface the webhook server binds to
        port: Port the webhook server listens on
    """

    # Database configuration
    database_url: str = Field(
        default="sqlite:///./clinic.db",
        alias="DATABASE_URL",
        description="SQLAlchemy connection string"
    )

    # Security
    pii_hash_secret: str = Field(
        default="change-me",
        alias="PII_HASH_SECRET",
        description="Secret key for one-way hashing of patient name and phone"
    )

    # Session store
    session_store_capacity: int = Field(
        default=1000,
        gt=0,
        alias="SESSION_STORE_CAPACITY",
        description="Booking drafts kept in memory before LRU eviction"
    )

    # Runtime
    environment: str = Field(
        default="development",
        alias="ENVIRONMENT",
        description="development, production or test"
    )

    log_level: Optional[str] = Field(
        default=None,
        alias="LOG_LEVEL",
        description="Overrides the environment's default log level"
    )

    log_dir: str = Field(
        default="logs",
        alias="LOG_DIR",
        description="Directory for rotating log files"
    )

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the global settings instance.

    Returns:
        Settings instance with loaded configuration
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
