"""
Centralized Configuration for FileHub.

All environment variables are managed here using Pydantic Settings.
This provides:
- Type validation
- Default values
- Single source of truth

Usage:
    from filehub.config import settings

    db_url = settings.database_url
    bucket = settings.storage_bucket
"""

import os
from typing import Optional, Literal
from pydantic import Field, field_validator, ConfigDict
from pydantic_settings import BaseSettings

from .constants import (
    DEFAULT_BUCKET,
    DEFAULT_MAX_UPLOAD_SIZE_MB,
    DEFAULT_SIGNED_URL_EXPIRE_SECONDS,
    DEFAULT_TOKEN_EXPIRE_MINUTES,
    MAX_SIGNED_URL_EXPIRE_SECONDS,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables are prefixed with FILEHUB_ where applicable.
    See .env.example for all available options.
    """

    # =============================================================================
    # Application Environment
    # =============================================================================

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
        validation_alias="FILEHUB_ENVIRONMENT"
    )

    testing: bool = Field(
        default=False,
        description="Enable testing mode",
        validation_alias="TESTING"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        validation_alias="FILEHUB_LOG_LEVEL"
    )

    allowed_origins: str = Field(
        default="*",
        description="CORS allowed origins (comma-separated or '*')",
        validation_alias="FILEHUB_ALLOWED_ORIGINS"
    )

    # =============================================================================
    # Database
    # =============================================================================

    database_url: str = Field(
        default="sqlite:///./filehub.db",
        description="Database connection URL (PostgreSQL or SQLite)",
        validation_alias="DATABASE_URL"
    )

    # =============================================================================
    # Authentication & Security
    # =============================================================================

    secret_key: str = Field(
        ...,
        description="Secret key for JWT and signed URL signing (generate with: openssl rand -hex 32)",
        validation_alias="FILEHUB_SECRET_KEY"
    )

    token_expire_minutes: int = Field(
        default=DEFAULT_TOKEN_EXPIRE_MINUTES,
        description="JWT token expiration time in minutes",
        validation_alias="FILEHUB_TOKEN_EXPIRE_MINUTES"
    )

    bootstrap_superadmin_email: Optional[str] = Field(
        default=None,
        description="Email that is granted the superadmin role when it registers",
        validation_alias="FILEHUB_BOOTSTRAP_SUPERADMIN_EMAIL"
    )

    # =============================================================================
    # Object Storage
    # =============================================================================

    storage_root: str = Field(
        default="./storage",
        description="Directory holding one sub-directory per storage bucket",
        validation_alias="FILEHUB_STORAGE_ROOT"
    )

    storage_bucket: str = Field(
        default=DEFAULT_BUCKET,
        description="Bucket that uploaded files are written to",
        validation_alias="FILEHUB_STORAGE_BUCKET"
    )

    signed_url_expire_seconds: int = Field(
        default=DEFAULT_SIGNED_URL_EXPIRE_SECONDS,
        ge=1,
        le=MAX_SIGNED_URL_EXPIRE_SECONDS,
        description="Lifetime of download/preview signed URLs in seconds",
        validation_alias="FILEHUB_SIGNED_URL_EXPIRE_SECONDS"
    )

    public_base_url: str = Field(
        default="http://localhost:8000",
        description="Externally reachable base URL used to build signed URLs",
        validation_alias="FILEHUB_PUBLIC_BASE_URL"
    )

    max_upload_size_mb: int = Field(
        default=DEFAULT_MAX_UPLOAD_SIZE_MB,
        ge=1,
        description="Maximum size of a single uploaded file in megabytes",
        validation_alias="FILEHUB_MAX_UPLOAD_SIZE_MB"
    )

    # =============================================================================
    # Computed Properties
    # =============================================================================

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.testing

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    # =============================================================================
    # Pydantic Model Configuration
    # =============================================================================

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =============================================================================
    # Field Validators
    # =============================================================================

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Convert postgres:// to postgresql:// for SQLAlchemy compatibility."""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is uppercase and valid."""
        v = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Ensure environment is lowercase."""
        return v.lower() if isinstance(v, str) else v

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @field_validator("bootstrap_superadmin_email")
    @classmethod
    def normalize_bootstrap_email(cls, v):
        return v.strip().lower() if v else v


# =============================================================================
# Global Settings Instance
# =============================================================================

# Will raise a validation error if required fields are missing
try:
    settings = Settings()
except Exception as e:
    if os.getenv("TESTING") == "true":
        os.environ.setdefault("FILEHUB_SECRET_KEY", "test-secret-key-for-testing-only")
        settings = Settings()
    else:
        raise RuntimeError(
            f"Failed to load application settings: {e}\n\n"
            "Required environment variables:\n"
            "- FILEHUB_SECRET_KEY (generate with: openssl rand -hex 32)\n\n"
            "See .env.example for all available configuration options."
        ) from e


def get_settings() -> Settings:
    """
    Get settings instance (for dependency injection).

    Usage:
        @app.get("/endpoint")
        def endpoint(settings: Settings = Depends(get_settings)):
            ...
    """
    return settings


__all__ = ["settings", "get_settings", "Settings"]
