import os
import sys
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _should_load_env_file() -> str | None:
    """Load ``.env`` for local runs, never under pytest or CI."""
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'staging', 'production' or 'test'",
    )

    DATABASE_URL: str = "sqlite+aiosqlite:///./data/repotics.db"
    SECRET_KEY: str = Field(
        ...,
        description="JWT secret key - must be set via SECRET_KEY environment variable",
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:5173"],
        description="Allowed CORS origins (comma-separated in env var)",
    )

    AUTO_CREATE_DB: bool = Field(
        default=False,
        description="When true, create tables with metadata.create_all on startup",
    )
    SLOW_REQUEST_THRESHOLD: float = Field(
        default=1.0,
        description="Log warning for requests slower than this (seconds)",
    )

    # Accounts
    MIN_USER_AGE: int = Field(
        default=16,
        description="Minimum age in years required to register",
    )

    # Feed
    FEED_DEFAULT_LIMIT: int = Field(default=10, description="Default feed page size")
    FEED_MAX_LIMIT: int = Field(default=50, description="Maximum feed page size")

    # Report images
    MAX_IMAGE_BYTES: int = Field(
        default=5 * 1024 * 1024,
        description="Maximum size of a single report image",
    )
    MAX_IMAGES_PER_REPORT: int = Field(
        default=5,
        description="Maximum number of images attached to one report",
    )

    # Object storage
    STORAGE_BACKEND: str = Field(
        default="local",
        description="Object storage backend: 'local' or 'cloudinary'",
    )
    UPLOAD_DIR: str = Field(
        default="data/uploads",
        description="Root directory for the local storage backend",
    )
    UPLOAD_URL_PREFIX: str = Field(
        default="/data/uploads",
        description="URL prefix under which local uploads are served",
    )
    CLOUDINARY_CLOUD_NAME: str = Field(default="", description="Cloudinary cloud name")
    CLOUDINARY_API_KEY: str = Field(default="", description="Cloudinary API key")
    CLOUDINARY_API_SECRET: str = Field(default="", description="Cloudinary API secret")
    STORAGE_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        description="Timeout for a single object storage call",
    )

    # Language model
    LLM_API_KEY: str = Field(
        default="",
        description="API key for the Generative Language API (empty disables AI)",
    )
    LLM_MODEL: str = Field(default="gemini-2.0-flash", description="Model name")
    LLM_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        description="Timeout for a single language model call",
    )

    # Geocoding
    GEOCODING_BASE_URL: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Nominatim-compatible geocoding endpoint",
    )
    GEOCODING_COUNTRY: str = Field(
        default="Pakistan",
        description="Country appended to free-text location searches",
    )
    GEOCODING_USER_AGENT: str = Field(
        default="repotics-backend/1.0",
        description="User-Agent sent to the geocoding service",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Raises pydantic.ValidationError at import time if SECRET_KEY is missing.
settings = Settings()  # type: ignore[call-arg]


def get_settings() -> Settings:
    """Get the settings instance (for dependency injection)."""
    return settings
