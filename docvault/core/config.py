"""
Configuration management for the DocVault service.

This module centralizes environment-driven configuration using Pydantic's
`BaseSettings`. Components receive the values they need through their
constructors; only the wiring layer reads the shared `settings` instance.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AnyUrl, Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    # General application settings
    API_TITLE: str = "DocVault API"
    API_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = Field("development", pattern=r"^(development|staging|production)$")
    ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    # Datastore
    DATASTORE_BACKEND: str = Field("memory", pattern=r"^(memory|mongodb)$")
    MONGODB_URL: AnyUrl = Field("mongodb://localhost:27017")
    MONGODB_DATABASE: str = "docvault"

    # Object storage
    STORAGE_BACKEND: str = Field("local", pattern=r"^(local|s3|gcs)$")
    S3_BUCKET_NAME: Optional[str] = None
    S3_REGION: Optional[str] = None
    S3_ENDPOINT_URL: Optional[AnyUrl] = None
    GCS_BUCKET_NAME: Optional[str] = None
    GOOGLE_SERVICE_ACCOUNT_FILE: Optional[Path] = None
    LOCAL_STORAGE_PATH: Path = Field(default_factory=lambda: Path("storage"))
    SIGNED_URL_TTL_SECONDS: PositiveInt = 3600

    # LLM provider configuration
    LLM_PROVIDER: str = Field("anthropic", pattern=r"^(anthropic|openai)$")
    ANTHROPIC_API_KEY: Optional[str] = None
    OPENAI_API_KEY: Optional[str] = None
    CLAUDE_MODEL: str = "claude-sonnet-4-20250514"
    OPENAI_MODEL: str = "gpt-4o"
    MAX_TOKENS: PositiveInt = 4096
    MAX_CONTENT_CHARS: PositiveInt = 100_000

    # Processing / retry
    RETRY_MAX_ATTEMPTS: PositiveInt = 3
    RETRY_BASE_DELAY_SECONDS: float = 2.0
    RETRY_BACKOFF_COEFFICIENT: float = 2.0
    MAX_UPLOAD_BYTES: PositiveInt = 100 * 1024 * 1024
    ALLOWED_EXTENSIONS: List[str] = Field(default_factory=lambda: [".pdf", ".doc", ".docx"])

    # Groups
    GROUP_SUGGESTION_MIN_CONFIDENCE: float = 0.6

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @field_validator("ALLOWED_ORIGINS", mode="before")
    def _split_origins(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("ALLOWED_EXTENSIONS", mode="before")
    def _split_extensions(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, str):
            value = [item.strip() for item in value.split(",") if item.strip()]
        return [item.lower() if item.startswith(".") else f".{item.lower()}" for item in value or []]


@lru_cache()
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()


# Singleton-style settings instance for modules that prefer direct access.
settings = get_settings()
