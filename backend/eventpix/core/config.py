from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    PROJECT_NAME: str = "EventPix API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "local"
    DATABASE_URL: str = "sqlite+aiosqlite:///./eventpix.db"
    SECRET_KEY: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    JWT_ALGORITHM: str = "HS256"
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Cache store. Empty value keeps the in-process store (single worker only)
    REDIS_CACHE_URL: Optional[str] = "redis://localhost:6379/1"
    RATE_LIMIT_STORAGE_URL: Optional[str] = "redis://localhost:6379/2"
    ACCESS_CODE_RATE_LIMIT: str = "10/minute"
    BULK_DOWNLOAD_RATE_LIMIT: str = "5/hour"

    # Celery configuration
    CELERY_ENABLED: bool = True
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"

    # S3-compatible object storage
    S3_ENDPOINT_URL: Optional[str] = None
    S3_REGION: str = "eu-central-1"
    S3_ACCESS_KEY_ID: Optional[str] = None
    S3_SECRET_ACCESS_KEY: Optional[str] = None
    S3_BUCKET: str = "eventpix"

    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    SUPER_ADMIN_EMAILS: str = ""

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def split_comma_separated(cls, value: List[str] | str) -> List[str]:
        """Allow both comma-separated strings and list inputs."""
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("S3_ENDPOINT_URL", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY", mode="before")
    @classmethod
    def strip_quotes(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str):
            value = value.strip().strip("'\"")
            return value or None
        return value

    @property
    def super_admin_emails(self) -> set[str]:
        return {
            email.strip().lower()
            for email in self.SUPER_ADMIN_EMAILS.split(",")
            if email.strip()
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
