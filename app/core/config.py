# app/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Everything has a development default so the API can boot against a
    local SQLite file and a local uploads directory.

    Production (.env):
      - DATABASE_URL (Postgres connection string)
      - SMTP_HOST / SMTP_USERNAME / SMTP_PASSWORD for approval emails

    Optional:
      - STORAGE_BACKEND=supabase + SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY
        to keep blobs in Supabase Storage instead of the local disk.
    """

    PROJECT_NAME: str = "PinSync API"
    API_PREFIX: str = ""
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database
    DATABASE_URL: str = "sqlite:///./pinsync.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_ECHO: bool = False

    # Blob storage
    STORAGE_BACKEND: Literal["local", "supabase"] = "local"
    STORAGE_DIR: str = "uploads"
    STORAGE_PUBLIC_PREFIX: str = "/files"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    MAX_PORTFOLIO_FILES: int = 10

    # Supabase (only read when STORAGE_BACKEND=supabase)
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    SUPABASE_BUCKET: str = "assets"

    # SMTP (approval notifications)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: SecretStr | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "PinSync"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    SMTP_TIMEOUT_SEC: float = 30.0

    # Outgoing notification queue
    NOTIFY_QUEUE_SIZE: int = 100

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_USERNAME and self.SMTP_PASSWORD)


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
