"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "MAKAO Rental Management"
    debug: bool = False
    api_v1_prefix: str = "/v1"
    log_level: str = "INFO"
    currency: str = "KES"

    # CORS (comma-separated)
    allowed_origins: str = "http://localhost:3000"

    # Database
    database_url: str

    # Firebase Auth
    firebase_project_id: str
    google_application_credentials: Optional[str] = None

    # Identity webhook
    identity_webhook_secret: str
    # Off by default: email substrings are not a trustworthy role signal
    role_email_heuristic: bool = False

    # Email (SMTP)
    email_enabled: bool = False
    email_from: str = "no-reply@makao.co.ke"
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True

    # SMS (Africa's Talking)
    sms_enabled: bool = False
    africastalking_base_url: str = "https://api.africastalking.com"
    africastalking_username: Optional[str] = None
    africastalking_api_key: Optional[str] = None
    africastalking_sender_id: Optional[str] = None

    # Worker
    worker_poll_seconds: int = 30
    worker_batch_size: int = 20
    worker_claim_timeout_seconds: int = 600
    reminder_days_before_due: int = 3

    @property
    def cors_origins(self) -> list[str]:
        """Allowed CORS origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
