"""
Runtime Environment Validation Module

Validates the environment at application startup. If validation fails,
the application refuses to start (hard fail) instead of erroring on the
first request that touches a misconfigured integration.
"""

import logging
import os
import sys

from pydantic import ValidationError

from makao.core.config import Settings

logger = logging.getLogger(__name__)


def _fatal(message: str) -> None:
    logger.critical("FATAL: %s", message)
    sys.exit(1)


def validate_environment() -> Settings:
    """
    Validate all required environment variables.

    Returns:
        Settings: Validated settings object

    Raises:
        SystemExit: If validation fails (exit code 1)
    """
    try:
        settings = Settings()
    except ValidationError as e:
        lines = []
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            lines.append(f"{field}: {error['msg']}")
        _fatal("Environment validation failed: " + "; ".join(lines))

    # 1. CORS: no wildcard outside debug mode
    if not settings.debug and "*" in settings.cors_origins:
        _fatal("Wildcard CORS origin (*) detected in production mode. Set ALLOWED_ORIGINS.")

    # 2. Database: PostgreSQL outside debug mode
    if not settings.debug and not settings.database_url.startswith("postgresql"):
        _fatal("DATABASE_URL must be a PostgreSQL connection string (postgresql+asyncpg://)")

    # 3. Firebase credentials path must exist if provided
    if settings.google_application_credentials and not os.path.exists(
        settings.google_application_credentials
    ):
        _fatal(f"Firebase credentials file not found: {settings.google_application_credentials}")

    # 4. Notification channels
    if settings.email_enabled and not settings.smtp_host:
        _fatal("SMTP_HOST is required when EMAIL_ENABLED=true")
    if settings.sms_enabled and not (
        settings.africastalking_username and settings.africastalking_api_key
    ):
        _fatal("AFRICASTALKING_USERNAME and AFRICASTALKING_API_KEY are required when SMS_ENABLED=true")

    logger.info(
        "Environment validation passed (app=%s debug=%s email=%s sms=%s)",
        settings.app_name,
        settings.debug,
        settings.email_enabled,
        settings.sms_enabled,
    )
    return settings


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    validate_environment()
