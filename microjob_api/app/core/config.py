"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields.  In a
production deployment you should override these via environment
variables (at minimum ``SECRET_KEY`` and ``CRON_SECRET``).
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Microjob Marketplace API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

    # Shared secret for the scheduled reservation sweep
    # (``/api/cron/expire-reservations``).  The scheduler sends it as
    # ``Authorization: Bearer <secret>``.  When empty, the cron routes
    # reject every request.
    cron_secret: str = os.getenv("CRON_SECRET", "")

    # Path to the SQLite database file.  A relative path is resolved
    # against the project root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "microjob.db")

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# must be set before importing this module.
settings = Settings()
