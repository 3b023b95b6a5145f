"""Application configuration."""

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env.

    Priority: environment variables > .env > defaults
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/espresso.db"
    database_echo: bool = False

    # Sessions (secret must be set in production)
    session_secret: str = ""
    session_algorithm: str = "HS256"
    session_cookie_name: str = "espresso.sid"
    session_ttl_hours: int = 24
    session_cookie_secure: bool = False  # True behind HTTPS

    # Uploads: primary directory plus the publicly served mirror
    uploads_dir: str = "uploads"
    public_uploads_dir: str = "client/public/uploads"
    uploads_url_prefix: str = "/uploads"

    # Bootstrap admin account (seeded on startup when a password is set)
    admin_email: str = "admin@espresso.local"
    admin_username: str = "admin"
    admin_password: str = ""

    # Server
    host: str = "0.0.0.0"
    port: int = 3004
    dev_mode: bool = True  # False in production; hides internal error detail
    cors_origins: list[str] = ["*"]

    # Logging
    log_json: bool = False
    log_file: str | None = None
    error_log_file: str | None = None

    # Tracing (OpenTelemetry)
    otel_enabled: bool = False
    otel_service_name: str = "espresso-gallery"
    otel_exporter_endpoint: str = "http://otel-collector:4318"


settings = Settings()
