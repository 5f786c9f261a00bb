"""
PetNet Backend: Application Configuration
============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; checked again during app startup.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for local development against a
    SQLite file. Production deployments MUST override JWT_SECRET and the
    SMTP credentials.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # Any SQLAlchemy async URL works; SQLite (aiosqlite) is the default store.
    database_url: str = Field(
        default="sqlite+aiosqlite:///./petnet.db",
        description="Async SQLAlchemy connection URL",
    )

    # Pool sizing only applies to server databases (ignored for SQLite).
    db_pool_size: int = Field(default=20, ge=5, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # ── Authentication ────────────────────────────────────────────────────
    # Tokens are issued elsewhere; this service only verifies them.
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET)
    jwt_algorithm: str = Field(default="HS256")

    # ── Email Notifications ───────────────────────────────────────────────
    notifications_enabled: bool = Field(default=True)
    smtp_host: str = Field(default="smtp.gmail.com")
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_username: str = Field(default="")
    smtp_password: str = Field(default="")
    smtp_use_tls: bool = Field(default=True)
    smtp_timeout: int = Field(default=10, ge=1, le=120)
    mail_sender: str = Field(default="PetNet <no-reply@petnet.local>")

    @property
    def smtp_configured(self) -> bool:
        """True when SMTP credentials are present."""
        return bool(self.smtp_username and self.smtp_password)

    # ── Retry Configuration ───────────────────────────────────────────────
    # Tenacity settings for outgoing email delivery.
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: int = Field(default=1, ge=0, le=30)
    retry_max_wait: int = Field(default=8, ge=1, le=120)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Comma-separated list; the React frontend runs on the Vite dev port.
    cors_origins: str = Field(default="http://localhost:5173,http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Only symmetric HMAC algorithms are supported with a shared secret."""
        if v not in {"HS256", "HS384", "HS512"}:
            raise ValueError(f"Unsupported jwt_algorithm '{v}'. Use HS256, HS384 or HS512")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def validate_required_for_production(self) -> None:
        """
        Checks that security-sensitive settings were overridden.

        Raises ValueError listing every problem found. Called from the app
        lifespan, which logs the problems instead of refusing to start.
        """
        errors = []
        if self.jwt_secret == DEFAULT_JWT_SECRET:
            errors.append("JWT_SECRET is using the development default.")
        if self.notifications_enabled and not self.smtp_configured:
            errors.append(
                "SMTP_USERNAME / SMTP_PASSWORD are not set; "
                "status-change emails will be skipped."
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


settings = Settings()
