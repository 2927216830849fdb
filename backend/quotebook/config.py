"""
Quotebook Backend — Application Configuration
=============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or a .env file),
       validates types and ranges, and exposes a module-level `settings` object.
Who:   Read by `quotebook.main` when wiring the service container. Services
       receive their values through constructor arguments, never by importing
       `settings` directly.
When:  Loaded once at module import time.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every value has a development default except the backend credentials,
    which must be provided for anything beyond the test suite.
    """

    # ── Remote Backend (Supabase) ─────────────────────────────────────────
    # Project URL, e.g. https://<project>.supabase.co (trailing slash tolerated)
    supabase_url: str = Field(
        default="",
        description="Base URL of the Supabase project (REST + auth)",
    )

    # Publishable (anon) key, sent as the `apikey` header on every call
    supabase_key: str = Field(
        default="",
        description="Supabase publishable API key",
    )

    # Seconds before an outbound call is abandoned by httpx
    http_timeout: float = Field(default=15.0, ge=1.0, le=120.0)

    # ── Local State ───────────────────────────────────────────────────────
    # JSON file standing in for the device's user-defaults storage.
    # Empty string keeps everything in memory (nothing survives a restart).
    preferences_path: str = Field(default="./data/preferences.json")

    # ── Browsing ──────────────────────────────────────────────────────────
    default_page_size: int = Field(default=20, ge=1, le=100)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Comma-separated list of UI origins allowed to call the API
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    # One remote account per process: serve the UI of this machine only.
    # Other clients get 401 from session routes regardless of the bind address.
    backend_host: str = Field(default="127.0.0.1")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
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

    @field_validator("supabase_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalizes the base URL so endpoint joins never produce `//`."""
        return v.strip().rstrip("/")

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # SUPABASE_URL and supabase_url both work
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that the backend credentials are configured.
        When:  Called during app startup (lifespan).
        How:   Collects every problem and raises a single ValueError listing them.
        """
        errors = []
        if not self.supabase_url:
            errors.append(
                "SUPABASE_URL is not set. Use the project URL from the Supabase dashboard."
            )
        if not self.supabase_key:
            errors.append(
                "SUPABASE_KEY is not set. Use the project's publishable (anon) key."
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Default settings instance, used by the application factory
settings = Settings()
