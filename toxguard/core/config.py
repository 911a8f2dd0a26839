"""
Application configuration — driven by environment variables or .env file.
All settings can be overridden at runtime without changing source code.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=("settings_",),  # Silence model_variant namespace warning
    )

    # ── API metadata ────────────────────────────────────────────────────────
    app_title: str = "ToxGuard API"
    app_version: str = "1.0.0"
    app_description: str = (
        "Classifies submitted text for toxicity with a pretrained model, "
        "stores every analysis and serves the most recent history."
    )

    # ── Server ───────────────────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"
    # None waits for every in-flight request before shutting down
    graceful_shutdown_timeout: Optional[int] = None

    # ── Database ─────────────────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./toxguard.db"
    database_echo: bool = False
    # Upper bound for the SELECT 1 behind /health
    database_ping_timeout: float = 2.0

    # ── CORS ─────────────────────────────────────────────────────────────────
    cors_origin: str = "http://localhost:5173"

    # ── Rate limiting (fixed window per client IP) ───────────────────────────
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max: int = 100

    # ── Model ────────────────────────────────────────────────────────────────
    model_variant: str = "original"   # original | unbiased | multilingual
    preload_model: bool = False
    default_threshold: float = Field(0.85, ge=0.0, le=1.0)
    # Reproduces the old behaviour where the first request's threshold sticks
    freeze_threshold_on_load: bool = False

    # ── Analysis ─────────────────────────────────────────────────────────────
    min_text_length: int = 3
    history_limit: int = 10

    # ── Errors ───────────────────────────────────────────────────────────────
    expose_error_details: bool = False


# Module-level singleton — imported everywhere
settings = Settings()
