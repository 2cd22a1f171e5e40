"""
Centralized Settings Configuration

Uses Pydantic Settings to load configuration from environment variables
with validation and type coercion.
"""

from datetime import datetime
from typing import Optional

import pytz
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Request defaults (used when an ExtractionRequest leaves them unset)
    default_timeout_ms: int = 30000
    user_agent: str = "api-extraction-service/1.0"

    # Rate-limit handling
    rate_limit_max_attempts: int = 3
    rate_limit_delay_seconds: float = 2.0
    rate_limit_backoff: str = "fixed"  # "fixed" or "exponential"
    rate_limit_max_delay_seconds: float = 30.0

    # Rendering limits
    render_sample_size: int = 10
    render_summary_threshold: int = 20
    render_max_chars: int = 25000

    # Timestamps in result metadata
    timezone: str = "UTC"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"
    service_name: str = "api-extraction-service"

    # HTTP API auth (disabled when unset)
    extraction_api_token: Optional[SecretStr] = None

    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return upper_v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is either json or console."""
        lower_v = v.lower()
        if lower_v not in {"json", "console"}:
            raise ValueError("log_format must be 'json' or 'console'")
        return lower_v

    @field_validator("rate_limit_backoff")
    @classmethod
    def validate_rate_limit_backoff(cls, v: str) -> str:
        """Validate backoff mode is either fixed or exponential."""
        lower_v = v.lower()
        if lower_v not in {"fixed", "exponential"}:
            raise ValueError("rate_limit_backoff must be 'fixed' or 'exponential'")
        return lower_v

    @field_validator("rate_limit_max_attempts", "render_sample_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


# Default settings instance for convenience
# Import this for quick access: from core.settings import settings
settings = Settings()


def now_iso(app_settings: Optional[Settings] = None) -> str:
    """Current time as ISO 8601 in the configured timezone."""
    tz = pytz.timezone((app_settings or settings).timezone)
    return datetime.now(tz).isoformat()
