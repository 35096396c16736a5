"""
Configuration management for the grading consistency engine.

All configuration comes from environment variables or .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache

from config.constants import (
    GEMINI_DEFAULT_MODEL,
    VALIDATION_DEBOUNCE_SECONDS,
    API_TIMEOUT_SECONDS,
    LMS_SUBMIT_DELAY_SECONDS,
    DEFAULT_GRADER_NAME,
    REPORT_DIR,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GRADING_CONSISTENCY_",
        case_sensitive=False,
        extra="ignore"
    )

    # AI Provider
    gemini_api_key: str = ""
    gemini_model: str = GEMINI_DEFAULT_MODEL
    ai_enabled: bool = True

    # Timing
    validation_debounce_seconds: float = Field(VALIDATION_DEBOUNCE_SECONDS, ge=0)
    api_timeout_seconds: float = Field(API_TIMEOUT_SECONDS, gt=0)
    lms_submit_delay_seconds: float = Field(LMS_SUBMIT_DELAY_SECONDS, ge=0)

    # Report
    grader_name: str = DEFAULT_GRADER_NAME
    report_dir: str = REPORT_DIR

    # Logging
    log_level: str = "INFO"

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a standard level name."""
        valid_levels = ['TRACE', 'DEBUG', 'INFO', 'SUCCESS', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Reload settings from environment."""
    get_settings.cache_clear()
    return get_settings()
