"""
Configuration module for the grading consistency engine.

Provides settings, constants, prompt templates, and logging configuration.
"""

from config.settings import get_settings, reload_settings, Settings
from config.logging_config import (
    setup_structured_logging,
    get_logger,
)
from config.constants import (
    CALIBRATION_REQUIRED,
    GEMINI_DEFAULT_MODEL,
    VALIDATION_DEBOUNCE_SECONDS,
    API_TIMEOUT_SECONDS,
    MAX_RETRIES,
    LOW_VALIDITY_THRESHOLD,
    DRIFT_FLAG_THRESHOLD,
    LOW_VALIDITY_FLAG,
    SIGNIFICANT_DRIFT_FLAG,
    REPORT_DIR,
)

__all__ = [
    # Settings
    'get_settings',
    'reload_settings',
    'Settings',
    # Logging
    'setup_structured_logging',
    'get_logger',
    # Constants
    'CALIBRATION_REQUIRED',
    'GEMINI_DEFAULT_MODEL',
    'VALIDATION_DEBOUNCE_SECONDS',
    'API_TIMEOUT_SECONDS',
    'MAX_RETRIES',
    'LOW_VALIDITY_THRESHOLD',
    'DRIFT_FLAG_THRESHOLD',
    'LOW_VALIDITY_FLAG',
    'SIGNIFICANT_DRIFT_FLAG',
    'REPORT_DIR',
]
