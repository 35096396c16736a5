"""
Constants and configuration values for the grading consistency engine.

Defines thresholds, weights, and system-wide constants.
"""

from typing import Final

# Calibration
CALIBRATION_REQUIRED: Final[int] = 3  # Graded submissions needed before the baseline exists

# AI Model Configuration
GEMINI_MODEL_FLASH: Final[str] = "gemini-2.5-flash"
GEMINI_DEFAULT_MODEL: Final[str] = GEMINI_MODEL_FLASH

# Validation requests
VALIDATION_DEBOUNCE_SECONDS: Final[float] = 0.6
API_TIMEOUT_SECONDS: Final[float] = 30.0
MAX_RETRIES: Final[int] = 3

# Risk thresholds
LOW_VALIDITY_THRESHOLD: Final[float] = 80.0  # % of supported/partial verdicts
DRIFT_FLAG_THRESHOLD: Final[float] = 5.0     # mean absolute points off baseline

LOW_VALIDITY_FLAG: Final[str] = "Low explanation validity rate"
SIGNIFICANT_DRIFT_FLAG: Final[str] = "Significant score drift detected"

# Session confidence score (composite, 0-100)
CONFIDENCE_VALIDITY_WEIGHT: Final[float] = 0.6
CONFIDENCE_DRIFT_WEIGHT: Final[float] = 0.3
CONFIDENCE_OVERRIDE_WEIGHT: Final[float] = 0.1
DRIFT_PENALTY_FACTOR: Final[float] = 5.0      # 20 points of drift => 0
OVERRIDE_PENALTY_FACTOR: Final[float] = 10.0  # 10 overrides => 0

# Tone categories used by the calibration baseline
TONE_CONSTRUCTIVE: Final[str] = "constructive"
TONE_OTHER: Final[str] = "other"

# Generic message stored on a verdict when the gateway fails
GATEWAY_ERROR_MESSAGE: Final[str] = "AI analysis failed."

# Export
REPORT_DIR: Final[str] = "outputs/reports"
REPORT_FILENAME_PREFIX: Final[str] = "Grading_Consistency_Report_"
DEFAULT_GRADER_NAME: Final[str] = "[Your Name]"
LMS_SUBMIT_DELAY_SECONDS: Final[float] = 1.5
