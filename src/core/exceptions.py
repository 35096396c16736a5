"""
Custom exception hierarchy for the grading consistency engine.

Provides a consistent error handling approach across all modules.
None of these errors is fatal to a session: callers recover locally.
"""


class GradingConsistencyError(Exception):
    """
    Base exception for all grading consistency engine errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, details: dict | None = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# ==================== Configuration Errors ====================

class ConfigurationError(GradingConsistencyError):
    """
    Error in system configuration.

    Raised when required configuration is missing or invalid.
    """
    pass


class MissingAPIKeyError(ConfigurationError):
    """Raised when a required API key is not configured."""
    pass


# ==================== Grading Errors ====================

class GradingError(GradingConsistencyError):
    """
    Base error for grading-related issues.
    """
    pass


class IncompleteEvaluationError(GradingError):
    """
    Raised when a save is attempted without a score and a non-empty
    explanation for every rubric criterion.

    The save is aborted and no session state is mutated.
    """

    def __init__(self, message: str, missing_criteria: list = None):
        super().__init__(message, {'missing_criteria': missing_criteria or []})
        self.missing_criteria = missing_criteria or []


class InvalidScoreError(GradingError):
    """Raised when a score is outside [0, max_score] or targets an unknown criterion."""
    pass


class MissingOverrideJustificationError(GradingError):
    """Raised when an override is submitted with a blank justification."""
    pass


# ==================== Session Errors ====================

class SessionError(GradingConsistencyError):
    """
    Base error for session-related issues.
    """
    pass


class PreconditionNotMetError(SessionError):
    """
    Raised when a screen transition guard fails.

    The transition is refused; the caller is expected to re-offer
    calibration (or grading) rather than treat this as a fault.
    """
    pass


class SessionStateError(SessionError):
    """Raised when the session is in an invalid state for the operation."""
    pass


# ==================== Gateway Errors ====================

class GatewayError(GradingConsistencyError):
    """
    Base error for AI gateway issues.

    Never escapes the validation pipeline: the affected criterion's
    verdict becomes an Error status instead.
    """
    pass


class APIConnectionError(GatewayError):
    """Raised when connection to the AI API fails."""
    pass


class APITimeoutError(GatewayError):
    """Raised when an AI API call times out."""
    pass


class APIResponseError(GatewayError):
    """Raised when the API returns an unexpected or invalid response."""
    pass


class ParsingError(GatewayError):
    """Raised when parsing the AI response fails."""
    pass


# ==================== Export Errors ====================

class ExportError(GradingConsistencyError):
    """
    Base error for export-related issues.
    """
    pass


class ExportGenerationError(ExportError):
    """Raised when report generation fails."""
    pass
