"""
Validation gateway contract.

The grading core consumes, but does not own, an AI service that checks
whether a grader's explanation is supported by the submission text and
describes the explanation's tone. Implementations raise GatewayError
subclasses on failure; callers convert failures into an Error verdict.
"""

from abc import ABC, abstractmethod

from core.models import AIAnalysis, ValidationRequest
from core.exceptions import (
    GatewayError,
    APIConnectionError,
    APITimeoutError,
    APIResponseError,
)
from config.logging_config import get_logger

logger = get_logger(__name__)


class APIErrorContext:
    """
    Context manager for consistent API error handling.

    Translates transport exceptions into GatewayError subclasses.

    Usage:
        with APIErrorContext("validation call", "gemini"):
            response = await client.call(...)
    """

    def __init__(self, operation: str, provider_name: str = "unknown"):
        """
        Initialize error context.

        Args:
            operation: Description of the operation being performed
            provider_name: Name of the provider (for error messages)
        """
        self.operation = operation
        self.provider_name = provider_name

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            return False

        if issubclass(exc_type, GatewayError):
            return False

        logger.error(f"{self.provider_name} API error during {self.operation}: {exc_val}")

        details = {'provider': self.provider_name, 'operation': self.operation}
        message = f"{self.provider_name} {self.operation} failed: {exc_val}"

        if issubclass(exc_type, TimeoutError):
            raise APITimeoutError(message, details) from exc_val
        if issubclass(exc_type, (ConnectionError, OSError)):
            raise APIConnectionError(message, details) from exc_val
        if issubclass(exc_type, Exception):
            raise APIResponseError(message, details) from exc_val

        return False


class ValidationGateway(ABC):
    """
    Stateless request/response service for justification validation.

    Both calls are asynchronous and may be slow; neither mutates session state.
    """

    name: str = "gateway"

    @abstractmethod
    async def validate(self, request: ValidationRequest) -> AIAnalysis:
        """
        Validate an explanation against the submission text.

        Args:
            request: Submission text, criterion, score, explanation and
                     optional highlighted excerpt

        Returns:
            AIAnalysis with status Supported, Partial or Not Supported,
            the referenced excerpt and an optional suggested refinement

        Raises:
            GatewayError: The call failed or timed out
        """

    @abstractmethod
    async def analyze_tone(self, text: str) -> str:
        """
        Describe the tone of an explanation in free text.

        Raises:
            GatewayError: The call failed or timed out
        """
