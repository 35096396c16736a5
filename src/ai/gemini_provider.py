"""
Google Gemini implementation of the validation gateway.

Handles communication with Google's Gemini models through the
asynchronous google-genai client.
"""

import asyncio
from typing import Optional

import google.genai as genai
from google.genai import types as genai_types
from tenacity import retry, stop_after_attempt, retry_if_exception_type, wait_exponential

from ai.base_provider import ValidationGateway, APIErrorContext
from ai.response_parser import parse_validation_response
from core.models import AIAnalysis, ValidationRequest
from core.exceptions import (
    MissingAPIKeyError,
    APIConnectionError,
    APITimeoutError,
    APIResponseError,
)
from config.settings import get_settings
from config.constants import MAX_RETRIES
from config.prompts import (
    VALIDATION_RESPONSE_SCHEMA,
    build_validation_prompt,
    build_tone_prompt,
)
from config.logging_config import get_logger

logger = get_logger(__name__)


# Transport failures worth another attempt
RETRYABLE_EXCEPTIONS = (
    APIConnectionError,
    APITimeoutError,
)


class GeminiValidationGateway(ValidationGateway):
    """
    Validation gateway backed by Gemini.

    Validation uses structured JSON output; tone analysis is plain text.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize Gemini gateway.

        Args:
            api_key: Google API key (default: from settings)
            model: Model name (default: from settings)
            timeout: Per-call timeout in seconds (default: from settings)
        """
        settings = get_settings()
        self.api_key = api_key or settings.gemini_api_key

        if not self.api_key:
            raise MissingAPIKeyError(
                "Gemini API key is required. "
                "Set GRADING_CONSISTENCY_GEMINI_API_KEY in .env"
            )

        self.model = model or settings.gemini_model
        self.timeout = timeout or settings.api_timeout_seconds
        self.client = genai.Client(api_key=self.api_key)

    @retry(
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        reraise=True
    )
    async def _generate(
        self,
        prompt: str,
        operation: str,
        config: Optional[genai_types.GenerateContentConfig] = None
    ) -> str:
        """Run one generate_content call and return the response text."""
        with APIErrorContext(operation, self.name):
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=config,
                ),
                timeout=self.timeout
            )

        text = getattr(response, "text", None)
        if not text:
            raise APIResponseError(
                f"{self.name} {operation} returned an empty response",
                {'model': self.model}
            )
        return text.strip()

    async def validate(self, request: ValidationRequest) -> AIAnalysis:
        """Validate an explanation against the submission text."""
        prompt = build_validation_prompt(
            submission_text=request.submission_text,
            criterion_name=request.criterion.name,
            criterion_description=request.criterion.description,
            max_score=request.criterion.max_score,
            score=request.score,
            explanation=request.explanation,
            highlighted_text=request.highlighted_text,
        )
        config = genai_types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=VALIDATION_RESPONSE_SCHEMA,
        )

        text = await self._generate(prompt, "validation", config)
        analysis = parse_validation_response(text)
        logger.debug(f"Validation for criterion {request.criterion.id}: {analysis.status.value}")
        return analysis

    async def analyze_tone(self, text: str) -> str:
        """Describe the tone of an explanation."""
        return await self._generate(build_tone_prompt(text), "tone analysis")
