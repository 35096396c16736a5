"""
Response parsing for the validation gateway.

Turns the model's JSON verdict into an AIAnalysis, tolerating markdown
code fences around the JSON object.
"""

import json
import re
from typing import Dict, Any, Optional

from core.models import AIAnalysis, ValidationStatus
from core.exceptions import ParsingError
from config.logging_config import get_logger

logger = get_logger(__name__)


# Wire values accepted from the model
_STATUS_BY_WIRE_VALUE = {
    "supported": ValidationStatus.SUPPORTED,
    "partial": ValidationStatus.PARTIAL,
    "not supported": ValidationStatus.NOT_SUPPORTED,
    "notsupported": ValidationStatus.NOT_SUPPORTED,
}


def extract_json_object(raw_response: str) -> Optional[Dict[str, Any]]:
    """
    Extract a JSON object from a model response.

    Handles ```json fences, bare ``` fences and objects embedded in text.

    Args:
        raw_response: The raw text response

    Returns:
        Parsed dictionary, or None if no object could be parsed
    """
    if not raw_response:
        return None

    text = raw_response.strip()

    fence = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    if fence:
        text = fence.group(1).strip()

    brace_start = text.find('{')
    brace_end = text.rfind('}')
    if brace_start < 0 or brace_end <= brace_start:
        return None

    candidate = text[brace_start:brace_end + 1]
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.debug(f"JSON parse error: {e}")
        # Trailing commas are the most common defect
        repaired = re.sub(r',\s*([}\]])', r'\1', candidate)
        try:
            parsed = json.loads(repaired)
        except json.JSONDecodeError:
            return None

    return parsed if isinstance(parsed, dict) else None


def parse_status(value: Any) -> ValidationStatus:
    """
    Map a wire status onto ValidationStatus.

    Unexpected values map to ERROR rather than raising.
    """
    if not isinstance(value, str):
        return ValidationStatus.ERROR
    return _STATUS_BY_WIRE_VALUE.get(value.strip().lower(), ValidationStatus.ERROR)


def parse_validation_response(raw_response: str) -> AIAnalysis:
    """
    Parse a validation verdict.

    Expected format:
        {"status": "Supported" | "Partial" | "Not Supported",
         "referencedExcerpt": "...",
         "suggestedRefinement": "..."}

    Args:
        raw_response: Raw text returned by the model

    Returns:
        AIAnalysis built from the response

    Raises:
        ParsingError: The response holds no JSON object
    """
    data = extract_json_object(raw_response)
    if data is None:
        raise ParsingError(
            "Validation response is not a JSON object",
            {'response_preview': (raw_response or "")[:200]}
        )

    status = parse_status(data.get("status"))
    excerpt = data.get("referencedExcerpt")
    refinement = data.get("suggestedRefinement") or None

    analysis = AIAnalysis(
        status=status,
        referenced_excerpt=str(excerpt) if excerpt is not None else None,
        suggested_refinement=str(refinement) if refinement is not None else None,
    )
    if status == ValidationStatus.ERROR:
        analysis.error = f"Unexpected validation status: {data.get('status')!r}"
        logger.warning(analysis.error)

    return analysis
