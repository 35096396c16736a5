"""
AI gateway implementations for justification validation.

Usage:
    from ai import create_validation_gateway

    gateway = create_validation_gateway()
    analysis = await gateway.validate(request)
"""

from ai.base_provider import ValidationGateway
from ai.validation_scheduler import ValidationScheduler

__all__ = [
    "ValidationGateway",
    "ValidationScheduler",
    "GeminiValidationGateway",
    "create_validation_gateway",
]


def GeminiValidationGateway(*args, **kwargs):
    """Create a Gemini gateway instance (lazy import)."""
    from ai.gemini_provider import GeminiValidationGateway as _GeminiValidationGateway
    return _GeminiValidationGateway(*args, **kwargs)


def create_validation_gateway(provider_type: str = "gemini", **kwargs) -> ValidationGateway:
    """
    Create the validation gateway.

    Args:
        provider_type: Provider name (only "gemini" is supported)
        **kwargs: Forwarded to the provider constructor

    Returns:
        ValidationGateway instance
    """
    if provider_type.lower() != "gemini":
        raise ValueError(f"Unknown provider type: {provider_type}")
    return GeminiValidationGateway(**kwargs)
