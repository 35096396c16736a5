"""
Centralized logging configuration for the grading consistency engine.

Uses Loguru; modules obtain a bound logger through get_logger(__name__).
"""

import sys
from pathlib import Path
from typing import Optional
from loguru import logger


def setup_structured_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    serialize: bool = False
) -> None:
    """
    Configure Loguru handlers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file (always written at DEBUG)
        serialize: Emit JSON records on stderr instead of plain text
    """
    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        serialize=serialize,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[module]} | {message}",
        level=level,
        backtrace=True,
        diagnose=False
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path,
            serialize=True,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days"
        )

    # Suppress noisy third-party loggers
    logger.disable("httpx")
    logger.disable("httpcore")
    logger.disable("google_genai")


def get_logger(name: str):
    """
    Get a logger for a specific module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance with module binding
    """
    return logger.bind(module=name)


# Records logged before setup_structured_logging() still need extra[module]
logger.configure(extra={"module": "grading_consistency"})
