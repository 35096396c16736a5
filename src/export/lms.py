"""
Mocked LMS grade submission.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from core.session import GradingSession
from config.settings import get_settings
from config.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class LMSSubmissionResult:
    """Outcome of an LMS submission."""
    success: bool
    message: str
    submitted_count: int = 0


class LMSSubmitter:
    """
    Submits final grades to the LMS.

    No real protocol exists; submission waits for a fixed delay and
    reports success when every submission is graded.
    """

    def __init__(self, delay: Optional[float] = None):
        if delay is None:
            delay = get_settings().lms_submit_delay_seconds
        self.delay = delay

    async def submit(self, session: GradingSession) -> LMSSubmissionResult:
        """Submit the session's grades. Never raises."""
        assignment_name = session.assignment.name if session.assignment else "Session"

        if not session.is_all_graded:
            message = (
                f"Cannot submit grades for \"{assignment_name}\": "
                f"{session.graded_count} of {len(session.submissions)} submissions graded."
            )
            logger.warning(message)
            return LMSSubmissionResult(success=False, message=message)

        await asyncio.sleep(self.delay)

        count = len(session.records)
        logger.info(f"Submitted {count} grades for {assignment_name} to LMS")
        return LMSSubmissionResult(
            success=True,
            message=f"Grades for \"{assignment_name}\" submitted successfully to LMS!",
            submitted_count=count
        )
