"""
Export module for finalized grading sessions.

Post-grading tasks:
- Plain-text consistency report
- Mocked LMS grade submission
"""

from export.report import ConsistencyReport
from export.lms import LMSSubmitter, LMSSubmissionResult

__all__ = [
    'ConsistencyReport',
    'LMSSubmitter',
    'LMSSubmissionResult',
]
