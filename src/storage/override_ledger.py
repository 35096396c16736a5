"""
Append-only log of grader overrides of AI verdicts.
"""

from typing import List

from core.models import OverrideLog
from config.logging_config import get_logger

logger = get_logger(__name__)


class OverrideLedger:
    """
    Append-only override log.

    Entries are never deduplicated: overriding the same
    (submission, criterion) pair twice yields two entries.
    """

    def __init__(self):
        self._entries: List[OverrideLog] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

    @property
    def entries(self) -> List[OverrideLog]:
        """All entries in append order (copy)."""
        return list(self._entries)

    def append(self, log: OverrideLog) -> None:
        """Append an override entry unconditionally."""
        self._entries.append(log)
        logger.debug(
            f"Override logged for submission {log.submission_id}, "
            f"criterion {log.criterion_id} (was {log.original_ai_status.value})"
        )

    def for_submission(self, submission_id: str) -> List[OverrideLog]:
        """Entries for one submission."""
        return [e for e in self._entries if e.submission_id == submission_id]
