"""
In-memory evaluation store: one record per submission.

Saves are idempotent upserts. A record is only accepted when every
rubric criterion has a score within range and a non-blank explanation.
"""

from datetime import datetime
from typing import Dict, List, Optional

from core.models import CriterionEvaluation, EvaluationRecord, RubricCriterion
from core.exceptions import IncompleteEvaluationError, InvalidScoreError
from config.logging_config import get_logger

logger = get_logger(__name__)


class EvaluationStore:
    """
    Holds the graded evaluation records of a session.

    Records keep their first-save position; a re-save replaces the record
    in place and becomes the most recently saved one.
    """

    def __init__(self):
        self._records: List[EvaluationRecord] = []
        self._last_saved_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, submission_id: str) -> bool:
        return self.get(submission_id) is not None

    @property
    def records(self) -> List[EvaluationRecord]:
        """Records in first-graded order (copy)."""
        return list(self._records)

    def get(self, submission_id: str) -> Optional[EvaluationRecord]:
        """Get the record for a submission, if graded."""
        return next((r for r in self._records if r.submission_id == submission_id), None)

    def latest(self) -> Optional[EvaluationRecord]:
        """The most recently saved record."""
        if self._last_saved_id is None:
            return None
        return self.get(self._last_saved_id)

    def upsert(
        self,
        submission_id: str,
        evaluations: List[CriterionEvaluation],
        rubric: List[RubricCriterion]
    ) -> EvaluationRecord:
        """
        Insert or replace the record for a submission.

        Args:
            submission_id: Submission being graded
            evaluations: One evaluation per rubric criterion
            rubric: Session rubric, used for completeness and ordering

        Returns:
            The stored record, stamped with the current time

        Raises:
            IncompleteEvaluationError: A criterion lacks a score or explanation
            InvalidScoreError: A score is out of range or targets an unknown criterion
        """
        ordered = self._validate(evaluations, rubric)

        record = EvaluationRecord(
            submission_id=submission_id,
            evaluations=ordered,
            timestamp=datetime.now()
        )

        for index, existing in enumerate(self._records):
            if existing.submission_id == submission_id:
                self._records[index] = record
                logger.debug(f"Replaced evaluation record for submission {submission_id}")
                break
        else:
            self._records.append(record)
            logger.debug(f"Stored evaluation record for submission {submission_id} ({len(self._records)} graded)")

        self._last_saved_id = submission_id
        return record

    def _validate(
        self,
        evaluations: List[CriterionEvaluation],
        rubric: List[RubricCriterion]
    ) -> List[CriterionEvaluation]:
        """Check completeness and ranges; return evaluations in rubric order."""
        by_criterion: Dict[str, CriterionEvaluation] = {}
        for evaluation in evaluations:
            if not any(c.id == evaluation.criterion_id for c in rubric):
                raise InvalidScoreError(
                    f"Unknown criterion '{evaluation.criterion_id}'",
                    {'criterion_id': evaluation.criterion_id}
                )
            by_criterion[evaluation.criterion_id] = evaluation

        missing = [
            c.id for c in rubric
            if c.id not in by_criterion or not by_criterion[c.id].is_complete
        ]
        if missing:
            raise IncompleteEvaluationError(
                "Please provide a score and an explanation for all rubric criteria.",
                missing_criteria=missing
            )

        ordered = []
        for criterion in rubric:
            evaluation = by_criterion[criterion.id]
            if not 0 <= evaluation.score <= criterion.max_score:
                raise InvalidScoreError(
                    f"Score {evaluation.score} for '{criterion.name}' must be between 0 and {criterion.max_score}",
                    {'criterion_id': criterion.id, 'score': evaluation.score}
                )
            ordered.append(evaluation.model_copy(update={'explanation': evaluation.explanation.strip()}))

        return ordered
