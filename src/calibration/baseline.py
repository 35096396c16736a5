"""
Calibration baseline computation.

The baseline is the grader's reference point for drift: mean score per
criterion, mean explanation length, and tone distribution over the
first graded submissions. It is computed exactly once per session.
"""

import asyncio
import numpy as np
from collections import defaultdict
from typing import List, Dict, Optional

from ai.base_provider import ValidationGateway
from core.models import CalibrationBaseline, EvaluationRecord
from core.exceptions import GatewayError, PreconditionNotMetError
from config.constants import CALIBRATION_REQUIRED, TONE_CONSTRUCTIVE, TONE_OTHER
from config.logging_config import get_logger

logger = get_logger(__name__)


def categorize_tone(description: str) -> str:
    """
    Collapse a free-text tone description into a tone category.

    Args:
        description: Tone description returned by the gateway

    Returns:
        TONE_CONSTRUCTIVE if the description mentions it, else TONE_OTHER
    """
    if TONE_CONSTRUCTIVE in description.lower():
        return TONE_CONSTRUCTIVE
    return TONE_OTHER


class CalibrationEngine:
    """
    Computes the calibration baseline from graded records.

    Tone analysis is best-effort: any failed call is logged and the
    explanation simply does not contribute to the tone counts.
    """

    def __init__(
        self,
        tone_gateway: Optional[ValidationGateway] = None,
        required: int = CALIBRATION_REQUIRED
    ):
        """
        Initialize engine.

        Args:
            tone_gateway: Gateway used for tone analysis (None skips tone)
            required: Graded records needed before calibration
        """
        self.tone_gateway = tone_gateway
        self.required = required

    def is_due(self, graded_count: int, baseline: Optional[CalibrationBaseline]) -> bool:
        """Calibration runs once the threshold is reached and no baseline exists yet."""
        return baseline is None and graded_count >= self.required

    async def compute(
        self,
        records: List[EvaluationRecord],
        analyze_tone: bool = True
    ) -> CalibrationBaseline:
        """
        Compute the baseline from every record graded so far.

        Args:
            records: Graded records (all of them, not capped at the threshold)
            analyze_tone: Whether to call the tone gateway

        Returns:
            New CalibrationBaseline

        Raises:
            PreconditionNotMetError: No graded records
        """
        if not records:
            raise PreconditionNotMetError("Cannot calibrate without graded submissions")

        scores_by_criterion: Dict[str, List[int]] = defaultdict(list)
        explanation_lengths: List[int] = []
        explanations: List[str] = []

        for record in records:
            for evaluation in record.evaluations:
                if evaluation.score is None:
                    continue
                scores_by_criterion[evaluation.criterion_id].append(evaluation.score)
                explanation_lengths.append(len(evaluation.explanation))
                if evaluation.explanation.strip():
                    explanations.append(evaluation.explanation)

        mean_scores = {
            criterion_id: float(np.mean(scores))
            for criterion_id, scores in scores_by_criterion.items()
        }
        strength_mean = float(np.mean(explanation_lengths)) if explanation_lengths else 0.0

        tone_mean: Dict[str, float] = {}
        if analyze_tone and self.tone_gateway is not None and explanations:
            tone_counts = await self._count_tones(explanations)
            tone_mean = {
                category: count / len(records)
                for category, count in tone_counts.items()
            }

        baseline = CalibrationBaseline(
            mean_scores=mean_scores,
            explanation_strength_mean=strength_mean,
            tone_mean=tone_mean,
            record_count=len(records)
        )
        logger.info(
            f"Calibration baseline computed from {len(records)} submissions: "
            f"means={ {k: round(v, 2) for k, v in mean_scores.items()} }"
        )
        return baseline

    async def _count_tones(self, explanations: List[str]) -> Dict[str, int]:
        """Classify every explanation; failed calls are skipped."""
        results = await asyncio.gather(
            *(self.tone_gateway.analyze_tone(text) for text in explanations),
            return_exceptions=True
        )

        counts: Dict[str, int] = defaultdict(int)
        for result in results:
            if isinstance(result, GatewayError):
                logger.warning(f"Could not analyze tone for calibration: {result}")
                continue
            if isinstance(result, Exception):
                logger.warning(f"Unexpected tone analysis failure during calibration: {result!r}")
                continue
            if isinstance(result, BaseException):
                raise result
            counts[categorize_tone(result)] += 1

        return dict(counts)
