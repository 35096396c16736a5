"""
Session analytics for grading consistency.

Derives validity, drift, variance and risk signals from the graded
records, the calibration baseline and the override ledger. Every metric
is a deterministic function of persisted records; drafts and in-flight
validations are never read.
"""

import numpy as np
from collections import defaultdict
from typing import Dict, List, Optional, Tuple, Any, Sequence

from core.models import (
    EvaluationRecord, RubricCriterion, CalibrationBaseline, SessionAnalytics,
    EarlyVsLateScores, AIAssistanceSummary, ValidationStatus,
    ANALYZED_STATUSES, VALID_STATUSES
)
from config.constants import (
    CALIBRATION_REQUIRED,
    LOW_VALIDITY_THRESHOLD,
    DRIFT_FLAG_THRESHOLD,
    LOW_VALIDITY_FLAG,
    SIGNIFICANT_DRIFT_FLAG,
    CONFIDENCE_VALIDITY_WEIGHT,
    CONFIDENCE_DRIFT_WEIGHT,
    CONFIDENCE_OVERRIDE_WEIGHT,
    DRIFT_PENALTY_FACTOR,
    OVERRIDE_PENALTY_FACTOR,
)
from config.logging_config import get_logger

logger = get_logger(__name__)


# ==================== Metric functions ====================

def explanation_validity(records: Sequence[EvaluationRecord]) -> Tuple[float, int]:
    """
    Percentage of analyzed explanations judged Supported or Partial.

    Evaluations with no verdict, Not Analyzed or Error are not analyzed.

    Returns:
        (validity rate in [0, 100], analyzed count); the rate is 0 when
        nothing was analyzed
    """
    analyzed = 0
    valid = 0
    for record in records:
        for evaluation in record.evaluations:
            status = evaluation.ai_status
            if status in ANALYZED_STATUSES:
                analyzed += 1
                if status in VALID_STATUSES:
                    valid += 1

    if analyzed == 0:
        return 0.0, 0
    return 100.0 * valid / analyzed, analyzed


def score_drift(record: EvaluationRecord, baseline: CalibrationBaseline) -> float:
    """
    Mean absolute deviation of a record's scores from the baseline means.

    Only criteria present in the baseline count; 0 when none do.
    """
    deviations = [
        abs(evaluation.score - baseline.mean_scores[evaluation.criterion_id])
        for evaluation in record.evaluations
        if evaluation.score is not None and evaluation.criterion_id in baseline.mean_scores
    ]
    if not deviations:
        return 0.0
    return float(np.mean(deviations))


def sample_variance(scores: Sequence[float]) -> float:
    """
    Sample variance with the denominator forced to 1 for a single score.

    A sequence of length 0 or 1 has variance 0.
    """
    if len(scores) < 2:
        return 0.0
    return float(np.var(np.asarray(scores, dtype=float), ddof=1))


def criterion_score_history(
    records: Sequence[EvaluationRecord],
    rubric: Sequence[RubricCriterion]
) -> Dict[str, List[int]]:
    """Scores per rubric criterion across records, in graded order."""
    history: Dict[str, List[int]] = {c.id: [] for c in rubric}
    for record in records:
        for evaluation in record.evaluations:
            if evaluation.score is not None and evaluation.criterion_id in history:
                history[evaluation.criterion_id].append(evaluation.score)
    return history


def extend_variance_heatmap(
    previous: Dict[str, List[float]],
    records: Sequence[EvaluationRecord],
    rubric: Sequence[RubricCriterion]
) -> Dict[str, List[float]]:
    """
    Append one variance value per criterion to the heatmap.

    Earlier entries are copied unchanged; only the new point reflects
    the current score history.
    """
    history = criterion_score_history(records, rubric)
    heatmap = {criterion_id: list(values) for criterion_id, values in previous.items()}
    for criterion in rubric:
        heatmap.setdefault(criterion.id, []).append(sample_variance(history[criterion.id]))
    return heatmap


def justification_strength_trend(records: Sequence[EvaluationRecord]) -> List[float]:
    """Mean explanation length per record, in graded order."""
    return [record.mean_explanation_length for record in records]


def score_drift_trend(
    records: Sequence[EvaluationRecord],
    baseline: Optional[CalibrationBaseline]
) -> List[float]:
    """Drift of every record against the baseline, in graded order."""
    if baseline is None:
        return []
    return [score_drift(record, baseline) for record in records]


def high_risk_flags(validity_rate: float, analyzed: int, drift: float) -> List[str]:
    """Fresh list of session-level risk flags."""
    flags = []
    if analyzed > 0 and validity_rate < LOW_VALIDITY_THRESHOLD:
        flags.append(LOW_VALIDITY_FLAG)
    if drift > DRIFT_FLAG_THRESHOLD:
        flags.append(SIGNIFICANT_DRIFT_FLAG)
    return flags


def session_confidence_score(validity_rate: float, drift: float, override_count: int) -> float:
    """
    Composite confidence score clamped to [0, 100].

    60% validity, 30% inverse drift (20 points of drift scores 0),
    10% inverse overrides (10 overrides score 0).
    """
    drift_component = max(0.0, 100.0 - min(100.0, drift * DRIFT_PENALTY_FACTOR))
    override_component = max(0.0, 100.0 - min(100.0, override_count * OVERRIDE_PENALTY_FACTOR))

    score = (
        CONFIDENCE_VALIDITY_WEIGHT * validity_rate
        + CONFIDENCE_DRIFT_WEIGHT * drift_component
        + CONFIDENCE_OVERRIDE_WEIGHT * override_component
    )
    return float(max(0.0, min(100.0, score)))


def rubric_adherence_percentage(validity_rate: float) -> float:
    """Rubric adherence; currently the explanation validity rate."""
    return validity_rate


def early_vs_late_scores(
    records: Sequence[EvaluationRecord],
    boundary: int = CALIBRATION_REQUIRED
) -> EarlyVsLateScores:
    """Split scores per criterion: records before `boundary` are early."""
    early: Dict[str, List[int]] = defaultdict(list)
    late: Dict[str, List[int]] = defaultdict(list)
    for index, record in enumerate(records):
        target = early if index < boundary else late
        for evaluation in record.evaluations:
            if evaluation.score is not None:
                target[evaluation.criterion_id].append(evaluation.score)
    return EarlyVsLateScores(early=dict(early), late=dict(late))


def ai_assistance_summary(
    records: Sequence[EvaluationRecord],
    ai_enabled: bool,
    override_entries: int
) -> AIAssistanceSummary:
    """Count AI interventions, applied refinements and overrides."""
    if not ai_enabled:
        return AIAssistanceSummary()

    interventions = 0
    refinements = 0
    for record in records:
        for evaluation in record.evaluations:
            if evaluation.ai_status in (ValidationStatus.PARTIAL, ValidationStatus.NOT_SUPPORTED):
                interventions += 1
            if evaluation.refinement_applied:
                refinements += 1

    return AIAssistanceSummary(
        total_interventions=interventions,
        refinements_applied=refinements,
        overrides_after_intervention=override_entries
    )


# ==================== Engine ====================

class AnalyticsEngine:
    """
    Recomputes derived session metrics after each save.

    The engine is stateless: the only history it carries forward is the
    variance heatmap, read from the previous analytics and extended.
    """

    def __init__(self, calibration_boundary: int = CALIBRATION_REQUIRED):
        self.calibration_boundary = calibration_boundary

    def recompute(
        self,
        records: Sequence[EvaluationRecord],
        latest: Optional[EvaluationRecord],
        rubric: Sequence[RubricCriterion],
        baseline: Optional[CalibrationBaseline],
        previous: SessionAnalytics,
        ai_enabled: bool = True,
        override_entries: int = 0
    ) -> Dict[str, Any]:
        """
        Recompute analytics.

        Args:
            records: Graded records in first-graded order
            latest: Most recently saved record
            rubric: Session rubric
            baseline: Calibration baseline (drift metrics skipped when None)
            previous: Current analytics (heatmap history, drift fallback)
            ai_enabled: Whether AI assistance is on
            override_entries: Ledger length

        Returns:
            Partial analytics update (override_count is owned by the ledger
            and never part of it); empty when nothing is graded
        """
        if not records:
            return {}

        validity, analyzed = explanation_validity(records)

        drift = previous.score_drift_percentage
        if baseline is not None and latest is not None:
            drift = score_drift(latest, baseline)

        update = {
            'explanation_validity_rate': validity,
            'analyzed_count': analyzed,
            'score_drift_percentage': drift,
            'criterion_variance_heatmap': extend_variance_heatmap(
                previous.criterion_variance_heatmap, records, rubric
            ),
            'justification_strength_trend': justification_strength_trend(records),
            'score_drift_trend': score_drift_trend(records, baseline),
            'high_risk_flags': high_risk_flags(validity, analyzed, drift),
            'early_vs_late_scores': early_vs_late_scores(records, self.calibration_boundary),
            'rubric_adherence_percentage': rubric_adherence_percentage(validity),
            'ai_assistance_summary': ai_assistance_summary(records, ai_enabled, override_entries),
        }

        logger.debug(
            f"Analytics recomputed over {len(records)} records: "
            f"validity={validity:.1f}% drift={drift:.2f} flags={update['high_risk_flags']}"
        )
        return update
