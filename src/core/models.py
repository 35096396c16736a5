"""
Core data models for the grading consistency engine.

This module defines all Pydantic models used throughout the system.
They represent the foundation of all data structures.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator
from typing import List, Dict, Optional
from datetime import datetime
from enum import Enum
import uuid


class ValidationStatus(str, Enum):
    """Verdict returned by the justification validation gateway."""
    SUPPORTED = "Supported"
    PARTIAL = "Partial"
    NOT_SUPPORTED = "Not Supported"
    NOT_ANALYZED = "Not Analyzed"
    ERROR = "Error"


# Verdicts that count toward the validity rate denominator
ANALYZED_STATUSES = frozenset({
    ValidationStatus.SUPPORTED,
    ValidationStatus.PARTIAL,
    ValidationStatus.NOT_SUPPORTED,
})

# Verdicts that count as a valid explanation
VALID_STATUSES = frozenset({
    ValidationStatus.SUPPORTED,
    ValidationStatus.PARTIAL,
})

# Verdicts that suspend a save until the grader justifies an override
OVERRIDE_REQUIRED_STATUSES = frozenset({
    ValidationStatus.PARTIAL,
    ValidationStatus.NOT_SUPPORTED,
    ValidationStatus.ERROR,
})


def generate_id() -> str:
    """
    Generate a unique ID.

    Uses full UUID to avoid collision risks.
    """
    return str(uuid.uuid4())


class Course(BaseModel):
    """A course offering assignments."""
    id: str
    name: str


class Assignment(BaseModel):
    """An assignment belonging to a course."""
    id: str
    name: str
    course_id: str
    has_rubric: bool = True


class RubricCriterion(BaseModel):
    """One gradable dimension of an assignment."""
    id: str
    name: str
    description: str = ""
    max_score: int = Field(..., gt=0)


class Submission(BaseModel):
    """
    One student artifact.

    `graded` flips to True on the first successful save for this submission.
    """
    id: str = Field(default_factory=generate_id)
    student_name: str
    content: str = ""
    assignment_id: Optional[str] = None
    graded: bool = False


class AIAnalysis(BaseModel):
    """Verdict for one (submission, criterion) explanation."""
    status: ValidationStatus = ValidationStatus.NOT_ANALYZED
    referenced_excerpt: Optional[str] = None
    suggested_refinement: Optional[str] = None
    tone: Optional[str] = None
    error: Optional[str] = None


class ValidationRequest(BaseModel):
    """Everything the gateway needs to validate one explanation."""
    submission_text: str
    criterion: RubricCriterion
    score: int = 0
    explanation: str
    highlighted_text: Optional[str] = None


class CriterionEvaluation(BaseModel):
    """
    The grader's judgment for one (submission, criterion) pair.

    Score and explanation may be unset on a draft; the evaluation store
    rejects a record unless both are present for every criterion.
    """
    criterion_id: str
    score: Optional[int] = Field(None, ge=0)
    explanation: str = ""
    highlighted_text: Optional[str] = None
    ai_analysis: Optional[AIAnalysis] = None
    override_justification: Optional[str] = None
    refinement_applied: bool = False

    @property
    def is_complete(self) -> bool:
        """Both a score and a non-blank explanation are present."""
        return self.score is not None and bool(self.explanation.strip())

    @property
    def ai_status(self) -> ValidationStatus:
        """Verdict status, NOT_ANALYZED when no analysis exists."""
        if self.ai_analysis is None:
            return ValidationStatus.NOT_ANALYZED
        return self.ai_analysis.status


class EvaluationRecord(BaseModel):
    """The full evaluation for one submission (one entry per rubric criterion)."""
    submission_id: str
    evaluations: List[CriterionEvaluation] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)

    def score_for(self, criterion_id: str) -> Optional[int]:
        """Get the saved score for a criterion."""
        for evaluation in self.evaluations:
            if evaluation.criterion_id == criterion_id:
                return evaluation.score
        return None

    @property
    def mean_explanation_length(self) -> float:
        """Mean explanation length in characters across this record's criteria."""
        if not self.evaluations:
            return 0.0
        total = sum(len(e.explanation) for e in self.evaluations)
        return total / len(self.evaluations)


class OverrideLog(BaseModel):
    """A justified disagreement with an AI verdict. Never mutated once logged."""
    submission_id: str
    criterion_id: str
    original_ai_status: ValidationStatus
    professor_justification: str = Field(..., min_length=1)
    timestamp: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}

    @field_validator('professor_justification')
    @classmethod
    def reject_blank_justification(cls, v: str) -> str:
        """Reject whitespace-only justifications."""
        if not v.strip():
            raise ValueError("professor_justification cannot be blank")
        return v


class CalibrationBaseline(BaseModel):
    """
    Reference point for drift, computed once from the first graded records.
    """
    mean_scores: Dict[str, float] = Field(default_factory=dict)
    # {criterion_id: mean score}
    explanation_strength_mean: float = 0.0
    tone_mean: Dict[str, float] = Field(default_factory=dict)
    # {tone_category: frequency over graded records}
    record_count: int = 0
    created_at: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}


class EarlyVsLateScores(BaseModel):
    """Per-criterion scores split at the calibration boundary."""
    early: Dict[str, List[int]] = Field(default_factory=dict)
    late: Dict[str, List[int]] = Field(default_factory=dict)


class AIAssistanceSummary(BaseModel):
    """How often the AI intervened and what the grader did about it."""
    total_interventions: int = 0
    refinements_applied: int = 0
    overrides_after_intervention: int = 0


class SessionAnalytics(BaseModel):
    """
    Derived session metrics.

    Fully derived from the evaluation store, calibration baseline and
    override ledger; never hand-edited.
    """
    explanation_validity_rate: float = 0.0
    score_drift_percentage: float = 0.0
    criterion_variance_heatmap: Dict[str, List[float]] = Field(default_factory=dict)
    # {criterion_id: [variance after save 1, after save 2, ...]}
    justification_strength_trend: List[float] = Field(default_factory=list)
    score_drift_trend: List[float] = Field(default_factory=list)
    high_risk_flags: List[str] = Field(default_factory=list)
    override_count: int = 0
    early_vs_late_scores: EarlyVsLateScores = Field(default_factory=EarlyVsLateScores)
    rubric_adherence_percentage: float = 0.0
    session_confidence_score: float = 0.0
    ai_assistance_summary: AIAssistanceSummary = Field(default_factory=AIAssistanceSummary)
    analyzed_count: int = 0


class FlaggedDecision(BaseModel):
    """A row of the flagged-decisions table shown during reflection."""
    submission_name: str
    criterion_name: str
    original_status: str
    justification: str
    submission_index: int = -1
