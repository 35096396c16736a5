"""
Grading session state.

Defines the screens of the grading workflow, the transitions allowed
between them, and the explicit session context object that owns every
session entity. A reset replaces the context wholesale.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, FrozenSet
from enum import Enum

from core.models import (
    Course, Assignment, RubricCriterion, Submission,
    CalibrationBaseline, SessionAnalytics
)
from storage.evaluation_store import EvaluationStore
from storage.override_ledger import OverrideLedger


class GradingScreen(str, Enum):
    """Phases of the grading workflow."""
    SETUP = "Setup"                     # Course, assignment, rubric and submissions
    CALIBRATION = "Calibration"         # First graded submissions establish the baseline
    ACTIVE_GRADING = "ActiveGrading"    # Grading with drift tracking
    LIVE_ANALYTICS = "LiveAnalytics"    # Non-committing excursion from ActiveGrading
    REFLECTION = "Reflection"           # Review flagged decisions
    FINALIZATION = "Finalization"       # Confidence score, report, LMS submission


# Forward transitions reachable through set_screen().
# Returning to Setup is only possible through reset().
ALLOWED_TRANSITIONS: Dict[GradingScreen, FrozenSet[GradingScreen]] = {
    GradingScreen.SETUP: frozenset({GradingScreen.CALIBRATION}),
    GradingScreen.CALIBRATION: frozenset({GradingScreen.ACTIVE_GRADING}),
    GradingScreen.ACTIVE_GRADING: frozenset({
        GradingScreen.LIVE_ANALYTICS,
        GradingScreen.REFLECTION,
    }),
    GradingScreen.LIVE_ANALYTICS: frozenset({GradingScreen.ACTIVE_GRADING}),
    GradingScreen.REFLECTION: frozenset({GradingScreen.FINALIZATION}),
    GradingScreen.FINALIZATION: frozenset(),
}

# Screens from which revisit_submission() may re-enter ActiveGrading
REVISIT_SCREENS: FrozenSet[GradingScreen] = frozenset({
    GradingScreen.LIVE_ANALYTICS,
    GradingScreen.REFLECTION,
})


@dataclass
class SessionContext:
    """
    Every entity owned by one grading session.

    Only GradingSession mutates a context, always under its lock.

    Usage:
        context = SessionContext(ai_enabled=True)
        context.store.upsert(...)
    """
    screen: GradingScreen = GradingScreen.SETUP
    course: Optional[Course] = None
    assignment: Optional[Assignment] = None
    rubric: List[RubricCriterion] = field(default_factory=list)
    submissions: List[Submission] = field(default_factory=list)
    current_index: int = 0
    ai_enabled: bool = True

    store: EvaluationStore = field(default_factory=EvaluationStore)
    ledger: OverrideLedger = field(default_factory=OverrideLedger)
    baseline: Optional[CalibrationBaseline] = None
    analytics: SessionAnalytics = field(default_factory=SessionAnalytics)

    @property
    def graded_count(self) -> int:
        """Number of evaluation records in the store."""
        return len(self.store)

    def criterion(self, criterion_id: str) -> Optional[RubricCriterion]:
        """Find a rubric criterion by id."""
        return next((c for c in self.rubric if c.id == criterion_id), None)

    def submission_index(self, submission_id: str) -> int:
        """Position of a submission, -1 if unknown."""
        for index, submission in enumerate(self.submissions):
            if submission.id == submission_id:
                return index
        return -1

    def to_dict(self) -> Dict[str, Any]:
        """Convert the context to a dictionary for display or debugging."""
        return {
            'screen': self.screen.value,
            'course': self.course.model_dump() if self.course else None,
            'assignment': self.assignment.model_dump() if self.assignment else None,
            'rubric': [c.model_dump() for c in self.rubric],
            'submissions': [s.model_dump() for s in self.submissions],
            'current_index': self.current_index,
            'ai_enabled': self.ai_enabled,
            'graded_submissions': [r.model_dump(mode='json') for r in self.store.records],
            'calibration_baseline': self.baseline.model_dump(mode='json') if self.baseline else None,
            'session_analytics': self.analytics.model_dump(mode='json'),
            'override_logs': [log.model_dump(mode='json') for log in self.ledger.entries],
        }
