"""
Grading session state machine.

Sequences the grading workflow through its screens, gates transitions on
calibration completeness, and owns the evaluation store, override
ledger, calibration baseline and analytics as one consistent session.
All mutations are applied serially under a single lock.
"""

from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.models import (
    Course, Assignment, RubricCriterion, Submission, CriterionEvaluation,
    EvaluationRecord, OverrideLog, CalibrationBaseline, SessionAnalytics,
    FlaggedDecision, generate_id
)
from core.workflow_state import (
    GradingScreen, SessionContext, ALLOWED_TRANSITIONS, REVISIT_SCREENS
)
from core.exceptions import PreconditionNotMetError, SessionStateError
from storage.evaluation_store import EvaluationStore
from storage.override_ledger import OverrideLedger
from analysis.analytics_engine import AnalyticsEngine, session_confidence_score
from config.constants import CALIBRATION_REQUIRED
from config.settings import get_settings
from config.logging_config import get_logger

logger = get_logger(__name__)

# Screens in which evaluations may be saved
_GRADING_SCREENS = frozenset({GradingScreen.CALIBRATION, GradingScreen.ACTIVE_GRADING})

# Screens in which the submission batch may be (re)loaded
_LOADING_SCREENS = frozenset({GradingScreen.SETUP, GradingScreen.CALIBRATION})


class GradingSession:
    """
    Top-level controller for one grader's session.

    Usage:
        session = GradingSession()
        session.select_course_assignment_rubric(course, assignment, rubric)
        session.load_submissions(submissions)
        session.set_screen(GradingScreen.CALIBRATION)
        session.save_evaluation(0, evaluations)
    """

    def __init__(
        self,
        ai_enabled: Optional[bool] = None,
        analytics_engine: Optional[AnalyticsEngine] = None,
        calibration_required: int = CALIBRATION_REQUIRED
    ):
        """
        Initialize an empty session.

        Args:
            ai_enabled: Initial AI flag (default: from settings)
            analytics_engine: Engine used for recomputation
            calibration_required: Graded submissions needed for calibration
        """
        if ai_enabled is None:
            ai_enabled = get_settings().ai_enabled

        self.session_id = generate_id()
        self.calibration_required = calibration_required
        self._initial_ai_enabled = ai_enabled
        self._engine = analytics_engine or AnalyticsEngine(calibration_required)
        self._lock = RLock()
        self._reset_listeners: List[Callable[[], None]] = []
        self._context = SessionContext(ai_enabled=ai_enabled)

    # ==================== READ ACCESS ====================

    @property
    def screen(self) -> GradingScreen:
        return self._context.screen

    @property
    def course(self) -> Optional[Course]:
        return self._context.course

    @property
    def assignment(self) -> Optional[Assignment]:
        return self._context.assignment

    @property
    def rubric(self) -> List[RubricCriterion]:
        return list(self._context.rubric)

    @property
    def submissions(self) -> List[Submission]:
        return list(self._context.submissions)

    @property
    def current_index(self) -> int:
        return self._context.current_index

    @property
    def current_submission(self) -> Optional[Submission]:
        submissions = self._context.submissions
        if 0 <= self._context.current_index < len(submissions):
            return submissions[self._context.current_index]
        return None

    @property
    def ai_enabled(self) -> bool:
        return self._context.ai_enabled

    @property
    def records(self) -> List[EvaluationRecord]:
        """Graded records in first-graded order."""
        return self._context.store.records

    @property
    def graded_count(self) -> int:
        return self._context.graded_count

    @property
    def baseline(self) -> Optional[CalibrationBaseline]:
        return self._context.baseline

    @property
    def analytics(self) -> SessionAnalytics:
        return self._context.analytics

    @property
    def override_logs(self) -> List[OverrideLog]:
        return self._context.ledger.entries

    @property
    def is_calibration_complete(self) -> bool:
        return self.graded_count >= self.calibration_required

    @property
    def is_all_graded(self) -> bool:
        total = len(self._context.submissions)
        return total > 0 and self.graded_count == total

    def calibration_progress(self) -> Tuple[int, int]:
        """(graded submissions, submissions required for calibration)."""
        return self.graded_count, self.calibration_required

    def record_for(self, submission_id: str) -> Optional[EvaluationRecord]:
        """Saved record for a submission, if any."""
        return self._context.store.get(submission_id)

    def criterion(self, criterion_id: str) -> Optional[RubricCriterion]:
        return self._context.criterion(criterion_id)

    def add_reset_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked after every reset (e.g. to cancel pending AI calls)."""
        self._reset_listeners.append(callback)

    # ==================== SETUP ====================

    def select_course_assignment_rubric(
        self,
        course: Course,
        assignment: Assignment,
        rubric: List[RubricCriterion]
    ) -> None:
        """
        Choose the course, assignment and rubric for the session.

        Raises:
            SessionStateError: Not in Setup, assignment has no rubric,
                               empty rubric or duplicate criterion ids
        """
        with self._lock:
            self._require_screen({GradingScreen.SETUP}, "select a rubric")

            if not assignment.has_rubric:
                raise SessionStateError(
                    f"Assignment '{assignment.name}' has no rubric",
                    {'assignment_id': assignment.id}
                )
            if not rubric:
                raise SessionStateError("Rubric must contain at least one criterion")

            ids = [c.id for c in rubric]
            if len(set(ids)) != len(ids):
                raise SessionStateError("Rubric criterion ids must be unique", {'criteria': ids})

            self._context.course = course
            self._context.assignment = assignment
            self._context.rubric = [c.model_copy() for c in rubric]
            logger.info(f"Selected {course.name} / {assignment.name} with {len(rubric)} criteria")

    def load_submissions(self, submissions: List[Submission]) -> None:
        """
        Load the submission batch.

        Resets grading progress, calibration baseline, analytics and the
        override ledger.

        Raises:
            SessionStateError: Grading already past calibration, or
                               duplicate submission ids
        """
        with self._lock:
            self._require_screen(_LOADING_SCREENS, "load submissions")

            ids = [s.id for s in submissions]
            if len(set(ids)) != len(ids):
                raise SessionStateError("Submission ids must be unique", {'submissions': ids})

            context = self._context
            context.submissions = [s.model_copy(update={'graded': False}) for s in submissions]
            context.current_index = 0
            context.store = EvaluationStore()
            context.ledger = OverrideLedger()
            context.baseline = None
            context.analytics = SessionAnalytics()
            logger.info(f"Loaded {len(submissions)} submissions; grading progress reset")

    def set_ai_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._context.ai_enabled = enabled
            logger.info(f"AI assistance {'enabled' if enabled else 'disabled'}")

    # ==================== GRADING ====================

    def save_evaluation(self, index: int, evaluations: List[CriterionEvaluation]) -> EvaluationRecord:
        """
        Save (upsert) the evaluation of the submission at `index`.

        Marks the submission graded and recomputes analytics. Nothing is
        mutated when the evaluation is rejected.

        Raises:
            IncompleteEvaluationError: A criterion lacks a score or explanation
            InvalidScoreError: Score out of range or unknown criterion
            SessionStateError: Not in a grading screen or bad index
        """
        with self._lock:
            self._require_screen(_GRADING_SCREENS, "save an evaluation")
            submission = self._submission_at(index)
            context = self._context

            record = context.store.upsert(submission.id, evaluations, context.rubric)

            if not submission.graded:
                context.submissions[index] = submission.model_copy(update={'graded': True})

            if context.graded_count > 0:
                self._recompute_analytics()

            logger.info(
                f"Saved evaluation for {submission.student_name} "
                f"({context.graded_count}/{len(context.submissions)} graded)"
            )
            return record

    def advance(self) -> bool:
        """
        Move to the next submission.

        Returns:
            False (and does nothing) when already at the last submission
        """
        with self._lock:
            if self._context.current_index >= len(self._context.submissions) - 1:
                return False
            self._context.current_index += 1
            return True

    def go_to_submission(self, index: int) -> None:
        """Set the current submission index."""
        with self._lock:
            self._submission_at(index)
            self._context.current_index = index

    def revisit_submission(self, index: int) -> None:
        """
        Re-open a submission for grading from LiveAnalytics or Reflection.

        Raises:
            SessionStateError: Called from another screen or bad index
            PreconditionNotMetError: Calibration guard fails
        """
        with self._lock:
            if self._context.screen not in REVISIT_SCREENS:
                raise SessionStateError(
                    f"Cannot revisit a submission from {self._context.screen.value}"
                )
            self._submission_at(index)
            self._check_guard(GradingScreen.ACTIVE_GRADING)
            self._context.current_index = index
            self._enter(GradingScreen.ACTIVE_GRADING)

    # ==================== CALIBRATION & ANALYTICS ====================

    def set_calibration_baseline(self, baseline: CalibrationBaseline) -> bool:
        """
        Store the calibration baseline.

        Returns:
            False (and keeps the existing baseline) if one is already set
        """
        with self._lock:
            if self._context.baseline is not None:
                logger.debug("Calibration baseline already set; ignoring new baseline")
                return False
            self._context.baseline = baseline
            logger.info(f"Calibration baseline established from {baseline.record_count} submissions")
            return True

    def update_analytics(self, partial: Dict[str, Any]) -> SessionAnalytics:
        """Merge a partial update into the session analytics."""
        with self._lock:
            unknown = set(partial) - set(SessionAnalytics.model_fields)
            if unknown:
                raise SessionStateError(f"Unknown analytics fields: {sorted(unknown)}")
            self._context.analytics = self._context.analytics.model_copy(update=partial)
            return self._context.analytics

    def recompute_analytics(self) -> SessionAnalytics:
        """
        Recompute analytics now (no-op when nothing is graded).

        The variance heatmap only grows on saves, so it is left unchanged here.
        """
        with self._lock:
            if self._context.graded_count > 0:
                self._recompute_analytics(extend_heatmap=False)
            return self._context.analytics

    def _recompute_analytics(self, extend_heatmap: bool = True) -> None:
        context = self._context
        update = self._engine.recompute(
            records=context.store.records,
            latest=context.store.latest(),
            rubric=context.rubric,
            baseline=context.baseline,
            previous=context.analytics,
            ai_enabled=context.ai_enabled,
            override_entries=len(context.ledger)
        )
        if not extend_heatmap:
            update.pop("criterion_variance_heatmap", None)
        self.update_analytics(update)

    def add_override_log(self, log: OverrideLog) -> None:
        """Append an override and increment the override count by one."""
        with self._lock:
            self._context.ledger.append(log)
            analytics = self._context.analytics
            self._context.analytics = analytics.model_copy(
                update={'override_count': analytics.override_count + 1}
            )

    # ==================== SCREEN TRANSITIONS ====================

    def set_screen(self, target: GradingScreen) -> None:
        """
        Transition to another screen.

        Raises:
            SessionStateError: Transition not allowed from the current screen
            PreconditionNotMetError: Transition guard fails
        """
        with self._lock:
            current = self._context.screen
            if target == current:
                return
            if target not in ALLOWED_TRANSITIONS[current]:
                logger.warning(f"Refused transition {current.value} -> {target.value}")
                raise SessionStateError(
                    f"Cannot move from {current.value} to {target.value}",
                    {'from': current.value, 'to': target.value}
                )
            self._check_guard(target)

            if target == GradingScreen.FINALIZATION:
                self._finalize_analytics()

            self._enter(target)

    def _enter(self, target: GradingScreen) -> None:
        logger.info(f"Screen {self._context.screen.value} -> {target.value}")
        self._context.screen = target

    def _check_guard(self, target: GradingScreen) -> None:
        context = self._context

        if target == GradingScreen.CALIBRATION:
            if not context.rubric or not context.submissions:
                self._refuse(target, "Select a rubric and load submissions before calibrating.")

        elif target == GradingScreen.ACTIVE_GRADING:
            if context.graded_count < self.calibration_required:
                self._refuse(
                    target,
                    f"Please grade at least {self.calibration_required} submissions to complete calibration."
                )
            if context.baseline is None:
                self._refuse(target, "Calibration baseline not established. Please try again.")

        elif target == GradingScreen.REFLECTION:
            if context.graded_count == 0:
                self._refuse(target, "Grade at least one submission before reflecting.")

        elif target == GradingScreen.FINALIZATION:
            if not self.is_all_graded:
                self._refuse(
                    target,
                    f"Only {context.graded_count} of {len(context.submissions)} submissions are graded."
                )

    def _refuse(self, target: GradingScreen, message: str) -> None:
        logger.warning(f"Transition to {target.value} refused: {message}")
        raise PreconditionNotMetError(
            message,
            {'target': target.value, 'graded': self._context.graded_count,
             'baseline': self._context.baseline is not None}
        )

    def _finalize_analytics(self) -> None:
        analytics = self._context.analytics
        self.update_analytics({
            'session_confidence_score': session_confidence_score(
                analytics.explanation_validity_rate,
                analytics.score_drift_percentage,
                analytics.override_count
            ),
            'rubric_adherence_percentage': analytics.explanation_validity_rate,
        })

    # ==================== RESET ====================

    def reset(self) -> None:
        """Discard every session entity and return to Setup."""
        with self._lock:
            self._context = SessionContext(ai_enabled=self._initial_ai_enabled)
            self.session_id = generate_id()
            logger.info("Session reset")

        for callback in list(self._reset_listeners):
            callback()

    # ==================== REFLECTION ====================

    def flagged_decisions(self) -> List[FlaggedDecision]:
        """Override entries followed by session-level risk flags."""
        with self._lock:
            context = self._context
            decisions = []
            for log in context.ledger:
                index = context.submission_index(log.submission_id)
                criterion = context.criterion(log.criterion_id)
                decisions.append(FlaggedDecision(
                    submission_name=context.submissions[index].student_name if index >= 0 else "N/A",
                    criterion_name=criterion.name if criterion else "N/A",
                    original_status=log.original_ai_status.value,
                    justification=log.professor_justification,
                    submission_index=index
                ))

            for flag in context.analytics.high_risk_flags:
                decisions.append(FlaggedDecision(
                    submission_name="General Session Flag",
                    criterion_name="N/A",
                    original_status="N/A",
                    justification=flag,
                    submission_index=-1
                ))
            return decisions

    def snapshot(self) -> Dict[str, Any]:
        """Serializable view of the whole session."""
        with self._lock:
            data = self._context.to_dict()
            data['session_id'] = self.session_id
            return data

    # ==================== HELPERS ====================

    def _require_screen(self, screens, action: str) -> None:
        if self._context.screen not in screens:
            raise SessionStateError(
                f"Cannot {action} on the {self._context.screen.value} screen",
                {'screen': self._context.screen.value}
            )

    def _submission_at(self, index: int) -> Submission:
        submissions = self._context.submissions
        if not 0 <= index < len(submissions):
            raise SessionStateError(
                f"Submission index {index} out of range",
                {'index': index, 'total': len(submissions)}
            )
        return submissions[index]
