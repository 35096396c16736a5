"""
Grading workflow for a single submission at a time.

Holds the per-criterion drafts of the current submission, wires
explanation edits to debounced AI validation, and enforces the
override-before-save rule. Persisted state lives in GradingSession;
the drafts here are never read by analytics.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ai.base_provider import ValidationGateway
from ai.validation_scheduler import ValidationScheduler
from calibration.baseline import CalibrationEngine
from core.models import (
    AIAnalysis, CriterionEvaluation, EvaluationRecord, OverrideLog,
    ValidationRequest, ValidationStatus, OVERRIDE_REQUIRED_STATUSES
)
from core.exceptions import (
    IncompleteEvaluationError, InvalidScoreError,
    MissingOverrideJustificationError, SessionStateError
)
from core.session import GradingSession
from core.workflow_state import GradingScreen
from config.settings import get_settings
from config.logging_config import get_logger

logger = get_logger(__name__)


class SaveStatus(str, Enum):
    """Result of a save attempt."""
    SAVED = "saved"
    OVERRIDE_PENDING = "override_pending"


@dataclass
class SaveOutcome:
    """
    What happened when the grader pressed save.

    When status is OVERRIDE_PENDING nothing was persisted and
    `pending_criterion_id` names the criterion awaiting a justification.
    """
    status: SaveStatus
    record: Optional[EvaluationRecord] = None
    pending_criterion_id: Optional[str] = None
    pending_status: Optional[ValidationStatus] = None
    advanced: bool = False
    baseline_created: bool = False
    screen: Optional[GradingScreen] = None
    message: str = ""


@dataclass
class CriterionDraft:
    """Unsaved grading input for one criterion of the current submission."""
    criterion_id: str
    score: Optional[int] = None
    explanation: str = ""
    highlighted_text: str = ""
    ai_analysis: Optional[AIAnalysis] = None
    override_justification: Optional[str] = None
    refinement_applied: bool = False
    is_loading_ai: bool = False

    @classmethod
    def from_evaluation(cls, evaluation: CriterionEvaluation) -> "CriterionDraft":
        return cls(
            criterion_id=evaluation.criterion_id,
            score=evaluation.score,
            explanation=evaluation.explanation,
            highlighted_text=evaluation.highlighted_text or "",
            ai_analysis=evaluation.ai_analysis,
            override_justification=evaluation.override_justification,
            refinement_applied=evaluation.refinement_applied,
        )

    @property
    def ai_status(self) -> ValidationStatus:
        if self.ai_analysis is None:
            return ValidationStatus.NOT_ANALYZED
        return self.ai_analysis.status

    def to_evaluation(self) -> CriterionEvaluation:
        return CriterionEvaluation(
            criterion_id=self.criterion_id,
            score=self.score,
            explanation=self.explanation,
            highlighted_text=self.highlighted_text or None,
            ai_analysis=self.ai_analysis,
            override_justification=self.override_justification,
            refinement_applied=self.refinement_applied,
        )


class GradingWorkflow:
    """
    Drives grading of the current submission.

    Methods that trigger validation must run inside an event loop.

    Usage:
        workflow = GradingWorkflow(session, gateway)
        workflow.set_score("crit1", 4)
        workflow.edit_explanation("crit1", "Clear thesis in the first paragraph.")
        await workflow.wait_for_validations()
        outcome = await workflow.save()
        if outcome.status == SaveStatus.OVERRIDE_PENDING:
            outcome = await workflow.resolve_override("The excerpt supports it.")
    """

    def __init__(
        self,
        session: GradingSession,
        gateway: Optional[ValidationGateway] = None,
        calibration_engine: Optional[CalibrationEngine] = None,
        debounce: Optional[float] = None
    ):
        """
        Initialize workflow.

        Args:
            session: Session being graded
            gateway: Validation gateway (None disables AI checks)
            calibration_engine: Baseline calculator (default uses `gateway` for tone)
            debounce: Validation debounce in seconds (default: from settings)
        """
        if debounce is None:
            debounce = get_settings().validation_debounce_seconds

        self.session = session
        self.gateway = gateway
        self.calibration = calibration_engine or CalibrationEngine(
            tone_gateway=gateway,
            required=session.calibration_required
        )
        self.scheduler: Optional[ValidationScheduler] = None
        if gateway is not None:
            self.scheduler = ValidationScheduler(gateway, self._apply_verdict, debounce)

        self.drafts: Dict[str, CriterionDraft] = {}
        self.pending_override: Optional[str] = None
        self._draft_submission_id: Optional[str] = None

        session.add_reset_listener(self._on_session_reset)
        self.load_current_submission()

    @property
    def ai_active(self) -> bool:
        """AI validation runs only when enabled and a gateway exists."""
        return self.session.ai_enabled and self.scheduler is not None

    # ==================== DRAFTS ====================

    def load_current_submission(self) -> None:
        """Build drafts for the current submission, pre-filled from its saved record."""
        for criterion_id in self.drafts:
            if self.scheduler is not None:
                self.scheduler.invalidate(criterion_id)

        submission = self.session.current_submission
        self.drafts = {}
        self.pending_override = None
        self._draft_submission_id = submission.id if submission else None
        if submission is None:
            return

        record = self.session.record_for(submission.id)
        saved = {e.criterion_id: e for e in record.evaluations} if record else {}
        for criterion in self.session.rubric:
            if criterion.id in saved:
                self.drafts[criterion.id] = CriterionDraft.from_evaluation(saved[criterion.id])
            else:
                self.drafts[criterion.id] = CriterionDraft(criterion_id=criterion.id)

    def _sync(self) -> None:
        submission = self.session.current_submission
        current_id = submission.id if submission else None
        rubric_ids = [c.id for c in self.session.rubric]
        if current_id != self._draft_submission_id or list(self.drafts) != rubric_ids:
            self.load_current_submission()

    def draft(self, criterion_id: str) -> CriterionDraft:
        """Get the draft for a criterion of the current submission."""
        self._sync()
        if criterion_id not in self.drafts:
            raise InvalidScoreError(
                f"Unknown criterion '{criterion_id}'",
                {'criterion_id': criterion_id}
            )
        return self.drafts[criterion_id]

    def evaluations(self) -> List[CriterionEvaluation]:
        """Current drafts as evaluations, in rubric order."""
        self._sync()
        return [d.to_evaluation() for d in self.drafts.values()]

    # ==================== EDITING ====================

    def set_score(self, criterion_id: str, score: Optional[int]) -> None:
        """
        Set (or clear) the score of a criterion.

        A score change clears the criterion's verdict; it does not
        trigger a new validation by itself.
        """
        draft = self.draft(criterion_id)
        if score is not None:
            criterion = self.session.criterion(criterion_id)
            if not 0 <= score <= criterion.max_score:
                raise InvalidScoreError(
                    f"Score {score} for '{criterion.name}' must be between 0 and {criterion.max_score}",
                    {'criterion_id': criterion_id, 'score': score}
                )
        draft.score = score

        if self.ai_active:
            self._clear_verdict(draft)
            self.scheduler.invalidate(criterion_id)

    def edit_explanation(self, criterion_id: str, text: str) -> None:
        """
        Update an explanation and schedule its debounced validation.

        Clearing the explanation clears the verdict and schedules nothing.
        """
        draft = self.draft(criterion_id)
        draft.explanation = text

        if not self.ai_active:
            return

        self._clear_verdict(draft)
        if text.strip():
            draft.is_loading_ai = True
            self.scheduler.schedule(criterion_id, self._build_request(draft))
        else:
            self.scheduler.invalidate(criterion_id)

    def set_highlight(self, text: str) -> None:
        """
        Set the highlighted excerpt of the submission.

        The highlight applies to every criterion; explained criteria are
        re-validated immediately.
        """
        self._sync()
        for draft in self.drafts.values():
            draft.highlighted_text = text
            if self.ai_active and draft.explanation.strip():
                self._clear_verdict(draft)
                draft.is_loading_ai = True
                self.scheduler.request_now(draft.criterion_id, self._build_request(draft))

    def apply_refinement(self, criterion_id: str) -> str:
        """
        Replace the explanation with the suggested refinement.

        Returns:
            The new explanation

        Raises:
            SessionStateError: No refinement is available
        """
        draft = self.draft(criterion_id)
        refinement = draft.ai_analysis.suggested_refinement if draft.ai_analysis else None
        if not refinement:
            raise SessionStateError(
                "No suggested refinement to apply",
                {'criterion_id': criterion_id}
            )
        self.edit_explanation(criterion_id, refinement)
        draft.refinement_applied = True
        return refinement

    async def validate_all(self) -> None:
        """Validate every explained criterion now and wait for the verdicts."""
        if not self.ai_active:
            return
        self._sync()
        for draft in self.drafts.values():
            if draft.explanation.strip():
                self._clear_verdict(draft)
                draft.is_loading_ai = True
                self.scheduler.request_now(draft.criterion_id, self._build_request(draft))
        await self.wait_for_validations()

    async def wait_for_validations(self) -> None:
        """Wait until every scheduled validation has resolved."""
        if self.scheduler is not None:
            await self.scheduler.wait_idle()

    def _build_request(self, draft: CriterionDraft) -> ValidationRequest:
        return ValidationRequest(
            submission_text=self.session.current_submission.content,
            criterion=self.session.criterion(draft.criterion_id),
            score=draft.score if draft.score is not None else 0,
            explanation=draft.explanation,
            highlighted_text=draft.highlighted_text or None,
        )

    def _clear_verdict(self, draft: CriterionDraft) -> None:
        draft.ai_analysis = None
        draft.override_justification = None
        draft.is_loading_ai = False
        if self.pending_override == draft.criterion_id:
            self.pending_override = None

    def _apply_verdict(self, criterion_id: str, analysis: AIAnalysis) -> None:
        draft = self.drafts.get(criterion_id)
        if draft is None:
            return
        draft.ai_analysis = analysis
        draft.is_loading_ai = False
        logger.debug(f"Verdict for {criterion_id}: {analysis.status.value}")

    # ==================== SAVE & OVERRIDE ====================

    async def save(self) -> SaveOutcome:
        """
        Save the current submission.

        Returns OVERRIDE_PENDING (persisting nothing) when a verdict
        requires an unprovided justification. On success, calibration is
        triggered when due and the workflow advances to the next
        submission, or to Reflection after the last one.

        Raises:
            IncompleteEvaluationError: A criterion lacks a score or explanation
            SessionStateError: Not in a grading screen
        """
        self._sync()
        if self.session.screen not in (GradingScreen.CALIBRATION, GradingScreen.ACTIVE_GRADING):
            raise SessionStateError(f"Cannot save on the {self.session.screen.value} screen")

        missing = [d.criterion_id for d in self.drafts.values() if not d.to_evaluation().is_complete]
        if missing:
            raise IncompleteEvaluationError(
                "Please provide a score and an explanation for all rubric criteria.",
                missing_criteria=missing
            )

        if self.session.ai_enabled:
            for draft in self.drafts.values():
                if draft.ai_status in OVERRIDE_REQUIRED_STATUSES and not draft.override_justification:
                    self.pending_override = draft.criterion_id
                    logger.info(
                        f"Save suspended: criterion {draft.criterion_id} is "
                        f"{draft.ai_status.value} and needs an override justification"
                    )
                    return SaveOutcome(
                        status=SaveStatus.OVERRIDE_PENDING,
                        pending_criterion_id=draft.criterion_id,
                        pending_status=draft.ai_status,
                        screen=self.session.screen,
                        message="The AI flagged this explanation. Justify your decision to continue."
                    )

        index = self.session.current_index
        record = self.session.save_evaluation(index, self.evaluations())
        self.pending_override = None

        outcome = SaveOutcome(status=SaveStatus.SAVED, record=record)
        outcome.baseline_created = await self.ensure_calibration()

        if self.session.advance():
            self.load_current_submission()
            outcome.advanced = True
        elif self.session.screen == GradingScreen.ACTIVE_GRADING:
            self.session.set_screen(GradingScreen.REFLECTION)
            outcome.message = "All submissions graded. Moving to reflection."
        else:
            outcome.message = "All submissions graded!"

        outcome.screen = self.session.screen
        return outcome

    def submit_override(self, justification: str) -> OverrideLog:
        """
        Record the grader's justification for the pending criterion.

        Raises:
            SessionStateError: No override is pending
            MissingOverrideJustificationError: Blank justification
        """
        if self.pending_override is None:
            raise SessionStateError("No override is pending")

        justification = (justification or "").strip()
        if not justification:
            raise MissingOverrideJustificationError(
                "Please provide a justification for overriding the AI suggestion.",
                {'criterion_id': self.pending_override}
            )

        draft = self.drafts[self.pending_override]
        log = OverrideLog(
            submission_id=self._draft_submission_id,
            criterion_id=draft.criterion_id,
            original_ai_status=draft.ai_status,
            professor_justification=justification,
        )
        self.session.add_override_log(log)
        draft.override_justification = justification
        self.pending_override = None
        logger.info(f"Override recorded for criterion {draft.criterion_id} ({log.original_ai_status.value})")
        return log

    async def resolve_override(self, justification: str) -> SaveOutcome:
        """Submit the override justification and resume the save."""
        self.submit_override(justification)
        return await self.save()

    def cancel_override(self) -> None:
        """Abandon the pending override; nothing is logged or saved."""
        self.pending_override = None

    # ==================== CALIBRATION & NAVIGATION ====================

    async def ensure_calibration(self) -> bool:
        """
        Compute and store the baseline if calibration is due.

        Returns:
            True if a new baseline was stored
        """
        if not self.calibration.is_due(self.session.graded_count, self.session.baseline):
            return False
        baseline = await self.calibration.compute(
            self.session.records,
            analyze_tone=self.session.ai_enabled
        )
        return self.session.set_calibration_baseline(baseline)

    async def enter_active_grading(self) -> None:
        """
        Leave calibration, computing the baseline first if it is missing.

        Raises:
            PreconditionNotMetError: Not enough submissions graded
        """
        await self.ensure_calibration()
        self.session.set_screen(GradingScreen.ACTIVE_GRADING)
        self._sync()

    def go_to_submission(self, index: int) -> None:
        self.session.go_to_submission(index)
        self.load_current_submission()

    def revisit(self, index: int) -> None:
        """Re-open a graded submission from LiveAnalytics or Reflection."""
        self.session.revisit_submission(index)
        self.load_current_submission()

    def _on_session_reset(self) -> None:
        if self.scheduler is not None:
            self.scheduler.cancel_all()
        self.drafts = {}
        self.pending_override = None
        self._draft_submission_id = None
