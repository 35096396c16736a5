"""
Tests for the grading session state machine.
"""

import pytest

from core.exceptions import (
    IncompleteEvaluationError, PreconditionNotMetError, SessionStateError
)
from core.models import (
    Assignment, CalibrationBaseline, OverrideLog, ValidationStatus
)
from core.session import GradingSession
from core.workflow_state import GradingScreen

from conftest import make_evaluations


def grade(session, count, **kwargs):
    for index in range(count):
        session.save_evaluation(index, make_evaluations(**kwargs))


def calibrate(session):
    grade(session, 3)
    session.set_calibration_baseline(CalibrationBaseline(mean_scores={"thesis": 4.0, "evidence": 4.0}, record_count=3))


def override(criterion_id="thesis", submission_id="s1"):
    return OverrideLog(
        submission_id=submission_id,
        criterion_id=criterion_id,
        original_ai_status=ValidationStatus.NOT_SUPPORTED,
        professor_justification="Evidence is in the conclusion."
    )


# ==================== Setup ====================

def test_new_session_starts_in_setup():
    """Test initial state."""
    session = GradingSession(ai_enabled=False)

    assert session.screen == GradingScreen.SETUP
    assert session.graded_count == 0
    assert session.baseline is None
    assert session.ai_enabled is False


def test_setup_to_calibration_requires_rubric_and_submissions(course, assignment, rubric):
    """Test the Calibration guard."""
    session = GradingSession()

    with pytest.raises(PreconditionNotMetError):
        session.set_screen(GradingScreen.CALIBRATION)

    session.select_course_assignment_rubric(course, assignment, rubric)
    with pytest.raises(PreconditionNotMetError):
        session.set_screen(GradingScreen.CALIBRATION)


def test_assignment_without_rubric_is_rejected(course, rubric):
    """Test assignments flagged without a rubric cannot be selected."""
    session = GradingSession()
    bare = Assignment(id="a2", name="Quiz", course_id="c1", has_rubric=False)

    with pytest.raises(SessionStateError):
        session.select_course_assignment_rubric(course, bare, rubric)


def test_rubric_is_fixed_after_setup(session, course, assignment, rubric):
    """Test the rubric cannot change once grading has started."""
    with pytest.raises(SessionStateError):
        session.select_course_assignment_rubric(course, assignment, rubric[:1])


def test_load_submissions_resets_progress(session, submissions):
    """Test reloading submissions clears records, baseline, analytics and ledger."""
    calibrate(session)
    session.add_override_log(override())

    session.load_submissions(submissions)

    assert session.graded_count == 0
    assert session.baseline is None
    assert session.override_logs == []
    assert session.analytics.override_count == 0
    assert all(not s.graded for s in session.submissions)


# ==================== Saving ====================

def test_save_marks_submission_graded(session):
    """Test a save stores a record and flips graded."""
    session.save_evaluation(0, make_evaluations())

    assert session.graded_count == 1
    assert session.submissions[0].graded is True
    assert session.record_for("s1") is not None


def test_save_is_idempotent(session):
    """Test saving the same submission twice keeps one record."""
    first = session.save_evaluation(0, make_evaluations())
    second = session.save_evaluation(0, make_evaluations())

    assert session.graded_count == 1
    assert session.record_for("s1").timestamp == second.timestamp
    assert second.timestamp >= first.timestamp


def test_incomplete_save_mutates_nothing(session):
    """Test a rejected save leaves the session untouched."""
    with pytest.raises(IncompleteEvaluationError):
        session.save_evaluation(0, make_evaluations(explanation=""))

    assert session.graded_count == 0
    assert session.submissions[0].graded is False
    assert session.analytics.criterion_variance_heatmap == {}


def test_save_out_of_range_index(session):
    """Test saving an unknown submission index."""
    with pytest.raises(SessionStateError):
        session.save_evaluation(10, make_evaluations())


def test_save_not_allowed_in_setup(course, assignment, rubric, submissions):
    """Test evaluations cannot be saved before calibration starts."""
    session = GradingSession()
    session.select_course_assignment_rubric(course, assignment, rubric)
    session.load_submissions(submissions)

    with pytest.raises(SessionStateError):
        session.save_evaluation(0, make_evaluations())


def test_save_recomputes_analytics(session):
    """Test analytics follow each save."""
    session.save_evaluation(0, make_evaluations(status=ValidationStatus.SUPPORTED))
    session.save_evaluation(1, make_evaluations(status=ValidationStatus.NOT_SUPPORTED))

    analytics = session.analytics
    assert analytics.explanation_validity_rate == 50.0
    assert analytics.criterion_variance_heatmap["thesis"] == [0.0, 0.0]
    assert len(analytics.justification_strength_trend) == 2


def test_explicit_recompute_keeps_heatmap(session):
    """Test recomputing without a new save does not extend the heatmap."""
    session.save_evaluation(0, make_evaluations())

    session.recompute_analytics()
    analytics = session.recompute_analytics()

    assert analytics.criterion_variance_heatmap == {"thesis": [0.0], "evidence": [0.0]}
    assert len(analytics.justification_strength_trend) == 1


def test_advance_stops_at_last_submission(session):
    """Test advancing past the end is a no-op."""
    for _ in range(4):
        assert session.advance() is True
    assert session.current_index == 4
    assert session.advance() is False
    assert session.current_index == 4


# ==================== Calibration ====================

def test_active_grading_requires_three_graded(session):
    """Test the calibration guard on graded count."""
    grade(session, 2)

    with pytest.raises(PreconditionNotMetError):
        session.set_screen(GradingScreen.ACTIVE_GRADING)
    assert session.screen == GradingScreen.CALIBRATION


def test_active_grading_requires_baseline(session):
    """Test the calibration guard on the baseline."""
    grade(session, 3)

    with pytest.raises(PreconditionNotMetError):
        session.set_screen(GradingScreen.ACTIVE_GRADING)

    session.set_calibration_baseline(CalibrationBaseline(mean_scores={"thesis": 4.0}))
    session.set_screen(GradingScreen.ACTIVE_GRADING)
    assert session.screen == GradingScreen.ACTIVE_GRADING


def test_baseline_is_set_once(session):
    """Test later baselines never replace the first."""
    first = CalibrationBaseline(mean_scores={"thesis": 4.0})
    second = CalibrationBaseline(mean_scores={"thesis": 1.0})

    assert session.set_calibration_baseline(first) is True
    assert session.set_calibration_baseline(second) is False
    assert session.baseline.mean_scores == {"thesis": 4.0}


def test_drift_uses_latest_save(session):
    """Test drift after calibration compares the latest record to the baseline."""
    calibrate(session)
    session.set_screen(GradingScreen.ACTIVE_GRADING)

    session.save_evaluation(3, make_evaluations(thesis=0, evidence=0))

    assert session.analytics.score_drift_percentage == pytest.approx(4.0)
    assert session.baseline.mean_scores["thesis"] == 4.0


# ==================== Transitions ====================

def test_skipping_screens_is_refused(session):
    """Test transitions outside the allowed table."""
    with pytest.raises(SessionStateError):
        session.set_screen(GradingScreen.FINALIZATION)
    with pytest.raises(SessionStateError):
        session.set_screen(GradingScreen.SETUP)


def test_same_screen_is_a_no_op(session):
    """Test re-entering the current screen."""
    session.set_screen(GradingScreen.CALIBRATION)
    assert session.screen == GradingScreen.CALIBRATION


def test_live_analytics_round_trip(session):
    """Test ActiveGrading -> LiveAnalytics -> ActiveGrading."""
    calibrate(session)
    session.set_screen(GradingScreen.ACTIVE_GRADING)

    session.set_screen(GradingScreen.LIVE_ANALYTICS)
    session.set_screen(GradingScreen.ACTIVE_GRADING)

    assert session.screen == GradingScreen.ACTIVE_GRADING


def test_finalization_requires_all_graded(session):
    """Test Finalization is refused while submissions remain."""
    calibrate(session)
    session.set_screen(GradingScreen.ACTIVE_GRADING)
    session.set_screen(GradingScreen.REFLECTION)

    with pytest.raises(PreconditionNotMetError):
        session.set_screen(GradingScreen.FINALIZATION)


def test_finalization_computes_confidence(session):
    """Test entering Finalization fills confidence and adherence."""
    calibrate(session)
    session.set_screen(GradingScreen.ACTIVE_GRADING)
    session.save_evaluation(3, make_evaluations())
    session.save_evaluation(4, make_evaluations())
    session.set_screen(GradingScreen.REFLECTION)

    session.set_screen(GradingScreen.FINALIZATION)

    analytics = session.analytics
    assert session.is_all_graded
    assert 0.0 <= analytics.session_confidence_score <= 100.0
    assert analytics.rubric_adherence_percentage == analytics.explanation_validity_rate
    with pytest.raises(SessionStateError):
        session.set_screen(GradingScreen.REFLECTION)


def test_revisit_from_reflection(session):
    """Test revisiting a submission re-enters ActiveGrading at that index."""
    calibrate(session)
    session.set_screen(GradingScreen.ACTIVE_GRADING)
    session.set_screen(GradingScreen.REFLECTION)

    session.revisit_submission(1)

    assert session.screen == GradingScreen.ACTIVE_GRADING
    assert session.current_index == 1


def test_revisit_not_allowed_from_calibration(session):
    """Test revisit is limited to LiveAnalytics and Reflection."""
    with pytest.raises(SessionStateError):
        session.revisit_submission(0)


# ==================== Overrides & reset ====================

def test_override_count_matches_appends(session):
    """Test k overrides of the same pair give a count of k."""
    for _ in range(3):
        session.add_override_log(override())

    assert session.analytics.override_count == 3
    assert len(session.override_logs) == 3


def test_override_count_survives_recompute(session):
    """Test saves never overwrite the override count."""
    session.add_override_log(override())
    session.save_evaluation(0, make_evaluations())

    assert session.analytics.override_count == 1
    assert session.analytics.ai_assistance_summary.overrides_after_intervention == 1


def test_update_analytics_rejects_unknown_fields(session):
    """Test partial updates are limited to analytics fields."""
    with pytest.raises(SessionStateError):
        session.update_analytics({"not_a_metric": 1})


def test_flagged_decisions(session):
    """Test overrides come first, then general flags."""
    session.add_override_log(override())
    session.update_analytics({"high_risk_flags": ["Low explanation validity rate"]})

    decisions = session.flagged_decisions()

    assert decisions[0].submission_name == "Student 1"
    assert decisions[0].criterion_name == "Thesis"
    assert decisions[0].original_status == "Not Supported"
    assert decisions[0].submission_index == 0
    assert decisions[1].submission_name == "General Session Flag"
    assert decisions[1].justification == "Low explanation validity rate"


def test_reset_clears_everything(session):
    """Test reset discards every entity and returns to Setup."""
    calibrate(session)
    session.add_override_log(override())
    notified = []
    session.add_reset_listener(lambda: notified.append(True))

    session.reset()

    assert session.screen == GradingScreen.SETUP
    assert session.graded_count == 0
    assert session.baseline is None
    assert session.override_logs == []
    assert session.rubric == []
    assert session.submissions == []
    assert session.analytics.override_count == 0
    assert notified == [True]


def test_snapshot(session):
    """Test the serializable view."""
    session.save_evaluation(0, make_evaluations())

    data = session.snapshot()

    assert data['screen'] == "Calibration"
    assert len(data['graded_submissions']) == 1
    assert data['calibration_baseline'] is None
