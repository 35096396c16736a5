"""
Tests for the consistency report and the LMS submission mock.
"""

import asyncio
from datetime import datetime

import pytest

from core.exceptions import ExportGenerationError
from core.models import CalibrationBaseline, OverrideLog, ValidationStatus
from core.session import GradingSession
from core.workflow_state import GradingScreen
from export.lms import LMSSubmitter
from export.report import ConsistencyReport

from conftest import make_evaluations


@pytest.fixture
def finalized(session):
    """Session with every submission graded and one override, in Finalization."""
    for index in range(3):
        session.save_evaluation(index, make_evaluations(status=ValidationStatus.SUPPORTED))
    session.set_calibration_baseline(CalibrationBaseline(mean_scores={"thesis": 4.0, "evidence": 4.0}))
    session.set_screen(GradingScreen.ACTIVE_GRADING)
    session.add_override_log(OverrideLog(
        submission_id="s4",
        criterion_id="evidence",
        original_ai_status=ValidationStatus.NOT_SUPPORTED,
        professor_justification="Quote is in the footnote."
    ))
    session.save_evaluation(3, make_evaluations(status=ValidationStatus.NOT_SUPPORTED))
    session.save_evaluation(4, make_evaluations(status=ValidationStatus.SUPPORTED))
    session.set_screen(GradingScreen.REFLECTION)
    session.set_screen(GradingScreen.FINALIZATION)
    return session


def test_report_filename(finalized):
    """Test whitespace in the assignment name becomes underscores."""
    assert ConsistencyReport(finalized).filename == "Grading_Consistency_Report_Essay_1.txt"


def test_report_filename_without_assignment():
    """Test the fallback name."""
    assert ConsistencyReport(GradingSession()).filename == "Grading_Consistency_Report_Session.txt"


def test_report_body(finalized):
    """Test the report lists the metrics and the override log."""
    body = ConsistencyReport(finalized, grader_name="Dr. Rivera").render(datetime(2026, 5, 4))

    assert body.startswith("Grading Consistency Report - Essay 1")
    assert "Date: 2026-05-04" in body
    assert "Professor: Dr. Rivera" in body
    assert "- Explanation Validity Rate: 80.0%" in body
    assert "- Rubric Adherence: 80.0%" in body
    assert "- Total AI Interventions: 2" in body
    assert "- Overrides after AI Intervention: 1" in body
    assert "- High-Risk Flags: None" in body
    assert "Override Log (1 total):" in body
    assert (
        "- Submission: Student 4 | Criterion: Evidence | "
        "Original AI Status: Not Supported | Justification: Quote is in the footnote."
    ) in body
    assert body.rstrip().endswith("--- End of Report ---")


def test_report_write(finalized, tmp_path):
    """Test the report is written to the output directory."""
    path = ConsistencyReport(finalized).write(str(tmp_path / "reports"))

    assert path.name == "Grading_Consistency_Report_Essay_1.txt"
    assert "Override Log (1 total):" in path.read_text(encoding="utf-8")


def test_report_write_failure(finalized, tmp_path):
    """Test write errors surface as ExportGenerationError."""
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")

    with pytest.raises(ExportGenerationError):
        ConsistencyReport(finalized).write(str(blocker))


def test_lms_submit_success(finalized):
    """Test a fully graded session is submitted."""
    result = asyncio.run(LMSSubmitter(delay=0).submit(finalized))

    assert result.success is True
    assert result.submitted_count == 5
    assert "Essay 1" in result.message


def test_lms_submit_refuses_partial_session(session):
    """Test an incompletely graded session is not submitted."""
    session.save_evaluation(0, make_evaluations())

    result = asyncio.run(LMSSubmitter(delay=0).submit(session))

    assert result.success is False
    assert result.submitted_count == 0
