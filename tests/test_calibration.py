"""
Tests for calibration baseline computation.
"""

import asyncio

import pytest

from calibration.baseline import CalibrationEngine, categorize_tone
from core.exceptions import PreconditionNotMetError
from core.models import CriterionEvaluation, EvaluationRecord

from conftest import BrokenGateway, FakeGateway, FailingGateway


def make_record(submission_id, thesis, evidence, explanation="Clear and specific."):
    return EvaluationRecord(
        submission_id=submission_id,
        evaluations=[
            CriterionEvaluation(criterion_id="thesis", score=thesis, explanation=explanation),
            CriterionEvaluation(criterion_id="evidence", score=evidence, explanation=explanation),
        ]
    )


@pytest.fixture
def calibration_records():
    return [
        make_record("s1", 3, 2, "abcd"),
        make_record("s2", 4, 4, "abcdef"),
        make_record("s3", 5, 3, "ab"),
    ]


def test_categorize_tone():
    """Test tone descriptions collapse to constructive/other."""
    assert categorize_tone("Very Constructive, specific") == "constructive"
    assert categorize_tone("Harsh and vague") == "other"


def test_is_due():
    """Test calibration is due at the threshold and only without a baseline."""
    engine = CalibrationEngine(required=3)

    assert not engine.is_due(2, None)
    assert engine.is_due(3, None)
    assert engine.is_due(4, None)


def test_compute_mean_scores(calibration_records):
    """Test baseline means per criterion and explanation strength."""
    engine = CalibrationEngine()
    baseline = asyncio.run(engine.compute(calibration_records, analyze_tone=False))

    assert baseline.mean_scores == {"thesis": 4.0, "evidence": 3.0}
    assert baseline.explanation_strength_mean == pytest.approx(4.0)
    assert baseline.record_count == 3
    assert baseline.tone_mean == {}


def test_compute_tone_mean_divides_by_record_count(calibration_records):
    """Test tone frequency is the tone count over graded records."""
    gateway = FakeGateway(tone="Constructive feedback")
    engine = CalibrationEngine(tone_gateway=gateway)

    baseline = asyncio.run(engine.compute(calibration_records))

    # Six explanations over three records
    assert baseline.tone_mean == {"constructive": 2.0}
    assert len(gateway.tone_calls) == 6


def test_compute_skips_failed_tone_calls(calibration_records):
    """Test gateway failures during tone analysis do not block calibration."""
    engine = CalibrationEngine(tone_gateway=FailingGateway())

    baseline = asyncio.run(engine.compute(calibration_records))

    assert baseline.mean_scores["thesis"] == 4.0
    assert baseline.tone_mean == {}


def test_compute_skips_unexpected_tone_errors(calibration_records):
    """Test any tone analysis exception is skipped, not only gateway errors."""
    engine = CalibrationEngine(tone_gateway=BrokenGateway())

    baseline = asyncio.run(engine.compute(calibration_records))

    assert baseline.mean_scores["thesis"] == 4.0
    assert baseline.tone_mean == {}


def test_compute_uses_all_records_beyond_threshold(calibration_records):
    """Test a late calibration averages every graded record."""
    records = calibration_records + [make_record("s4", 0, 3)]
    engine = CalibrationEngine()

    baseline = asyncio.run(engine.compute(records, analyze_tone=False))

    assert baseline.mean_scores["thesis"] == 3.0
    assert baseline.record_count == 4


def test_compute_without_records_fails():
    """Test calibration refuses an empty record set."""
    engine = CalibrationEngine()

    with pytest.raises(PreconditionNotMetError):
        asyncio.run(engine.compute([]))
