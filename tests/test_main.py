"""
Tests for the replay CLI.
"""

import json

import pytest

from main import main
from config.settings import reload_settings


def write_script(tmp_path, submissions=4):
    script = {
        "course": {"id": "c1", "name": "Intro to Writing"},
        "assignment": {"id": "a1", "name": "Essay 1", "course_id": "c1"},
        "rubric": [
            {"id": "thesis", "name": "Thesis", "max_score": 5},
            {"id": "evidence", "name": "Evidence", "max_score": 5},
        ],
        "submissions": [
            {
                "id": f"s{i}",
                "student_name": f"Student {i}",
                "content": f"Essay {i}",
                "evaluations": {
                    "thesis": {"score": 3 + i % 2, "explanation": "Thesis stated in the introduction."},
                    "evidence": {"score": 4, "explanation": "Two relevant quotations."},
                },
            }
            for i in range(1, submissions + 1)
        ],
    }
    path = tmp_path / "session.json"
    path.write_text(json.dumps(script), encoding="utf-8")
    return path


def test_replay_without_ai_writes_report(tmp_path):
    """Test a full replay with AI disabled."""
    script = write_script(tmp_path)
    report_dir = tmp_path / "reports"

    code = main(["replay", str(script), "--no-ai", "--report-dir", str(report_dir), "--log-level", "warning"])

    assert code == 0
    report = report_dir / "Grading_Consistency_Report_Essay_1.txt"
    assert report.exists()
    assert "Override Log (0 total):" in report.read_text(encoding="utf-8")


def test_replay_exact_calibration_count(tmp_path, monkeypatch):
    """Test a batch of exactly three submissions still reaches finalization."""
    monkeypatch.setenv("GRADING_CONSISTENCY_LMS_SUBMIT_DELAY_SECONDS", "0")
    reload_settings()
    script = write_script(tmp_path, submissions=3)

    code = main(["replay", str(script), "--no-ai", "--report-dir", str(tmp_path), "--submit"])

    assert code == 0


def test_replay_too_few_submissions(tmp_path):
    """Test calibration cannot complete with two submissions."""
    script = write_script(tmp_path, submissions=2)

    assert main(["replay", str(script), "--no-ai", "--report-dir", str(tmp_path)]) == 1


def test_replay_invalid_script(tmp_path):
    """Test malformed scripts are reported, not raised."""
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    assert main(["replay", str(path), "--no-ai"]) == 1


def test_replay_requires_api_key_with_ai(tmp_path):
    """Test AI mode without a configured key."""
    script = write_script(tmp_path)

    assert main(["replay", str(script), "--report-dir", str(tmp_path)]) == 1


def test_no_command_prints_help(capsys):
    """Test running without a command."""
    assert main([]) == 0
    assert "replay" in capsys.readouterr().out


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    from config.logging_config import setup_structured_logging
    setup_structured_logging(level="INFO")
