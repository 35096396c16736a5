"""
Plain-text consistency report for a finalized grading session.
"""

import re
from pathlib import Path
from datetime import datetime
from typing import Optional

from core.session import GradingSession
from core.exceptions import ExportGenerationError
from config.constants import REPORT_FILENAME_PREFIX
from config.settings import get_settings
from config.logging_config import get_logger

logger = get_logger(__name__)


class ConsistencyReport:
    """
    Renders the grading consistency report.

    Usage:
        report = ConsistencyReport(session)
        path = report.write("outputs/reports")
    """

    def __init__(self, session: GradingSession, grader_name: Optional[str] = None):
        """
        Initialize report.

        Args:
            session: Session to report on
            grader_name: Name printed on the report (default: from settings)
        """
        self.session = session
        self.grader_name = grader_name or get_settings().grader_name

    @property
    def filename(self) -> str:
        """Report file name derived from the assignment name."""
        assignment = self.session.assignment
        name = re.sub(r"\s", "_", assignment.name) if assignment and assignment.name else "Session"
        return f"{REPORT_FILENAME_PREFIX}{name}.txt"

    def render(self, generated_at: Optional[datetime] = None) -> str:
        """Build the report body."""
        generated_at = generated_at or datetime.now()
        analytics = self.session.analytics
        assistance = analytics.ai_assistance_summary
        assignment_name = self.session.assignment.name if self.session.assignment else ""

        lines = [
            f"Grading Consistency Report - {assignment_name}",
            "-" * 55,
            f"Date: {generated_at.strftime('%Y-%m-%d')}",
            f"Professor: {self.grader_name}",
            "",
            "Overall Metrics:",
            f"- Session Confidence Score: {analytics.session_confidence_score:.1f}%",
            f"- Rubric Adherence: {analytics.rubric_adherence_percentage:.1f}%",
            f"- Score Drift from Calibration: {analytics.score_drift_percentage:.1f}%",
            f"- Total AI Interventions: {assistance.total_interventions}",
            f"- Overrides after AI Intervention: {assistance.overrides_after_intervention}",
            "",
            "Detailed Analytics:",
            f"- Explanation Validity Rate: {analytics.explanation_validity_rate:.1f}%",
            f"- High-Risk Flags: {', '.join(analytics.high_risk_flags) or 'None'}",
            "",
            f"Override Log ({analytics.override_count} total):",
        ]

        submissions = {s.id: s for s in self.session.submissions}
        for log in self.session.override_logs:
            submission = submissions.get(log.submission_id)
            criterion = self.session.criterion(log.criterion_id)
            lines.append(
                f"- Submission: {submission.student_name if submission else 'N/A'}"
                f" | Criterion: {criterion.name if criterion else 'N/A'}"
                f" | Original AI Status: {log.original_ai_status.value}"
                f" | Justification: {log.professor_justification}"
            )

        lines.extend(["", "--- End of Report ---", ""])
        return "\n".join(lines)

    def write(self, output_dir: Optional[str] = None) -> Path:
        """
        Write the report to disk.

        Args:
            output_dir: Target directory (default: settings.report_dir)

        Returns:
            Path of the written file

        Raises:
            ExportGenerationError: The file could not be written
        """
        directory = Path(output_dir or get_settings().report_dir)
        path = directory / self.filename
        try:
            directory.mkdir(parents=True, exist_ok=True)
            path.write_text(self.render(), encoding="utf-8")
        except OSError as e:
            raise ExportGenerationError(
                f"Could not write report to {path}: {e}",
                {'path': str(path)}
            ) from e

        logger.info(f"Consistency report written to {path}")
        return path
