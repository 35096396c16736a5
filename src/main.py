"""
Main CLI entry point for the grading consistency engine.

Usage:
    python src/main.py replay session.json
    python src/main.py replay session.json --no-ai
    python src/main.py replay session.json --report-dir ./reports --submit

A replay script is a JSON document:

    {
      "course": {"id": "c1", "name": "Intro to Writing"},
      "assignment": {"id": "a1", "name": "Essay 1", "course_id": "c1"},
      "rubric": [{"id": "thesis", "name": "Thesis", "max_score": 5}],
      "default_override": "Optional fallback justification",
      "submissions": [
        {
          "id": "s1",
          "student_name": "Alice",
          "content": "...",
          "highlight": "optional excerpt",
          "evaluations": {
            "thesis": {"score": 4, "explanation": "...", "override": "optional"}
          }
        }
      ]
    }
"""

import asyncio
import sys
import json
import argparse
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from core.models import Course, Assignment, RubricCriterion, Submission
from core.exceptions import GradingConsistencyError
from core.session import GradingSession
from core.workflow_state import GradingScreen
from grading.workflow import GradingWorkflow, SaveStatus
from export.report import ConsistencyReport
from export.lms import LMSSubmitter
from ai import create_validation_gateway
from config.settings import get_settings
from config.logging_config import setup_structured_logging


# ==================== Replay script ====================

class ScriptEvaluation(BaseModel):
    score: int
    explanation: str
    override: Optional[str] = None


class ScriptSubmission(BaseModel):
    id: Optional[str] = None
    student_name: str
    content: str = ""
    highlight: Optional[str] = None
    evaluations: Dict[str, ScriptEvaluation] = Field(default_factory=dict)

    def to_submission(self, assignment_id: str) -> Submission:
        data = {'student_name': self.student_name, 'content': self.content,
                'assignment_id': assignment_id}
        if self.id:
            data['id'] = self.id
        return Submission(**data)


class ReplayScript(BaseModel):
    course: Course
    assignment: Assignment
    rubric: List[RubricCriterion]
    submissions: List[ScriptSubmission]
    default_override: Optional[str] = None


def load_script(path: str) -> ReplayScript:
    """Read and validate a replay script."""
    with open(path, encoding="utf-8") as f:
        return ReplayScript.model_validate(json.load(f))


# ==================== Display ====================

def display_flagged_decisions(console: Console, session: GradingSession) -> None:
    """Show the reflection table."""
    decisions = session.flagged_decisions()
    if not decisions:
        console.print("[green]No flagged decisions. Great job![/green]")
        return

    table = Table(title="Flagged Decisions")
    table.add_column("Submission", style="cyan")
    table.add_column("Criterion")
    table.add_column("AI Status", style="yellow")
    table.add_column("Justification / Flag")

    for decision in decisions:
        table.add_row(
            decision.submission_name,
            decision.criterion_name,
            decision.original_status,
            decision.justification
        )
    console.print(table)


def display_analytics(console: Console, session: GradingSession) -> None:
    """Show final session analytics."""
    analytics = session.analytics
    assistance = analytics.ai_assistance_summary

    table = Table(title="Session Analytics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Session Confidence Score", f"{analytics.session_confidence_score:.1f}%")
    table.add_row("Rubric Adherence", f"{analytics.rubric_adherence_percentage:.1f}%")
    table.add_row("Explanation Validity Rate", f"{analytics.explanation_validity_rate:.1f}%")
    table.add_row("Score Drift from Calibration", f"{analytics.score_drift_percentage:.2f}")
    table.add_row("Overrides", str(analytics.override_count))
    table.add_row("AI Interventions", str(assistance.total_interventions))
    table.add_row("Refinements Applied", str(assistance.refinements_applied))
    table.add_row("High-Risk Flags", ", ".join(analytics.high_risk_flags) or "None")
    console.print(table)

    if analytics.criterion_variance_heatmap:
        heatmap = Table(title="Criterion Variance (latest)")
        heatmap.add_column("Criterion", style="cyan")
        heatmap.add_column("Variance", style="magenta")
        for criterion in session.rubric:
            history = analytics.criterion_variance_heatmap.get(criterion.id, [])
            heatmap.add_row(criterion.name, f"{history[-1]:.2f}" if history else "-")
        console.print(heatmap)


# ==================== Commands ====================

async def command_replay(args) -> int:
    """Replay a grading script through the full workflow."""
    console = Console()
    settings = get_settings()

    try:
        script = load_script(args.script)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Invalid replay script: {e}[/red]")
        return 1

    ai_enabled = settings.ai_enabled and not args.no_ai
    gateway = None
    if ai_enabled:
        try:
            gateway = create_validation_gateway(api_key=settings.gemini_api_key)
        except GradingConsistencyError as e:
            console.print(f"[red]Error: {e}[/red]")
            console.print("Set GRADING_CONSISTENCY_GEMINI_API_KEY or run with --no-ai.")
            return 1

    session = GradingSession(ai_enabled=ai_enabled)
    workflow = GradingWorkflow(session, gateway)

    try:
        session.select_course_assignment_rubric(script.course, script.assignment, script.rubric)
        session.load_submissions([s.to_submission(script.assignment.id) for s in script.submissions])
        session.set_screen(GradingScreen.CALIBRATION)

        console.print(Panel(
            f"{script.course.name} / {script.assignment.name}\n"
            f"{len(script.submissions)} submissions, {len(script.rubric)} criteria, "
            f"AI {'on' if ai_enabled else 'off'}",
            title="Grading Session"
        ))

        for index, entry in enumerate(script.submissions):
            if session.screen == GradingScreen.CALIBRATION and session.is_calibration_complete:
                await workflow.enter_active_grading()
                console.print("[bold]Calibration complete. Entering active grading.[/bold]")

            workflow.go_to_submission(index)
            await grade_submission(console, workflow, script, entry)

        if session.screen == GradingScreen.CALIBRATION:
            await workflow.enter_active_grading()
        if session.screen == GradingScreen.ACTIVE_GRADING:
            session.set_screen(GradingScreen.REFLECTION)

        display_flagged_decisions(console, session)

        session.set_screen(GradingScreen.FINALIZATION)
        display_analytics(console, session)

        path = ConsistencyReport(session).write(args.report_dir)
        console.print(f"[green]Report written to {path}[/green]")

        if args.submit:
            result = await LMSSubmitter().submit(session)
            style = "green" if result.success else "red"
            console.print(f"[{style}]{result.message}[/{style}]")
            if not result.success:
                return 1

    except GradingConsistencyError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    finally:
        if workflow.scheduler is not None:
            workflow.scheduler.cancel_all()

    return 0


async def grade_submission(
    console: Console,
    workflow: GradingWorkflow,
    script: ReplayScript,
    entry: ScriptSubmission
) -> None:
    """Enter one scripted evaluation, resolving overrides as they come up."""
    for criterion_id, evaluation in entry.evaluations.items():
        workflow.set_score(criterion_id, evaluation.score)
        workflow.edit_explanation(criterion_id, evaluation.explanation)
    if entry.highlight:
        workflow.set_highlight(entry.highlight)
    await workflow.validate_all()

    outcome = await workflow.save()
    while outcome.status == SaveStatus.OVERRIDE_PENDING:
        criterion_id = outcome.pending_criterion_id
        scripted = entry.evaluations.get(criterion_id)
        justification = (scripted.override if scripted else None) or script.default_override
        if not justification:
            raise GradingConsistencyError(
                f"{entry.student_name}: criterion '{criterion_id}' was judged "
                f"{outcome.pending_status.value} and the script has no override justification"
            )
        console.print(
            f"  [yellow]⚠ {criterion_id}: {outcome.pending_status.value} → override[/yellow]"
        )
        outcome = await workflow.resolve_override(justification)

    console.print(f"[green]✓[/green] {entry.student_name} graded")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Grading consistency engine - calibrated, AI-checked rubric grading",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s replay session.json
  %(prog)s replay session.json --no-ai
  %(prog)s replay session.json --report-dir ./reports --submit
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    replay_parser = subparsers.add_parser("replay", help="Replay a scripted grading session")
    replay_parser.add_argument("script", help="Path to the JSON replay script")
    replay_parser.add_argument(
        "--no-ai",
        action="store_true",
        help="Disable AI justification validation"
    )
    replay_parser.add_argument(
        "--report-dir",
        default=None,
        help="Directory for the consistency report (default: settings.report_dir)"
    )
    replay_parser.add_argument(
        "--submit",
        action="store_true",
        help="Submit grades to the LMS (mocked)"
    )
    replay_parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: settings.log_level)"
    )

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    setup_structured_logging(level=(args.log_level or get_settings().log_level).upper())

    if args.command == "replay":
        return asyncio.run(command_replay(args))

    return 0


if __name__ == "__main__":
    sys.exit(main())
