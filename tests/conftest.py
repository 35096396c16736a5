"""
Shared fixtures for the grading consistency tests.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from ai.base_provider import ValidationGateway
from core.models import (
    AIAnalysis, Assignment, Course, CriterionEvaluation, RubricCriterion,
    Submission, ValidationRequest, ValidationStatus
)
from core.exceptions import APIConnectionError, APITimeoutError
from core.session import GradingSession
from core.workflow_state import GradingScreen
from config.settings import reload_settings


class FakeGateway(ValidationGateway):
    """In-memory gateway returning scripted verdicts."""

    name = "fake"

    def __init__(
        self,
        verdicts: Optional[Dict[str, ValidationStatus]] = None,
        default: ValidationStatus = ValidationStatus.SUPPORTED,
        tone: str = "Constructive and specific",
        delays: Optional[Dict[str, float]] = None
    ):
        self.verdicts = dict(verdicts or {})
        self.default = default
        self.tone = tone
        self.delays = dict(delays or {})
        self.requests: List[ValidationRequest] = []
        self.tone_calls: List[str] = []

    async def validate(self, request: ValidationRequest) -> AIAnalysis:
        self.requests.append(request)
        delay = self.delays.get(request.explanation, 0)
        if delay:
            await asyncio.sleep(delay)

        status = self.verdicts.get(request.criterion.id, self.default)
        refinement = None
        if status != ValidationStatus.SUPPORTED:
            refinement = f"Refined: {request.explanation}"
        return AIAnalysis(
            status=status,
            referenced_excerpt=f"excerpt for {request.explanation}",
            suggested_refinement=refinement
        )

    async def analyze_tone(self, text: str) -> str:
        self.tone_calls.append(text)
        return self.tone


class FailingGateway(ValidationGateway):
    """Gateway whose every call fails."""

    name = "failing"

    def __init__(self):
        self.calls = 0

    async def validate(self, request: ValidationRequest) -> AIAnalysis:
        self.calls += 1
        raise APIConnectionError("service unavailable")

    async def analyze_tone(self, text: str) -> str:
        self.calls += 1
        raise APITimeoutError("tone analysis timed out")


class BrokenGateway(ValidationGateway):
    """Gateway with a client bug: every call raises a non-gateway error."""

    name = "broken"

    async def validate(self, request: ValidationRequest) -> AIAnalysis:
        raise RuntimeError("unexpected client bug")

    async def analyze_tone(self, text: str) -> str:
        raise RuntimeError("unexpected client bug")


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep tests independent of the developer's environment."""
    for name in ("AI_ENABLED", "GEMINI_API_KEY", "VALIDATION_DEBOUNCE_SECONDS"):
        monkeypatch.delenv(f"GRADING_CONSISTENCY_{name}", raising=False)
    reload_settings()
    yield
    reload_settings()


@pytest.fixture
def course():
    return Course(id="c1", name="Intro to Writing")


@pytest.fixture
def assignment():
    return Assignment(id="a1", name="Essay 1", course_id="c1")


@pytest.fixture
def rubric():
    return [
        RubricCriterion(id="thesis", name="Thesis", description="Clear, arguable thesis", max_score=5),
        RubricCriterion(id="evidence", name="Evidence", description="Relevant supporting evidence", max_score=5),
    ]


@pytest.fixture
def submissions():
    return [
        Submission(id=f"s{i}", student_name=f"Student {i}", content=f"Essay text number {i}.")
        for i in range(1, 6)
    ]


@pytest.fixture
def session(course, assignment, rubric, submissions):
    """Session in Calibration with rubric and five submissions."""
    session = GradingSession(ai_enabled=True)
    session.select_course_assignment_rubric(course, assignment, rubric)
    session.load_submissions(submissions)
    session.set_screen(GradingScreen.CALIBRATION)
    return session


def make_evaluations(
    thesis: int = 4,
    evidence: int = 4,
    explanation: str = "Solid work.",
    status: Optional[ValidationStatus] = None
) -> List[CriterionEvaluation]:
    """Complete evaluations for the two-criterion rubric."""
    analysis = AIAnalysis(status=status) if status is not None else None
    return [
        CriterionEvaluation(criterion_id="thesis", score=thesis, explanation=explanation, ai_analysis=analysis),
        CriterionEvaluation(criterion_id="evidence", score=evidence, explanation=explanation, ai_analysis=analysis),
    ]
