"""
Grading module for per-submission evaluation.

Provides the grading workflow: drafts, debounced AI validation and the
override-before-save rule.
"""

from grading.workflow import (
    GradingWorkflow,
    CriterionDraft,
    SaveOutcome,
    SaveStatus,
)

__all__ = [
    'GradingWorkflow',
    'CriterionDraft',
    'SaveOutcome',
    'SaveStatus',
]
