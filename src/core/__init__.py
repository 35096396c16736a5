"""
Core module for the grading consistency engine.

Exports key models and exceptions for easy access. The session state
machine lives in core.session and is imported from there.
"""

from core.models import (
    ValidationStatus,
    Course,
    Assignment,
    RubricCriterion,
    Submission,
    AIAnalysis,
    ValidationRequest,
    CriterionEvaluation,
    EvaluationRecord,
    OverrideLog,
    CalibrationBaseline,
    SessionAnalytics,
    FlaggedDecision,
    generate_id,
)

from core.exceptions import (
    GradingConsistencyError,
    ConfigurationError,
    MissingAPIKeyError,
    GradingError,
    IncompleteEvaluationError,
    InvalidScoreError,
    MissingOverrideJustificationError,
    SessionError,
    PreconditionNotMetError,
    SessionStateError,
    GatewayError,
    APIConnectionError,
    APITimeoutError,
    APIResponseError,
    ParsingError,
    ExportError,
    ExportGenerationError,
)

__all__ = [
    # Models
    'ValidationStatus',
    'Course',
    'Assignment',
    'RubricCriterion',
    'Submission',
    'AIAnalysis',
    'ValidationRequest',
    'CriterionEvaluation',
    'EvaluationRecord',
    'OverrideLog',
    'CalibrationBaseline',
    'SessionAnalytics',
    'FlaggedDecision',
    'generate_id',
    # Exceptions
    'GradingConsistencyError',
    'ConfigurationError',
    'MissingAPIKeyError',
    'GradingError',
    'IncompleteEvaluationError',
    'InvalidScoreError',
    'MissingOverrideJustificationError',
    'SessionError',
    'PreconditionNotMetError',
    'SessionStateError',
    'GatewayError',
    'APIConnectionError',
    'APITimeoutError',
    'APIResponseError',
    'ParsingError',
    'ExportError',
    'ExportGenerationError',
]
