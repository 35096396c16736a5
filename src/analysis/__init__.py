"""
Analysis module for grading consistency analytics.

Provides the analytics engine and its metric functions.
"""

from analysis.analytics_engine import (
    AnalyticsEngine,
    explanation_validity,
    score_drift,
    sample_variance,
    session_confidence_score,
)

__all__ = [
    'AnalyticsEngine',
    'explanation_validity',
    'score_drift',
    'sample_variance',
    'session_confidence_score',
]
