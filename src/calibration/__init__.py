"""
Calibration module for grading consistency.

Computes the one-time baseline that later drift is measured against.
"""

from calibration.baseline import CalibrationEngine, categorize_tone

__all__ = [
    'CalibrationEngine',
    'categorize_tone',
]
