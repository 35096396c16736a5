"""
Storage module for session-scoped grading data.

Provides the evaluation store and the override ledger.
"""

from storage.evaluation_store import EvaluationStore
from storage.override_ledger import OverrideLedger

__all__ = [
    'EvaluationStore',
    'OverrideLedger',
]
