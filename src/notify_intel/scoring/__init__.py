"""
Context relevance scoring.

One DimensionScorer per relevance dimension, combined by ContextScorer.
"""

from .base import DimensionScorer
from .history import HistoricalPatternsScorer
from .role import UserRoleScorer
from .scorer import PRIORITY_ADJUSTMENTS, ContextScorer, default_dimensions
from .system import SystemStatusScorer
from .time import TimeContextScorer
from .workflow import WorkflowPhaseScorer

__all__ = [
    "PRIORITY_ADJUSTMENTS",
    "ContextScorer",
    "DimensionScorer",
    "HistoricalPatternsScorer",
    "SystemStatusScorer",
    "TimeContextScorer",
    "UserRoleScorer",
    "WorkflowPhaseScorer",
    "default_dimensions",
]
