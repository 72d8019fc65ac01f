"""
Base class for context relevance dimensions.

Each dimension scores one aspect of the context snapshot in [0, 1]. A
dimension whose context sub-record is absent scores 0.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from ..models import ContextSnapshot, Notification


class DimensionScorer(ABC):
    """
    Base implementation for relevance dimensions.

    Subclasses set ``_name`` to their weight key and implement raw_score().
    """

    _name: str = "base"

    @property
    def name(self) -> str:
        """Dimension name, matching a RelevanceWeights field."""
        return self._name

    @abstractmethod
    def raw_score(
        self,
        notification: Notification,
        context: ContextSnapshot,
        now: datetime,
    ) -> float:
        """Unclamped dimension score. Must be implemented by subclass."""
        ...

    def score(self, notification: Notification, context: ContextSnapshot, now: datetime) -> float:
        """Dimension score clamped to [0, 1]."""
        return max(0.0, min(1.0, self.raw_score(notification, context, now)))
