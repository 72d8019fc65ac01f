"""Historical patterns dimension."""

from __future__ import annotations

from datetime import datetime

from ..models import ContextSnapshot, Notification
from .base import DimensionScorer

# Engagement rate thresholds
ENGAGEMENT_HIGH = 0.8
ENGAGEMENT_MEDIUM = 0.5
ENGAGEMENT_LOW = 0.2

BUSY_HISTORY = 10
QUIET_HISTORY = 3


class HistoricalPatternsScorer(DimensionScorer):
    """Recent volume, category engagement and explicit category preference."""

    _name = "historical_patterns"

    def raw_score(self, notification: Notification, context: ContextSnapshot, now: datetime) -> float:
        history = context.history
        if history is None:
            return 0.0

        score = 0.0
        recent = len(history.recent_notifications)
        if recent > BUSY_HISTORY:
            score -= 0.2
        elif recent < QUIET_HISTORY:
            score += 0.1

        engagement = history.engagement_by_category.get(notification.category, 0.0)
        if engagement > ENGAGEMENT_HIGH:
            score += 0.3
        elif engagement > ENGAGEMENT_MEDIUM:
            score += 0.2
        elif engagement < ENGAGEMENT_LOW:
            score -= 0.1

        preference = history.preferences_by_category.get(notification.category)
        if preference is False:
            score -= 0.5
        elif preference is True:
            score += 0.2

        return score
