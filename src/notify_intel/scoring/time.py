"""
Time context dimension.

Favors business hours and weekdays. Uses the caller's time record, not the
notification timestamp.
"""

from __future__ import annotations

from datetime import datetime

from ..models import ContextSnapshot, Notification
from .base import DimensionScorer


class TimeContextScorer(DimensionScorer):
    """Business hours, hour of day and day of week."""

    _name = "time_context"

    def raw_score(self, notification: Notification, context: ContextSnapshot, now: datetime) -> float:
        record = context.time
        if record is None:
            return 0.0

        score = 0.0
        if record.is_business_hours:
            score += 0.3
        elif record.is_weekend:
            score -= 0.2

        if 9 <= record.hour <= 17:
            score += 0.2
        elif 18 <= record.hour <= 22:
            score += 0.1
        else:
            score -= 0.1

        # 0=Sunday .. 6=Saturday
        if 1 <= record.day_of_week <= 5:
            score += 0.1
        else:
            score -= 0.1

        return score
