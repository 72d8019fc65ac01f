"""
User role dimension.

Scores how well a notification fits the session's role, permissions and
recent activity.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from ..models import ContextSnapshot, Notification, NotificationCategory
from .base import DimensionScorer

# (role, category) pairs and their affinity
ROLE_AFFINITY: dict[tuple[str, NotificationCategory], float] = {
    ("developer", NotificationCategory.WORKFLOW): 0.8,
    ("admin", NotificationCategory.SYSTEM): 0.9,
    ("manager", NotificationCategory.BUSINESS): 0.7,
}

PERMISSION_HELD = 0.5
PERMISSION_MISSING = -0.3

ACTIVE_RECENTLY = timedelta(hours=1)
ACTIVE_TODAY = timedelta(hours=24)


class UserRoleScorer(DimensionScorer):
    """Role affinity, permission match and session activity."""

    _name = "user_role"

    def raw_score(self, notification: Notification, context: ContextSnapshot, now: datetime) -> float:
        session = context.user_session
        if session is None:
            return 0.0

        score = ROLE_AFFINITY.get((session.role, notification.category), 0.0)

        required = notification.metadata.requires_permission
        if required:
            score += PERMISSION_HELD if required in session.permissions else PERMISSION_MISSING

        if session.last_active_at is not None:
            idle = now - session.last_active_at
            if idle < ACTIVE_RECENTLY:
                score += 0.2
            elif idle < ACTIVE_TODAY:
                score += 0.1
            else:
                score -= 0.1

        return score
