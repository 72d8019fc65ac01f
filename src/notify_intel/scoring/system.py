"""System status dimension."""

from __future__ import annotations

from datetime import datetime

from ..models import (
    ContextSnapshot,
    Notification,
    NotificationCategory,
    NotificationType,
    SystemStatus,
)
from .base import DimensionScorer

HIGH_LOAD = 0.8
HIGH_MEMORY = 0.9
HIGH_ERROR_RATE = 0.1


class SystemStatusScorer(DimensionScorer):
    """Health of the system for system and performance notifications."""

    _name = "system_status"

    def raw_score(self, notification: Notification, context: ContextSnapshot, now: datetime) -> float:
        system = context.system
        if system is None:
            return 0.0

        kind = notification.type

        if notification.category == NotificationCategory.SYSTEM:
            if system.status == SystemStatus.UNHEALTHY and kind == NotificationType.ERROR:
                return 0.9
            if system.status == SystemStatus.DEGRADED and kind == NotificationType.WARNING:
                return 0.7
            if system.status == SystemStatus.HEALTHY and kind == NotificationType.SUCCESS:
                return 0.6

        if notification.category == NotificationCategory.PERFORMANCE:
            if system.load > HIGH_LOAD and kind == NotificationType.WARNING:
                return 0.8
            if system.memory_usage > HIGH_MEMORY and kind == NotificationType.ERROR:
                return 0.9
            if system.error_rate > HIGH_ERROR_RATE and kind == NotificationType.ERROR:
                return 0.8

        return 0.0
