"""
Context Scorer.

Combines the five relevance dimensions into a weighted relevance score and
derives a priority adjustment plus human-readable recommendations, risk
factors and opportunities for a single notification.

Stateless: the same notification and context always give the same
analysis for a fixed clock.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from ..behavior import analyze_behavior
from ..config import RelevanceWeights
from ..models import (
    ContextAnalysis,
    ContextSnapshot,
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
    SystemStatus,
    UserBehaviorPattern,
    utc_now,
)
from .base import DimensionScorer
from .history import ENGAGEMENT_HIGH, ENGAGEMENT_LOW, HistoricalPatternsScorer
from .role import UserRoleScorer
from .system import SystemStatusScorer
from .time import TimeContextScorer
from .workflow import WorkflowPhaseScorer

# Base priority adjustment before context modifiers
PRIORITY_ADJUSTMENTS: dict[NotificationPriority, float] = {
    NotificationPriority.CRITICAL: 0.0,
    NotificationPriority.HIGH: 0.1,
    NotificationPriority.MEDIUM: 0.2,
    NotificationPriority.LOW: 0.3,
}

FATIGUE_RISK_VOLUME = 15
OVERLOAD = 0.9
INACTIVE_AFTER = timedelta(hours=24)


def default_dimensions() -> list[DimensionScorer]:
    """The five standard relevance dimensions."""
    return [
        UserRoleScorer(),
        WorkflowPhaseScorer(),
        SystemStatusScorer(),
        TimeContextScorer(),
        HistoricalPatternsScorer(),
    ]


class ContextScorer:
    """
    Context-aware relevance scoring.

    Args:
        weights: Per-dimension weights (must sum to 1)
        clock: Returns "now" for activity checks
        dimensions: Dimension scorers; names must match weight fields
    """

    def __init__(
        self,
        weights: RelevanceWeights | None = None,
        clock: Callable[[], datetime] = utc_now,
        dimensions: Sequence[DimensionScorer] | None = None,
    ) -> None:
        self.weights = weights or RelevanceWeights()
        self._clock = clock
        self.dimensions = list(dimensions) if dimensions is not None else default_dimensions()

    def score(self, notification: Notification, context: ContextSnapshot | None) -> ContextAnalysis:
        """
        Analyze a notification against the context snapshot.

        Missing context sub-records contribute nothing; an empty snapshot
        yields a relevance of 0.
        """
        context = context or ContextSnapshot()
        now = self._clock()
        weights = self.weights.to_dict()

        dimension_scores: dict[str, float] = {}
        relevance = 0.0
        for dimension in self.dimensions:
            value = dimension.score(notification, context, now)
            dimension_scores[dimension.name] = value
            relevance += weights.get(dimension.name, 0.0) * value

        return ContextAnalysis(
            relevance=relevance,
            priority_adjustment=self.priority_adjustment(notification, context),
            recommendations=self._recommendations(notification, context),
            risk_factors=self._risk_factors(notification, context, now),
            opportunities=self._opportunities(notification, context),
            dimension_scores=dimension_scores,
        )

    def relevance(self, notification: Notification, context: ContextSnapshot | None) -> float:
        return self.score(notification, context).relevance

    @staticmethod
    def priority_adjustment(notification: Notification, context: ContextSnapshot) -> float:
        """Signed priority adjustment in [-1, 1]."""
        adjustment = PRIORITY_ADJUSTMENTS[notification.priority]

        if context.role == "admin" and notification.category == NotificationCategory.SYSTEM:
            adjustment += 0.2
        if (
            context.workflow
            and context.workflow.status == "failed"
            and notification.type == NotificationType.ERROR
        ):
            adjustment += 0.3
        if (
            context.system
            and context.system.status == SystemStatus.UNHEALTHY
            and notification.category == NotificationCategory.SYSTEM
        ):
            adjustment += 0.4
        if (
            context.time
            and context.time.is_weekend
            and notification.priority == NotificationPriority.LOW
        ):
            adjustment -= 0.2

        return max(-1.0, min(1.0, adjustment))

    @staticmethod
    def _recommendations(notification: Notification, context: ContextSnapshot) -> list[str]:
        recommendations = []

        if context.role == "developer" and notification.category == NotificationCategory.WORKFLOW:
            recommendations.append(
                "Consider showing this notification prominently as it relates to active development work"
            )
        if (
            context.workflow
            and context.workflow.phase == "testing"
            and notification.type == NotificationType.ERROR
        ):
            recommendations.append("This error notification is highly relevant during the testing phase")
        if (
            context.system
            and context.system.status == SystemStatus.UNHEALTHY
            and notification.category == NotificationCategory.SYSTEM
        ):
            recommendations.append(
                "System is unhealthy - prioritize this notification for immediate attention"
            )
        if (
            context.time
            and context.time.is_weekend
            and notification.priority == NotificationPriority.LOW
        ):
            recommendations.append("Consider delaying this notification until business hours")
        if context.history:
            engagement = context.history.engagement_by_category.get(notification.category)
            if engagement is not None and engagement < ENGAGEMENT_LOW:
                recommendations.append(
                    "User has low engagement with this category - consider alternative notification approach"
                )

        return recommendations

    @staticmethod
    def _risk_factors(notification: Notification, context: ContextSnapshot, now: datetime) -> list[str]:
        risks = []

        if context.history and len(context.history.recent_notifications) > FATIGUE_RISK_VOLUME:
            risks.append("High notification volume may cause user fatigue")
        if (
            notification.priority == NotificationPriority.CRITICAL
            and context.time
            and context.time.is_weekend
        ):
            risks.append("Critical notification during off hours may not be noticed")
        if (
            context.system
            and context.system.load > OVERLOAD
            and notification.category == NotificationCategory.PERFORMANCE
        ):
            risks.append("System is overloaded - additional notifications may worsen the situation")
        session = context.user_session
        if session and session.last_active_at and now - session.last_active_at > INACTIVE_AFTER:
            risks.append("User has been inactive for over 24 hours - notification may not be seen")

        return risks

    @staticmethod
    def _opportunities(notification: Notification, context: ContextSnapshot) -> list[str]:
        opportunities = []

        if context.history:
            engagement = context.history.engagement_by_category.get(notification.category, 0.0)
            if engagement > ENGAGEMENT_HIGH:
                opportunities.append(
                    "User has high engagement with this category - good opportunity for interaction"
                )
        if (
            context.workflow
            and context.workflow.progress > 0.9
            and notification.type == NotificationType.SUCCESS
        ):
            opportunities.append("Workflow is nearly complete - good time for celebration notification")
        if (
            context.system
            and context.system.status == SystemStatus.HEALTHY
            and notification.category == NotificationCategory.SYSTEM
        ):
            opportunities.append("System is healthy - good time for positive reinforcement")
        if (
            context.time
            and context.time.is_business_hours
            and notification.priority == NotificationPriority.MEDIUM
        ):
            opportunities.append("Business hours - good time for non-critical notifications")

        return opportunities

    def analyze_behavior(
        self,
        user_id: str,
        history: Sequence[Notification],
        now: datetime | None = None,
    ) -> UserBehaviorPattern:
        """Derive a behavior pattern; see notify_intel.behavior.analyze_behavior."""
        return analyze_behavior(user_id, history, now if now is not None else self._clock())
