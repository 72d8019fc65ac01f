"""
Explanation and recommendation synthesis.

Explanations say why each removed notification did not make the final
result. Recommendations summarize the delivered set for operators.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence

from .models import (
    ContextSnapshot,
    Notification,
    NotificationCategory,
    NotificationPriority,
    UserBehaviorPattern,
)

DEFAULT_EXPLANATION = "Excluded by notification filtering"

CRITICAL_VOLUME = 3
DOMINANT_SHARE = 0.6
WEEKEND_VOLUME = 5
FATIGUE_VOLUME = 10


def contextual_hints(notification: Notification, context: ContextSnapshot) -> list[str]:
    """Context-derived hints that accompany stage reasons."""
    hints = []
    if notification.priority == NotificationPriority.LOW and context.time and context.time.is_weekend:
        hints.append("Low priority notification during weekend")
    if notification.category == NotificationCategory.USER and context.role == "admin":
        hints.append("User notification not relevant for admin role")
    return hints


def build_explanations(
    original: Sequence[Notification],
    delivered: Sequence[Notification],
    stage_reasons: Mapping[str, Sequence[str]],
    context: ContextSnapshot,
) -> dict[str, list[str]]:
    """
    Explain every input notification absent from the delivered set.

    Args:
        original: The batch as given to the pipeline
        delivered: Final surviving notifications
        stage_reasons: Reasons recorded by the stage that removed each id
        context: Context snapshot for the batch

    Returns:
        Mapping of removed id to at least one reason; delivered ids never appear
    """
    delivered_ids = {n.id for n in delivered}
    explanations: dict[str, list[str]] = {}

    for notification in original:
        if notification.id in delivered_ids:
            continue
        reasons = list(stage_reasons.get(notification.id, ()))
        for hint in contextual_hints(notification, context):
            if hint not in reasons:
                reasons.append(hint)
        explanations[notification.id] = reasons or [DEFAULT_EXPLANATION]

    return explanations


def build_recommendations(
    delivered: Sequence[Notification],
    context: ContextSnapshot,
    pattern: UserBehaviorPattern | None = None,
) -> list[str]:
    """Operator recommendations from the delivered set's distribution."""
    recommendations = []

    critical = sum(1 for n in delivered if n.priority == NotificationPriority.CRITICAL)
    if critical > CRITICAL_VOLUME:
        recommendations.append("High number of critical notifications - consider reviewing system health")

    if delivered:
        category, count = Counter(n.category for n in delivered).most_common(1)[0]
        if count > len(delivered) * DOMINANT_SHARE:
            recommendations.append(
                f"Notifications are dominated by {category.value} category - consider diversifying"
            )

    if context.time and context.time.is_weekend and len(delivered) > WEEKEND_VOLUME:
        recommendations.append(
            "High notification volume during weekend - consider implementing quiet hours"
        )

    if pattern is not None and pattern.fatigue.recent_notification_count > FATIGUE_VOLUME:
        recommendations.append(
            "User showing signs of notification fatigue - consider reducing frequency"
        )

    return recommendations
