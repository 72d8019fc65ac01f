"""
Tests for explanation and recommendation synthesis.
"""

from __future__ import annotations

from notify_intel.explain import (
    DEFAULT_EXPLANATION,
    build_explanations,
    build_recommendations,
    contextual_hints,
)
from notify_intel.models import ContextSnapshot, FatigueIndicators, UserBehaviorPattern
from tests.conftest import WEEKEND, make_context, make_notification


class TestBuildExplanations:
    """Tests for per-notification explanations."""

    def test_only_removed_notifications_explained(self):
        kept = make_notification("kept")
        removed = make_notification("removed")

        explanations = build_explanations(
            [kept, removed], [kept], {"removed": ["Outside time range"]}, ContextSnapshot()
        )

        assert explanations == {"removed": ["Outside time range"]}

    def test_default_reason(self):
        removed = make_notification("removed")

        explanations = build_explanations([removed], [], {}, ContextSnapshot())

        assert explanations == {"removed": [DEFAULT_EXPLANATION]}

    def test_contextual_hints_appended(self):
        removed = make_notification("low", priority="low")
        context = make_context(time=WEEKEND)

        explanations = build_explanations([removed], [], {"low": ["Rate limit of 5 notifications per hour exceeded"]}, context)

        assert explanations["low"] == [
            "Rate limit of 5 notifications per hour exceeded",
            "Low priority notification during weekend",
        ]

    def test_hint_not_repeated(self):
        removed = make_notification("u", category="user")
        context = make_context(role="admin")
        hint = "User notification not relevant for admin role"

        explanations = build_explanations([removed], [], {"u": [hint]}, context)

        assert explanations["u"] == [hint]

    def test_hints_need_context(self):
        assert contextual_hints(make_notification(priority="low", category="user"), ContextSnapshot()) == []


class TestBuildRecommendations:
    """Tests for batch-level recommendations."""

    def test_empty_delivery(self):
        assert build_recommendations([], ContextSnapshot()) == []

    def test_many_critical_and_dominant_category(self):
        delivered = [make_notification(f"c-{i}", priority="critical") for i in range(4)]

        recommendations = build_recommendations(delivered, ContextSnapshot())

        assert recommendations == [
            "High number of critical notifications - consider reviewing system health",
            "Notifications are dominated by workflow category - consider diversifying",
        ]

    def test_balanced_categories(self):
        delivered = [
            make_notification("w1"),
            make_notification("w2"),
            make_notification("s1", category="system"),
            make_notification("s2", category="system"),
        ]

        assert build_recommendations(delivered, ContextSnapshot()) == []

    def test_weekend_volume(self):
        delivered = [
            make_notification(f"n-{i}", category=["workflow", "system", "security"][i % 3])
            for i in range(6)
        ]

        recommendations = build_recommendations(delivered, ContextSnapshot(time=WEEKEND))

        assert recommendations == [
            "High notification volume during weekend - consider implementing quiet hours"
        ]

    def test_fatigue(self):
        pattern = UserBehaviorPattern("user-1", fatigue=FatigueIndicators(recent_notification_count=11))
        delivered = [make_notification("a"), make_notification("b", category="system")]

        recommendations = build_recommendations(delivered, ContextSnapshot(), pattern)

        assert recommendations == [
            "User showing signs of notification fatigue - consider reducing frequency"
        ]
