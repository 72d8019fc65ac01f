"""
Tests for context relevance scoring.
"""

from __future__ import annotations

import pytest

from notify_intel.config import RelevanceWeights
from notify_intel.models import (
    ContextSnapshot,
    HistoryContext,
    NotificationCategory,
    SystemContext,
    SystemStatus,
    TimeContext,
    WorkflowContext,
)
from notify_intel.scoring import (
    ContextScorer,
    HistoricalPatternsScorer,
    SystemStatusScorer,
    TimeContextScorer,
    UserRoleScorer,
    WorkflowPhaseScorer,
)
from tests.conftest import BUSINESS_HOURS, FIXED_NOW, WEEKEND, make_context, make_history, make_notification


class TestDimensionScores:
    """Tests for the individual relevance dimensions."""

    def test_role_affinity_and_activity(self):
        context = make_context(role="developer", last_active_minutes=10)

        assert UserRoleScorer().score(make_notification(), context, FIXED_NOW) == pytest.approx(1.0)

    def test_role_inactive_session(self):
        context = make_context(role="developer", last_active_minutes=60 * 48)

        assert UserRoleScorer().score(make_notification(), context, FIXED_NOW) == pytest.approx(0.7)

    def test_role_missing_permission_clamped(self):
        notification = make_notification(category="system", requires_permission="ops:read")
        context = make_context(role="developer")

        assert UserRoleScorer().score(notification, context, FIXED_NOW) == 0.0

    def test_role_held_permission(self):
        notification = make_notification(category="system", requires_permission="ops:read")
        context = make_context(role="admin", permissions=["ops:read"])

        assert UserRoleScorer().score(notification, context, FIXED_NOW) == 1.0

    def test_workflow_match_clamped(self):
        notification = make_notification(workflow_id="wf-1", phase="testing")
        context = ContextSnapshot(
            workflow=WorkflowContext(workflow_id="wf-1", phase="testing", status="failed", progress=0.5)
        )

        assert WorkflowPhaseScorer().score(notification, context, FIXED_NOW) == 1.0

    def test_workflow_early_warning(self):
        notification = make_notification(type="warning")
        context = ContextSnapshot(workflow=WorkflowContext(workflow_id="wf-2", status="queued", progress=0.1))

        assert WorkflowPhaseScorer().score(notification, context, FIXED_NOW) == pytest.approx(0.4)

    @pytest.mark.parametrize(
        "category,type,system,expected",
        [
            ("system", "error", SystemContext(status=SystemStatus.UNHEALTHY), 0.9),
            ("system", "warning", SystemContext(status=SystemStatus.DEGRADED), 0.7),
            ("system", "success", SystemContext(), 0.6),
            ("performance", "warning", SystemContext(load=0.85), 0.8),
            ("performance", "error", SystemContext(memory_usage=0.95), 0.9),
            ("performance", "error", SystemContext(error_rate=0.2), 0.8),
            ("workflow", "error", SystemContext(status=SystemStatus.UNHEALTHY), 0.0),
        ],
    )
    def test_system_status(self, category, type, system, expected):
        notification = make_notification(category=category, type=type)

        score = SystemStatusScorer().score(notification, ContextSnapshot(system=system), FIXED_NOW)

        assert score == pytest.approx(expected)

    def test_time_business_hours(self):
        context = ContextSnapshot(time=BUSINESS_HOURS)

        assert TimeContextScorer().score(make_notification(), context, FIXED_NOW) == pytest.approx(0.6)

    def test_time_weekend_clamped(self):
        context = ContextSnapshot(time=WEEKEND)

        assert TimeContextScorer().score(make_notification(), context, FIXED_NOW) == 0.0

    def test_time_late_night(self):
        context = ContextSnapshot(time=TimeContext(hour=23, day_of_week=3))

        assert TimeContextScorer().score(make_notification(), context, FIXED_NOW) == pytest.approx(0.0)

    def test_history_missing_engagement_counts_as_low(self):
        """Quiet history offsets the missing engagement entry."""
        context = ContextSnapshot(history=HistoryContext())

        assert HistoricalPatternsScorer().score(make_notification(), context, FIXED_NOW) == pytest.approx(0.0)

    def test_history_engaged_and_preferred(self):
        context = ContextSnapshot(
            history=HistoryContext(
                engagement_by_category={NotificationCategory.WORKFLOW: 0.9},
                preferences_by_category={NotificationCategory.WORKFLOW: True},
            )
        )

        assert HistoricalPatternsScorer().score(make_notification(), context, FIXED_NOW) == pytest.approx(0.6)

    def test_history_busy_and_disliked(self):
        context = ContextSnapshot(
            history=HistoryContext(
                recent_notifications=make_history(12),
                engagement_by_category={NotificationCategory.WORKFLOW: 0.6},
                preferences_by_category={NotificationCategory.WORKFLOW: False},
            )
        )

        assert HistoricalPatternsScorer().score(make_notification(), context, FIXED_NOW) == 0.0

    def test_absent_records_score_zero(self):
        for scorer in (
            UserRoleScorer(),
            WorkflowPhaseScorer(),
            SystemStatusScorer(),
            TimeContextScorer(),
            HistoricalPatternsScorer(),
        ):
            assert scorer.score(make_notification(), ContextSnapshot(), FIXED_NOW) == 0.0


class TestContextScorer:
    """Tests for the weighted combination."""

    def test_empty_context(self, clock):
        """An empty snapshot gives zero relevance and the base adjustment."""
        analysis = ContextScorer(clock=clock).score(make_notification(priority="medium"), ContextSnapshot())

        assert analysis.relevance == 0.0
        assert analysis.priority_adjustment == pytest.approx(0.2)
        assert analysis.recommendations == []
        assert analysis.risk_factors == []

    def test_none_context(self, clock):
        assert ContextScorer(clock=clock).relevance(make_notification(), None) == 0.0

    def test_weighted_relevance(self, clock):
        analysis = ContextScorer(clock=clock).score(make_notification(), ContextSnapshot(time=BUSINESS_HOURS))

        assert analysis.relevance == pytest.approx(0.09)
        assert analysis.dimension_scores["time_context"] == pytest.approx(0.6)
        assert set(analysis.dimension_scores) == {
            "user_role",
            "workflow_phase",
            "system_status",
            "time_context",
            "historical_patterns",
        }

    def test_custom_weights(self, clock):
        weights = RelevanceWeights(
            user_role=0.0, workflow_phase=0.0, system_status=0.0, time_context=1.0, historical_patterns=0.0
        )

        relevance = ContextScorer(weights=weights, clock=clock).relevance(
            make_notification(), ContextSnapshot(time=BUSINESS_HOURS)
        )

        assert relevance == pytest.approx(0.6)

    def test_random_contexts_stay_in_bounds(self, clock, seeded_rng):
        """Relevance and adjustment stay in range for arbitrary partial contexts."""
        scorer = ContextScorer(clock=clock)
        for i in range(50):
            notification = make_notification(
                f"n-{i}",
                priority=seeded_rng.choice(["critical", "high", "medium", "low"]),
                category=seeded_rng.choice(["workflow", "system", "performance", "user"]),
                type=seeded_rng.choice(["info", "success", "warning", "error"]),
                workflow_id=seeded_rng.choice([None, "wf-1"]),
            )
            context = make_context(
                role=seeded_rng.choice(["developer", "admin", "manager"]),
                last_active_minutes=seeded_rng.choice([None, 5, 600, 5000]),
                time=seeded_rng.choice([None, BUSINESS_HOURS, WEEKEND]),
                workflow=seeded_rng.choice(
                    [None, WorkflowContext(workflow_id="wf-1", status="failed", progress=seeded_rng.random())]
                ),
                system=seeded_rng.choice(
                    [None, SystemContext(status=SystemStatus.UNHEALTHY, load=seeded_rng.random())]
                ),
            )

            analysis = scorer.score(notification, context)

            assert 0.0 <= analysis.relevance <= 1.0
            assert -1.0 <= analysis.priority_adjustment <= 1.0

    def test_deterministic(self, clock):
        scorer = ContextScorer(clock=clock)
        context = make_context(time=WEEKEND, last_active_minutes=30)

        assert scorer.score(make_notification(), context) == scorer.score(make_notification(), context)


class TestPriorityAdjustment:
    def test_admin_unhealthy_system(self):
        notification = make_notification(category="system", priority="high")
        context = make_context(role="admin", system=SystemContext(status=SystemStatus.UNHEALTHY))

        assert ContextScorer.priority_adjustment(notification, context) == pytest.approx(0.7)

    def test_weekend_low_priority(self):
        notification = make_notification(priority="low")

        assert ContextScorer.priority_adjustment(notification, ContextSnapshot(time=WEEKEND)) == pytest.approx(0.1)

    def test_clamped(self):
        notification = make_notification(category="system", priority="low", type="error")
        context = make_context(
            role="admin",
            system=SystemContext(status=SystemStatus.UNHEALTHY),
            workflow=WorkflowContext(status="failed"),
        )

        assert ContextScorer.priority_adjustment(notification, context) == 1.0


class TestAnalysisText:
    """Tests for recommendations, risks and opportunities."""

    def test_recommendations(self, clock):
        notification = make_notification(priority="low")
        context = make_context(
            role="developer",
            time=WEEKEND,
            history=HistoryContext(engagement_by_category={NotificationCategory.WORKFLOW: 0.1}),
        )

        analysis = ContextScorer(clock=clock).score(notification, context)

        assert analysis.recommendations == [
            "Consider showing this notification prominently as it relates to active development work",
            "Consider delaying this notification until business hours",
            "User has low engagement with this category - consider alternative notification approach",
        ]

    def test_risk_factors(self, clock):
        notification = make_notification(priority="critical")
        context = make_context(
            last_active_minutes=60 * 25,
            time=WEEKEND,
            history=HistoryContext(recent_notifications=make_history(16)),
        )

        analysis = ContextScorer(clock=clock).score(notification, context)

        assert analysis.risk_factors == [
            "High notification volume may cause user fatigue",
            "Critical notification during off hours may not be noticed",
            "User has been inactive for over 24 hours - notification may not be seen",
        ]

    def test_opportunities(self, clock):
        notification = make_notification(category="system", priority="medium", type="success")
        context = make_context(
            time=BUSINESS_HOURS,
            system=SystemContext(),
            history=HistoryContext(engagement_by_category={NotificationCategory.SYSTEM: 0.95}),
        )

        analysis = ContextScorer(clock=clock).score(notification, context)

        assert analysis.opportunities == [
            "User has high engagement with this category - good opportunity for interaction",
            "System is healthy - good time for positive reinforcement",
            "Business hours - good time for non-critical notifications",
        ]

    def test_analyze_behavior_uses_clock(self, clock):
        pattern = ContextScorer(clock=clock).analyze_behavior("user-1", make_history(3))

        assert pattern.user_id == "user-1"
        assert pattern.fatigue.recent_notification_count == 3
