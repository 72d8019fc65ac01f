"""
notify_intel Test Suite - Shared Fixtures and Factories

Factory functions build notifications and context snapshots with sensible
defaults so each test only spells out the fields it cares about.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from notify_intel.models import (
    ContextSnapshot,
    HistoryContext,
    Notification,
    NotificationCategory,
    NotificationMetadata,
    NotificationPriority,
    NotificationType,
    TimeContext,
    UserPreferences,
    UserSession,
)

# Thursday afternoon, outside business hours in UTC
FIXED_NOW = datetime(2026, 1, 15, 18, 30, 0, tzinfo=timezone.utc)


def make_notification(
    notification_id: str = "n-1",
    title: str = "Build pipeline failed",
    message: str = "Stage compile exited with status 2",
    type: str | NotificationType = NotificationType.ERROR,
    category: str | NotificationCategory = NotificationCategory.WORKFLOW,
    priority: str | NotificationPriority = NotificationPriority.HIGH,
    created_at: datetime | None = None,
    minutes_ago: float = 5,
    **metadata: Any,
) -> Notification:
    """
    Create a Notification for testing.

    Args:
        notification_id: Notification ID
        title: Title text
        message: Message text
        type: Notification type (enum or value)
        category: Notification category (enum or value)
        priority: Notification priority (enum or value)
        created_at: Creation time (default: FIXED_NOW - minutes_ago)
        minutes_ago: Age relative to FIXED_NOW when created_at is not given
        **metadata: Metadata fields (workflow_id, phase, user_engaged, ...)

    Returns:
        Notification
    """
    return Notification(
        id=notification_id,
        title=title,
        message=message,
        type=NotificationType(type),
        category=NotificationCategory(category),
        priority=NotificationPriority(priority),
        created_at=created_at or FIXED_NOW - timedelta(minutes=minutes_ago),
        metadata=NotificationMetadata(**metadata),
    )


def make_history(
    count: int,
    category: str | NotificationCategory = NotificationCategory.WORKFLOW,
    hours_ago: float = 1,
) -> tuple[Notification, ...]:
    """Create ``count`` history notifications of one category."""
    return tuple(
        make_notification(
            f"h-{i}",
            category=category,
            created_at=FIXED_NOW - timedelta(hours=hours_ago, minutes=i),
        )
        for i in range(count)
    )


def make_context(
    user_id: str | None = "user-1",
    role: str = "developer",
    last_active_minutes: float | None = None,
    time: TimeContext | None = None,
    history: HistoryContext | None = None,
    preferences: UserPreferences | None = None,
    **kwargs: Any,
) -> ContextSnapshot:
    """
    Create a ContextSnapshot for testing.

    A session is included when ``user_id`` is set.
    """
    session = None
    if user_id is not None:
        last_active = (
            FIXED_NOW - timedelta(minutes=last_active_minutes)
            if last_active_minutes is not None
            else None
        )
        session = UserSession(
            user_id=user_id,
            role=role,
            permissions=tuple(kwargs.pop("permissions", ())),
            last_active_at=last_active,
        )
    return ContextSnapshot(
        user_session=session,
        time=time,
        history=history,
        preferences=preferences,
        **kwargs,
    )


BUSINESS_HOURS = TimeContext(hour=10, day_of_week=4, is_business_hours=True, is_weekend=False)
WEEKEND = TimeContext(hour=11, day_of_week=6, is_business_hours=False, is_weekend=True)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fixed_datetime() -> datetime:
    """Return a fixed datetime for consistent testing."""
    return FIXED_NOW


@pytest.fixture
def clock(fixed_datetime: datetime):
    """Clock callable returning the fixed datetime."""
    return lambda: fixed_datetime


@pytest.fixture
def seeded_rng() -> random.Random:
    """
    Return a seeded Random instance for deterministic randomness in tests.

    Isolated from global random state.
    """
    return random.Random(42)


@pytest.fixture
def notification_factory():
    """Fixture providing make_notification."""
    return make_notification


@pytest.fixture(autouse=True)
def reset_singletons():
    """
    Reset settings cache and logging state around each test.

    Settings must be reset first since logging reads its level from them.
    """

    def do_reset():
        from notify_intel.core.config import reset_settings
        from notify_intel.core.logging import reset_logging

        reset_settings()
        reset_logging()

    do_reset()
    yield
    do_reset()
