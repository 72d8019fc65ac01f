"""
User Behavior Analysis.

Derives a UserBehaviorPattern from a user's notification history and keeps
patterns in a bounded per-pipeline cache.

Components:
- analyze_behavior: pure derivation from history
- BehaviorStore: optional persistence protocol (InMemoryBehaviorStore provided)
- BehaviorCache: LRU cache with per-user compute locks
"""

from __future__ import annotations

import logging
import threading
from collections import Counter, OrderedDict
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from .models import (
    EPOCH,
    EngagementPattern,
    FatigueIndicators,
    Notification,
    UserBehaviorPattern,
    utc_now,
    within,
)

logger = logging.getLogger(__name__)

FATIGUE_WINDOW = timedelta(hours=24)
HOURS_PER_DAY = 24


# =============================================================================
# Pattern Derivation
# =============================================================================


def analyze_behavior(
    user_id: str,
    history: Sequence[Notification],
    now: datetime | None = None,
) -> UserBehaviorPattern:
    """
    Derive a behavior pattern from notification history.

    Pure: the same history and ``now`` always give the same pattern.

    - Preferred hours: UTC hours seen more often than len(history) / 24.
    - Preferred categories/types: buckets seen more often than the mean
      count per distinct bucket.
    - Engagement: per category, engaged / total and the mean response time
      of engaged items that report one.
    - Fatigue: items created in the last 24 hours, the mean gap between
      consecutive items in the given order, and the latest engagement.

    Args:
        user_id: Owner of the history
        history: Notifications previously shown to the user
        now: Reference time for the fatigue window (default: current time)
    """
    now = now if now is not None else utc_now()
    total = len(history)

    if total == 0:
        return UserBehaviorPattern(user_id=user_id)

    hour_counts = Counter(n.created_at.hour for n in history)
    hour_threshold = total / HOURS_PER_DAY
    preferred_hours = tuple(sorted(h for h, c in hour_counts.items() if c > hour_threshold))

    category_counts = Counter(n.category for n in history)
    type_counts = Counter(n.type for n in history)

    return UserBehaviorPattern(
        user_id=user_id,
        preferred_hours=preferred_hours,
        preferred_categories=_above_average(category_counts),
        preferred_types=_above_average(type_counts),
        engagement_patterns=_engagement_patterns(history),
        fatigue=_fatigue(history, now),
    )


def _above_average(counts: Counter) -> tuple[Any, ...]:
    average = sum(counts.values()) / len(counts)
    return tuple(sorted((k for k, c in counts.items() if c > average), key=lambda k: k.value))


def _engagement_patterns(history: Sequence[Notification]) -> tuple[EngagementPattern, ...]:
    by_category: dict[Any, list[Notification]] = {}
    for notification in history:
        by_category.setdefault(notification.category, []).append(notification)

    patterns = []
    for category in sorted(by_category, key=lambda c: c.value):
        items = by_category[category]
        engaged = [n for n in items if n.metadata.user_engaged]
        response_times = [
            n.metadata.response_time_ms for n in engaged if n.metadata.response_time_ms is not None
        ]
        patterns.append(
            EngagementPattern(
                category=category,
                engagement_rate=len(engaged) / len(items),
                average_response_time_ms=(
                    sum(response_times) / len(response_times) if response_times else 0.0
                ),
            )
        )
    return tuple(patterns)


def _fatigue(history: Sequence[Notification], now: datetime) -> FatigueIndicators:
    recent = sum(1 for n in history if within(n.created_at, now, FATIGUE_WINDOW))

    gaps = [
        abs((later.created_at - earlier.created_at).total_seconds())
        for earlier, later in zip(history, history[1:])
    ]
    engaged_at = [n.created_at for n in history if n.metadata.user_engaged]

    return FatigueIndicators(
        recent_notification_count=recent,
        average_seconds_between=sum(gaps) / len(gaps) if gaps else 0.0,
        last_engagement_at=max(engaged_at) if engaged_at else EPOCH,
    )


# =============================================================================
# Persistence
# =============================================================================


@runtime_checkable
class BehaviorStore(Protocol):
    """Optional backing store consulted on cache misses."""

    def load(self, user_id: str) -> UserBehaviorPattern | None:
        ...

    def save(self, user_id: str, pattern: UserBehaviorPattern) -> None:
        ...


class InMemoryBehaviorStore:
    """
    Process-local BehaviorStore.

    Patterns are held in their serialized form, as a persistent store would
    hold them.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def load(self, user_id: str) -> UserBehaviorPattern | None:
        with self._lock:
            data = self._data.get(user_id)
        return UserBehaviorPattern.from_dict(data) if data is not None else None

    def save(self, user_id: str, pattern: UserBehaviorPattern) -> None:
        with self._lock:
            self._data[user_id] = pattern.to_dict()

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._data

    def __len__(self) -> int:
        return len(self._data)


# =============================================================================
# Cache
# =============================================================================


class BehaviorCache:
    """
    Bounded LRU cache of behavior patterns.

    The structural lock only guards map bookkeeping. Computing a missing
    pattern happens under a per-user lock, so concurrent callers for the
    same user compute once and different users never wait on each other.
    """

    def __init__(self, capacity: int = 1024) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._entries: OrderedDict[str, UserBehaviorPattern] = OrderedDict()
        self._key_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> UserBehaviorPattern | None:
        """Return the cached pattern and mark it most recently used."""
        with self._lock:
            pattern = self._entries.get(user_id)
            if pattern is not None:
                self._entries.move_to_end(user_id)
            return pattern

    def get_or_create(
        self,
        user_id: str,
        factory: Callable[[], UserBehaviorPattern],
    ) -> UserBehaviorPattern:
        """
        Return the cached pattern, computing it with ``factory`` on a miss.

        Exceptions from ``factory`` propagate and nothing is cached.
        """
        cached = self.get(user_id)
        if cached is not None:
            return cached

        with self._lock:
            key_lock = self._key_locks.setdefault(user_id, threading.Lock())

        with key_lock:
            # Another caller may have filled the entry while we waited
            cached = self.get(user_id)
            if cached is not None:
                return cached

            pattern = factory()
            self.put(user_id, pattern)
            return pattern

    def put(self, user_id: str, pattern: UserBehaviorPattern) -> None:
        with self._lock:
            self._entries[user_id] = pattern
            self._entries.move_to_end(user_id)
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                self._key_locks.pop(evicted, None)
                logger.debug(f"Evicted behavior pattern for {evicted}")

    def clear(self, user_id: str | None = None) -> None:
        """Drop one user's pattern, or every pattern when user_id is None."""
        with self._lock:
            if user_id is None:
                self._entries.clear()
                self._key_locks.clear()
            else:
                self._entries.pop(user_id, None)
                self._key_locks.pop(user_id, None)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
