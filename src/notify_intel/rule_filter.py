"""
Rule-Based Notification Filter.

Deterministic first stage of the pipeline. Applies explicit criteria and
user preferences, then a relevance/duplicate/spam gate.

Every failing criterion contributes a reason so callers can see the full
picture for an excluded notification. The preference rules and the gate
each stop at their first failing check.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from .detectors import DuplicateDetector, NoDuplicateDetector, PhraseSpamDetector, SpamDetector
from .errors import PredictionError
from .models import (
    ContextSnapshot,
    FilterCriteria,
    FilterResult,
    FilterStatistics,
    Notification,
    NotificationPriority,
    UserPreferences,
    priority_rank,
    sort_by_priority,
    utc_now,
    within,
)
from .predictors import IntrinsicRelevancePredictor, RelevancePredictor
from .quiet_hours import QuietHoursChecker

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW = timedelta(hours=1)


class RuleFilter:
    """
    Stateless rule filter.

    Args:
        relevance_predictor: Scores the gate's relevance check
        duplicate_detector: Gate duplicate strategy (default: never duplicate)
        spam_detector: Gate spam strategy (default: phrase-count heuristic)
        relevance_floor: Gate excludes scores strictly below this
        clock: Returns "now" for rate limiting
    """

    def __init__(
        self,
        relevance_predictor: RelevancePredictor | None = None,
        duplicate_detector: DuplicateDetector | None = None,
        spam_detector: SpamDetector | None = None,
        relevance_floor: float = 0.3,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.relevance_predictor = relevance_predictor or IntrinsicRelevancePredictor()
        self.duplicate_detector = duplicate_detector or NoDuplicateDetector()
        self.spam_detector = spam_detector or PhraseSpamDetector()
        self.relevance_floor = relevance_floor
        self._clock = clock

    def filter(
        self,
        notifications: Sequence[Notification],
        criteria: FilterCriteria,
        context: ContextSnapshot | None = None,
    ) -> FilterResult:
        """
        Partition notifications by the given criteria.

        Returns:
            FilterResult whose included and excluded lists keep input order
        """
        context = context or ContextSnapshot()
        result = FilterResult()
        prefs = criteria.user_preferences
        quiet_hours = (
            QuietHoursChecker(prefs.quiet_hours)
            if prefs is not None and prefs.quiet_hours is not None
            else None
        )

        for notification in notifications:
            reasons = self._evaluate(notification, criteria, context, quiet_hours)
            if reasons:
                result.excluded.append(notification)
                result.exclusion_reasons[notification.id] = reasons
            else:
                result.included.append(notification)

        total = len(notifications)
        result.statistics = FilterStatistics(
            total=total,
            included=len(result.included),
            excluded=len(result.excluded),
            inclusion_rate=len(result.included) / total if total else 0.0,
        )
        logger.debug(
            f"Rule filter kept {result.statistics.included}/{total} notifications"
        )
        return result

    def _evaluate(
        self,
        notification: Notification,
        criteria: FilterCriteria,
        context: ContextSnapshot,
        quiet_hours: QuietHoursChecker | None = None,
    ) -> list[str]:
        reasons: list[str] = []

        if criteria.priorities is not None and notification.priority not in criteria.priorities:
            reasons.append(f"Priority '{notification.priority.value}' not in allowed priorities")

        if criteria.categories is not None and notification.category not in criteria.categories:
            reasons.append(f"Category '{notification.category.value}' not in allowed categories")

        if criteria.types is not None and notification.type not in criteria.types:
            reasons.append(f"Type '{notification.type.value}' not in allowed types")

        if criteria.keywords and not _matches_any(notification, criteria.keywords):
            reasons.append("Does not match required keywords")

        if criteria.time_range is not None and not criteria.time_range.contains(notification.created_at):
            reasons.append("Outside time range")

        if criteria.user_preferences is not None:
            reason = self._check_preferences(notification, criteria.user_preferences, quiet_hours)
            if reason:
                reasons.append(reason)

        reason = self._check_gate(notification, context)
        if reason:
            reasons.append(reason)

        return reasons

    def _check_preferences(
        self,
        notification: Notification,
        prefs: UserPreferences,
        quiet_hours: QuietHoursChecker | None = None,
    ) -> str | None:
        """Return the first failing preference rule, or None."""
        category = notification.category

        if not prefs.category_enabled(category):
            return f"Category '{category.value}' disabled by user"

        if not prefs.type_enabled(notification.type):
            return f"Type '{notification.type.value}' disabled by user"

        threshold = prefs.priority_thresholds.get(category)
        if threshold is not None and notification.rank > priority_rank(threshold):
            return (
                f"Priority '{notification.priority.value}' below threshold "
                f"'{threshold.value}' for category '{category.value}'"
            )

        if _matches_any(notification, prefs.always_exclude_keywords):
            return "Matches always-exclude keywords"

        if (
            quiet_hours is not None
            and quiet_hours.is_quiet_time(notification.created_at)
            and not _matches_any(notification, prefs.always_include_keywords)
        ):
            return "Notification created during quiet hours"

        return None

    def _check_gate(self, notification: Notification, context: ContextSnapshot) -> str | None:
        """Return the first failing gate check, or None."""
        try:
            relevance = self.relevance_predictor.predict(notification, context)
        except PredictionError as e:
            logger.warning(f"Relevance gate could not score {notification.id}: {e}")
        else:
            if relevance < self.relevance_floor:
                return "Low relevance score from ML analysis"

        if self.duplicate_detector.is_duplicate(notification):
            return "Detected as duplicate notification"

        if self.spam_detector.is_spam(notification):
            return "Detected as spam notification"

        return None

    @staticmethod
    def filter_by_priority(
        notifications: Sequence[Notification],
        max_priority: NotificationPriority,
    ) -> list[Notification]:
        """Keep notifications at least as important as ``max_priority``."""
        limit = priority_rank(max_priority)
        return [n for n in notifications if n.rank <= limit]

    def apply_rate_limit(
        self,
        notifications: Sequence[Notification],
        max_per_hour: int,
    ) -> list[Notification]:
        """
        Cap delivery volume.

        Sorts by (priority rank, created_at). When no more than
        ``max_per_hour`` items were created within the last hour the whole
        sorted list is returned, otherwise only its first ``max_per_hour``
        items. The input sequence is not modified.
        """
        ordered = sort_by_priority(list(notifications))
        now = self._clock()
        recent = sum(1 for n in ordered if within(n.created_at, now, RATE_LIMIT_WINDOW))

        if recent <= max_per_hour:
            return ordered

        logger.info(
            f"Rate limit reached: {recent} notifications in the last hour, keeping {max_per_hour}"
        )
        return ordered[:max_per_hour]


def _matches_any(notification: Notification, keywords: Sequence[str]) -> bool:
    if not keywords:
        return False
    text = notification.text
    return any(k.lower() in text for k in keywords)
