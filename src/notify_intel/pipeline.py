"""
Filter Pipeline - Main Orchestrator.

Runs a batch of candidate notifications through the filtering stages:

1. rules       - criteria derived from context + user preferences
2. context     - context relevance floor
3. prediction  - optional relevance predictor (thread pool)
4. behavior    - per-user behavior pattern and fatigue gate
5. rate_limit  - hourly volume cap
6. explain     - explanations and recommendations

A failure in stages 1-5 falls back to the rule stage alone on the original
batch. The pipeline never raises for internal failures.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from .behavior import BehaviorCache, BehaviorStore, analyze_behavior
from .config import FilterConfig, load_filter_config
from .errors import PredictionError, StageFailure
from .explain import build_explanations, build_recommendations
from .models import (
    DEFAULT_USER_PREFERENCES,
    ContextSnapshot,
    FilterCriteria,
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
    PipelineResult,
    PipelineStatistics,
    TimeRange,
    UserBehaviorPattern,
    UserPreferences,
    priority_rank,
    sort_by_priority,
    utc_now,
)
from .predictors import AdaptivePredictor, RelevancePredictor, clamp_score
from .rule_filter import RuleFilter
from .scoring import ContextScorer

logger = logging.getLogger(__name__)

STAGE_RULES = "rules"
STAGE_CONTEXT = "context"
STAGE_PREDICTION = "prediction"
STAGE_BEHAVIOR = "behavior"
STAGE_RATE_LIMIT = "rate_limit"
STAGE_EXPLAIN = "explain"

FALLBACK_CONFIDENCE = 0.5
FALLBACK_RECOMMENDATION = "ML filtering unavailable - using basic filtering"

# How often a waiting prediction stage checks the cancel event
CANCEL_POLL_SECONDS = 0.05

FATIGUE_BYPASS_RANK = priority_rank(NotificationPriority.HIGH)


class FilterInterrupted(Exception):
    """Raised between stages when the caller cancels or the deadline passes."""


@dataclass
class _BatchState:
    """Mutable working state for one filter() call."""

    original: list[Notification]
    context: ContextSnapshot
    preferences: UserPreferences | None
    working: list[Notification] = field(default_factory=list)
    reasons: dict[str, list[str]] = field(default_factory=dict)
    relevance: dict[str, float] = field(default_factory=dict)
    pattern: UserBehaviorPattern | None = None
    completed_stage: str | None = None
    deadline: float | None = None
    cancel_event: threading.Event | None = None

    def keep(self, kept: list[Notification], removed_reason: Callable[[Notification], list[str]]) -> None:
        """Replace the working set, recording reasons for removed items."""
        kept_ids = {n.id for n in kept}
        for notification in self.working:
            if notification.id not in kept_ids:
                self.reasons.setdefault(notification.id, []).extend(removed_reason(notification))
        self.working = kept


class FilterPipeline:
    """
    Multi-stage notification filter.

    Usage:
        pipeline = FilterPipeline(FilterConfig(max_notifications_per_hour=20))
        result = pipeline.filter(notifications, context)
        for notification in result.notifications:
            deliver(notification)

    Only the behavior cache is mutable; filter() may be called from several
    threads at once.
    """

    def __init__(
        self,
        config: FilterConfig | None = None,
        predictor: RelevancePredictor | None = None,
        behavior_store: BehaviorStore | None = None,
        rule_filter: RuleFilter | None = None,
        scorer: ContextScorer | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the pipeline.

        Raises:
            ConfigurationError: If the configuration does not validate
        """
        self.config = config or FilterConfig()
        self.config.ensure_valid()

        self._clock = clock
        self.predictor = predictor
        self.behavior_store = behavior_store
        self.rule_filter = rule_filter or RuleFilter(
            relevance_floor=self.config.relevance_floor, clock=clock
        )
        self.scorer = scorer or ContextScorer(self.config.relevance_weights, clock=clock)
        self._behavior_cache = BehaviorCache(self.config.behavior_cache_size)

    @classmethod
    def from_file(cls, path: Path | str, **kwargs: Any) -> FilterPipeline:
        """Create a pipeline from a YAML configuration file."""
        return cls(load_filter_config(path), **kwargs)

    # =========================================================================
    # Filtering
    # =========================================================================

    def filter(
        self,
        notifications: Iterable[Notification | dict[str, Any]],
        context: ContextSnapshot | dict[str, Any] | None = None,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PipelineResult:
        """
        Filter a batch of notifications.

        Args:
            notifications: Notifications or raw notification mappings
            context: Context snapshot or raw mapping (None = empty snapshot)
            timeout: Overall budget in seconds, checked between stages and
                while predictions are pending
            cancel_event: Set by the caller to stop after the current stage

        Returns:
            PipelineResult; ``degraded`` is set for fallback or interrupted runs

        Raises:
            InvalidNotificationError: If a raw mapping fails validation
        """
        batch = [n if isinstance(n, Notification) else Notification.from_dict(n) for n in notifications]
        if not isinstance(context, ContextSnapshot):
            context = ContextSnapshot.from_dict(context)

        state = _BatchState(
            original=batch,
            context=context,
            preferences=self._effective_preferences(context),
            working=list(batch),
            deadline=time.monotonic() + timeout if timeout is not None else None,
            cancel_event=cancel_event,
        )

        stages: list[tuple[str, Callable[[_BatchState], None]]] = [
            (STAGE_RULES, self._run_rules),
            (STAGE_CONTEXT, self._run_context),
            (STAGE_PREDICTION, self._run_prediction),
            (STAGE_BEHAVIOR, self._run_behavior),
            (STAGE_RATE_LIMIT, self._run_rate_limit),
        ]

        try:
            for name, stage in stages:
                try:
                    stage(state)
                except Exception as e:
                    raise StageFailure(name, e) from e
                state.completed_stage = name
                self._check_interrupt(state.cancel_event, state.deadline)
        except StageFailure as failure:
            logger.error(f"Filter pipeline failed, falling back to rule filtering: {failure}")
            return self._fallback(batch, context, state.preferences)
        except FilterInterrupted:
            logger.warning(f"Filtering interrupted after {state.completed_stage} stage")
            return self._partial_result(state)

        result = self._finish(state)
        logger.info(
            f"Filtered {result.statistics.total} notifications: "
            f"{result.statistics.filtered} delivered"
        )
        return result

    @staticmethod
    def _check_interrupt(cancel_event: threading.Event | None, deadline: float | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise FilterInterrupted()
        if deadline is not None and time.monotonic() >= deadline:
            raise FilterInterrupted()

    def _effective_preferences(self, context: ContextSnapshot) -> UserPreferences | None:
        if context.preferences is not None:
            return context.preferences
        if context.user_session is not None:
            return DEFAULT_USER_PREFERENCES
        return None

    # =========================================================================
    # Stages
    # =========================================================================

    def derive_criteria(
        self,
        context: ContextSnapshot,
        preferences: UserPreferences | None = None,
    ) -> FilterCriteria:
        """
        Build rule-filter criteria for a context snapshot.

        Critical/high priorities, error/warning types and the workflow,
        system, security and user categories are always allowed; business
        hours and the session role widen the sets.
        """
        business_hours = bool(context.time and context.time.is_business_hours)
        role = context.role

        priorities = [NotificationPriority.CRITICAL, NotificationPriority.HIGH]
        if business_hours:
            priorities.append(NotificationPriority.MEDIUM)
        if role == "admin":
            priorities.append(NotificationPriority.LOW)

        categories = [
            NotificationCategory.WORKFLOW,
            NotificationCategory.SYSTEM,
            NotificationCategory.SECURITY,
            NotificationCategory.USER,
        ]
        if role == "admin":
            categories.append(NotificationCategory.PERFORMANCE)
        if role == "manager":
            categories.append(NotificationCategory.BUSINESS)

        types = [NotificationType.ERROR, NotificationType.WARNING]
        if business_hours:
            types.extend([NotificationType.INFO, NotificationType.SUCCESS])

        time_range = None
        if self.config.max_notification_age_hours is not None:
            now = self._clock()
            time_range = TimeRange(
                start=now - timedelta(hours=self.config.max_notification_age_hours),
                end=now,
            )

        return FilterCriteria(
            priorities=priorities,
            categories=categories,
            types=types,
            keywords=list(self.config.required_keywords) or None,
            time_range=time_range,
            user_preferences=preferences,
        )

    def _run_rules(self, state: _BatchState) -> None:
        criteria = self.derive_criteria(state.context, state.preferences)
        result = self.rule_filter.filter(state.working, criteria, state.context)
        for notification_id, reasons in result.exclusion_reasons.items():
            state.reasons.setdefault(notification_id, []).extend(reasons)
        state.working = result.included

    def _run_context(self, state: _BatchState) -> None:
        if not self.config.enable_context_filtering:
            return

        threshold = self.config.min_confidence_threshold
        for notification in state.working:
            state.relevance[notification.id] = self.scorer.score(notification, state.context).relevance

        state.keep(
            [n for n in state.working if state.relevance[n.id] >= threshold],
            lambda n: [
                f"Context relevance {state.relevance[n.id]:.2f} below threshold {threshold:.2f}"
            ],
        )

    def _run_prediction(self, state: _BatchState) -> None:
        if not self.config.enable_ml_filtering or not state.working:
            return

        # Batch confidence is the mean context relevance of what survives
        for notification in state.working:
            if notification.id not in state.relevance:
                state.relevance[notification.id] = self.scorer.score(
                    notification, state.context
                ).relevance

        predictor = self.predictor
        if predictor is None:
            logger.debug("No relevance predictor configured, passing all notifications")
            return

        threshold = self.config.min_confidence_threshold
        scores = self._predict_all(
            predictor, state.working, state.context, state.deadline, state.cancel_event
        )
        state.keep(
            [n for n, s in zip(state.working, scores) if s is None or s >= threshold],
            lambda n: ["Low relevance score from ML analysis"],
        )

    def _predict_all(
        self,
        predictor: RelevancePredictor,
        notifications: Sequence[Notification],
        context: ContextSnapshot,
        deadline: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[float | None]:
        """
        Score notifications on a thread pool, preserving input order.

        All predictions share one budget of ``predictor_timeout_seconds``
        counted from submission, cut short by the caller's deadline or
        cancel event. None marks an item whose prediction failed or did not
        finish in time. Any other exception from the predictor propagates.
        """
        timeout = self.config.predictor_timeout_seconds
        stage_deadline = time.monotonic() + timeout
        if deadline is not None:
            stage_deadline = min(stage_deadline, deadline)
        workers = min(self.config.prediction_workers, len(notifications))

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notify-predict")
        try:
            futures = {
                executor.submit(predictor.predict, n, context): index
                for index, n in enumerate(notifications)
            }
            scores: list[float | None] = [None] * len(notifications)
            pending = set(futures)

            while pending:
                remaining = stage_deadline - time.monotonic()
                if remaining <= 0 or (cancel_event is not None and cancel_event.is_set()):
                    break
                if cancel_event is not None:
                    remaining = min(remaining, CANCEL_POLL_SECONDS)
                done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
                for future in done:
                    notification = notifications[futures[future]]
                    try:
                        scores[futures[future]] = clamp_score(future.result())
                    except PredictionError as e:
                        logger.warning(f"Prediction for {notification.id} failed, including it: {e}")

            if pending:
                for future in pending:
                    future.cancel()
                logger.warning(
                    f"{len(pending)} of {len(notifications)} predictions unfinished "
                    f"after {timeout}s budget, including them"
                )
            return scores
        finally:
            # Unfinished calls keep running; do not wait for them
            executor.shutdown(wait=False, cancel_futures=True)

    def _run_behavior(self, state: _BatchState) -> None:
        if not self.config.enable_behavior_analysis or state.context.user_session is None:
            return

        pattern = self.get_behavior_pattern(state.context)
        state.pattern = pattern
        if pattern is None:
            return

        fatigued = pattern.fatigue.recent_notification_count > self.config.max_notifications_per_hour
        if fatigued:
            logger.info(
                f"User {pattern.user_id} shows notification fatigue "
                f"({pattern.fatigue.recent_notification_count} in 24h), delivering critical/high only"
            )

        kept = []
        removed: dict[str, str] = {}
        for notification in state.working:
            if pattern.preferred_categories and notification.category not in pattern.preferred_categories:
                removed[notification.id] = "User has low engagement with this category"
            elif pattern.preferred_types and notification.type not in pattern.preferred_types:
                removed[notification.id] = (
                    f"Type '{notification.type.value}' is not among the user's preferred types"
                )
            elif fatigued and notification.rank > FATIGUE_BYPASS_RANK:
                removed[notification.id] = (
                    "User notification fatigue - only critical and high priority delivered"
                )
            else:
                kept.append(notification)

        state.keep(kept, lambda n: [removed[n.id]])

    def get_behavior_pattern(self, context: ContextSnapshot) -> UserBehaviorPattern | None:
        """
        Cached behavior pattern for the session user.

        Cache miss order: behavior store, then analysis of the context's
        recent notifications (saved back to the store).
        """
        user_id = context.user_id
        if user_id is None:
            return None

        def compute() -> UserBehaviorPattern:
            if self.behavior_store is not None:
                stored = self.behavior_store.load(user_id)
                if stored is not None:
                    return stored
            history = context.history.recent_notifications if context.history else ()
            pattern = analyze_behavior(user_id, history, self._clock())
            if self.behavior_store is not None:
                self.behavior_store.save(user_id, pattern)
            logger.debug(f"Computed behavior pattern for {user_id} from {len(history)} notifications")
            return pattern

        return self._behavior_cache.get_or_create(user_id, compute)

    def _run_rate_limit(self, state: _BatchState) -> None:
        limit = self.config.max_notifications_per_hour
        if state.preferences is not None and state.preferences.max_notifications_per_hour is not None:
            limit = min(limit, state.preferences.max_notifications_per_hour)

        state.keep(
            self.rule_filter.apply_rate_limit(state.working, limit),
            lambda n: [f"Rate limit of {limit} notifications per hour exceeded"],
        )

    # =========================================================================
    # Results
    # =========================================================================

    def _finish(self, state: _BatchState) -> PipelineResult:
        """Run the explain stage and assemble the final result."""
        explanations: dict[str, list[str]] = {}
        recommendations: list[str] = []

        try:
            explanations = build_explanations(
                state.original, state.working, state.reasons, state.context
            )
        except Exception as e:
            logger.error(f"Explanation generation failed: {e}", exc_info=True)
        try:
            recommendations = build_recommendations(state.working, state.context, state.pattern)
        except Exception as e:
            logger.error(f"Recommendation generation failed: {e}", exc_info=True)

        return PipelineResult(
            notifications=state.working,
            statistics=self._statistics(state),
            explanations=explanations,
            recommendations=recommendations,
            completed_stage=STAGE_EXPLAIN,
        )

    def _statistics(self, state: _BatchState) -> PipelineStatistics:
        total = len(state.original)
        filtered = len(state.working)

        confidence = 1.0
        if self.config.enable_ml_filtering and state.working:
            # Relevance is recorded by the prediction stage; runs interrupted
            # before it have nothing to average
            scores = [state.relevance[n.id] for n in state.working if n.id in state.relevance]
            confidence = sum(scores) / len(scores) if scores else FALLBACK_CONFIDENCE

        return PipelineStatistics(
            total=total,
            filtered=filtered,
            inclusion_rate=filtered / total if total else 0.0,
            ml_confidence=confidence,
        )

    def _partial_result(self, state: _BatchState) -> PipelineResult:
        delivered_ids = {n.id for n in state.working}
        return PipelineResult(
            notifications=list(state.working),
            statistics=self._statistics(state),
            explanations={
                notification_id: list(reasons)
                for notification_id, reasons in state.reasons.items()
                if notification_id not in delivered_ids
            },
            recommendations=[
                f"Filtering interrupted after {state.completed_stage} stage - returning partial result"
            ],
            degraded=True,
            completed_stage=state.completed_stage,
        )

    def _fallback(
        self,
        batch: list[Notification],
        context: ContextSnapshot,
        preferences: UserPreferences | None,
    ) -> PipelineResult:
        """Rule-only filtering of the original batch after a stage failure."""
        total = len(batch)
        try:
            criteria = self.derive_criteria(context, preferences)
            result = self.rule_filter.filter(batch, criteria, context)
        except Exception as e:
            logger.error(f"Fallback rule filtering failed, delivering full batch: {e}", exc_info=True)
            return PipelineResult(
                notifications=sort_by_priority(batch),
                statistics=PipelineStatistics(
                    total=total,
                    filtered=total,
                    inclusion_rate=1.0 if total else 0.0,
                    ml_confidence=FALLBACK_CONFIDENCE,
                ),
                recommendations=[FALLBACK_RECOMMENDATION],
                degraded=True,
            )

        filtered = len(result.included)
        return PipelineResult(
            notifications=result.included,
            statistics=PipelineStatistics(
                total=total,
                filtered=filtered,
                inclusion_rate=filtered / total if total else 0.0,
                ml_confidence=FALLBACK_CONFIDENCE,
            ),
            explanations={k: list(v) for k, v in result.exclusion_reasons.items()},
            recommendations=[FALLBACK_RECOMMENDATION],
            degraded=True,
            completed_stage=STAGE_RULES,
        )

    # =========================================================================
    # Model and Cache Management
    # =========================================================================

    def update_model(
        self,
        notifications: Sequence[Notification],
        context: ContextSnapshot,
    ) -> bool:
        """
        Forward feedback to an adaptive predictor.

        Returns:
            True if the predictor received the update
        """
        if not (self.config.enable_ml_filtering and self.config.enable_adaptive_filtering):
            logger.debug("Adaptive filtering disabled, ignoring model update")
            return False
        if not isinstance(self.predictor, AdaptivePredictor):
            logger.debug("Configured predictor does not support updates")
            return False

        self.predictor.update(notifications, context)
        return True

    def clear_behavior_cache(self, user_id: str | None = None) -> None:
        """Invalidate one user's cached behavior pattern, or all of them."""
        self._behavior_cache.clear(user_id)

    @property
    def behavior_cache_size(self) -> int:
        """Number of cached behavior patterns."""
        return len(self._behavior_cache)


def create_pipeline(config_dict: dict[str, Any] | None = None, **kwargs: Any) -> FilterPipeline:
    """
    Create a pipeline from a config mapping or the environment.

    With no mapping, NOTIFY_CONFIG_FILE is loaded when set. With no
    explicit predictor, NOTIFY_PREDICTOR_URL selects a remote predictor.
    """
    from .core.config import get_settings
    from .predictors import create_predictor_from_settings

    settings = get_settings()
    if config_dict is not None:
        config = FilterConfig.from_dict(config_dict)
    elif settings.config_file is not None:
        config = load_filter_config(settings.config_file)
    else:
        config = FilterConfig()

    if "predictor" not in kwargs:
        kwargs["predictor"] = create_predictor_from_settings()

    return FilterPipeline(config, **kwargs)
