"""
Relevance Predictors.

A RelevancePredictor scores a single notification in [0, 1]. Predictors
raise PredictionError for per-item failures; callers include the affected
notification instead of dropping it.

Implementations:
- PassThroughPredictor: always 1.0 (explicit "no model" choice)
- IntrinsicRelevancePredictor: static priority/category/type weighting
- ContextScorePredictor: delegates to ContextScorer relevance
- HttpRelevancePredictor: remote model over HTTP
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx

from .errors import PredictionError
from .models import (
    PRIORITY_ORDER,
    ContextSnapshot,
    Notification,
    NotificationCategory,
    NotificationType,
)

if TYPE_CHECKING:
    from .scoring import ContextScorer

logger = logging.getLogger(__name__)


@runtime_checkable
class RelevancePredictor(Protocol):
    """Scores how relevant a notification is for the given context."""

    def predict(self, notification: Notification, context: ContextSnapshot) -> float:
        """
        Predict relevance.

        Returns:
            Score in [0, 1]

        Raises:
            PredictionError: If this notification cannot be scored
        """
        ...


@runtime_checkable
class AdaptivePredictor(Protocol):
    """Predictor that accepts online-learning updates."""

    def predict(self, notification: Notification, context: ContextSnapshot) -> float:
        ...

    def update(self, notifications: Sequence[Notification], context: ContextSnapshot) -> None:
        ...


def clamp_score(value: Any) -> float:
    """
    Validate and clamp a predictor output.

    Raises:
        PredictionError: If the value is not a finite number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PredictionError(f"Predictor returned non-numeric score {value!r}")
    if math.isnan(value) or math.isinf(value):
        raise PredictionError(f"Predictor returned non-finite score {value!r}")
    return max(0.0, min(1.0, float(value)))


class PassThroughPredictor:
    """Predictor used when no model is configured; keeps everything."""

    def predict(self, notification: Notification, context: ContextSnapshot) -> float:
        return 1.0


class IntrinsicRelevancePredictor:
    """
    Static relevance from the notification's own attributes.

    Score = priority share * 0.4 + category weight * 0.3 + type weight * 0.2
    + context match * 0.1, clamped to [0, 1].
    """

    CATEGORY_WEIGHTS: dict[NotificationCategory, float] = {
        NotificationCategory.WORKFLOW: 1.0,
        NotificationCategory.SYSTEM: 0.9,
        NotificationCategory.PERFORMANCE: 0.8,
        NotificationCategory.SECURITY: 0.95,
        NotificationCategory.USER: 0.6,
        NotificationCategory.BUSINESS: 0.7,
    }

    TYPE_WEIGHTS: dict[NotificationType, float] = {
        NotificationType.ERROR: 1.0,
        NotificationType.WARNING: 0.8,
        NotificationType.INFO: 0.6,
        NotificationType.SUCCESS: 0.7,
    }

    PRIORITY_SHARE = 0.4
    CATEGORY_SHARE = 0.3
    TYPE_SHARE = 0.2
    CONTEXT_SHARE = 0.1

    def predict(self, notification: Notification, context: ContextSnapshot) -> float:
        levels = len(PRIORITY_ORDER)
        score = (levels - notification.rank) / levels * self.PRIORITY_SHARE
        score += self.CATEGORY_WEIGHTS[notification.category] * self.CATEGORY_SHARE
        score += self.TYPE_WEIGHTS[notification.type] * self.TYPE_SHARE
        score += self._context_match(notification, context) * self.CONTEXT_SHARE
        return min(score, 1.0)

    @staticmethod
    def _context_match(notification: Notification, context: ContextSnapshot | None) -> float:
        if context is None:
            return 0.0
        score = 0.0
        if context.workflow and notification.metadata.workflow_id:
            score += 0.5
        if context.role and notification.category == NotificationCategory.USER:
            score += 0.3
        if context.system and notification.category == NotificationCategory.SYSTEM:
            score += 0.4
        return min(score, 1.0)


class ContextScorePredictor:
    """Uses ContextScorer relevance as the prediction."""

    def __init__(self, scorer: ContextScorer) -> None:
        self._scorer = scorer

    def predict(self, notification: Notification, context: ContextSnapshot) -> float:
        return self._scorer.score(notification, context).relevance


class HttpRelevancePredictor:
    """
    Remote relevance model reached over HTTP.

    POSTs ``{"notification": ..., "context": ...}`` to ``url`` and reads a
    ``{"score": float}`` response. Transport errors, HTTP error statuses and
    malformed bodies are reported as PredictionError.

    Usage:
        with HttpRelevancePredictor("http://model:8080/predict") as predictor:
            pipeline = FilterPipeline(config, predictor=predictor)
    """

    def __init__(
        self,
        url: str,
        timeout: float = 2.0,
        headers: dict[str, str] | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, headers=headers)

    def predict(self, notification: Notification, context: ContextSnapshot) -> float:
        payload = {
            "notification": notification.to_dict(),
            "context": _context_payload(context),
        }
        try:
            response = self._client.post(self.url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise PredictionError(f"Remote predictor request failed for {notification.id}: {e}") from e
        except ValueError as e:
            raise PredictionError(f"Remote predictor returned invalid JSON for {notification.id}") from e

        if not isinstance(body, dict) or "score" not in body:
            raise PredictionError(f"Remote predictor response missing 'score' for {notification.id}")
        return clamp_score(body["score"])

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpRelevancePredictor:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def _context_payload(context: ContextSnapshot) -> dict[str, Any]:
    """Compact, JSON-safe view of the context sent to remote models."""
    payload: dict[str, Any] = {}
    if context.user_session:
        payload["userSession"] = {
            "userId": context.user_session.user_id,
            "role": context.user_session.role,
            "permissions": list(context.user_session.permissions),
        }
    if context.workflow:
        payload["workflow"] = {
            "workflowId": context.workflow.workflow_id,
            "phase": context.workflow.phase,
            "status": context.workflow.status,
            "progress": context.workflow.progress,
        }
    if context.system:
        payload["system"] = {
            "status": context.system.status.value,
            "load": context.system.load,
            "memoryUsage": context.system.memory_usage,
            "errorRate": context.system.error_rate,
        }
    if context.time:
        payload["time"] = {
            "hour": context.time.hour,
            "dayOfWeek": context.time.day_of_week,
            "isBusinessHours": context.time.is_business_hours,
            "isWeekend": context.time.is_weekend,
        }
    return payload


def create_predictor_from_settings() -> RelevancePredictor | None:
    """Build an HTTP predictor when NOTIFY_PREDICTOR_URL is configured."""
    from .core.config import get_settings

    settings = get_settings()
    if not settings.predictor_url:
        return None
    logger.info(f"Using remote relevance predictor at {settings.predictor_url}")
    return HttpRelevancePredictor(settings.predictor_url, timeout=settings.predictor_timeout_seconds)
