"""Workflow phase dimension."""

from __future__ import annotations

from datetime import datetime

from ..models import ContextSnapshot, Notification, NotificationType
from .base import DimensionScorer

# Workflow status paired with the notification type it makes relevant
STATUS_AFFINITY: dict[tuple[str, NotificationType], float] = {
    ("running", NotificationType.INFO): 0.6,
    ("failed", NotificationType.ERROR): 0.8,
    ("completed", NotificationType.SUCCESS): 0.7,
}


class WorkflowPhaseScorer(DimensionScorer):
    """Workflow id/phase match, status affinity and progress."""

    _name = "workflow_phase"

    def raw_score(self, notification: Notification, context: ContextSnapshot, now: datetime) -> float:
        workflow = context.workflow
        if workflow is None:
            return 0.0

        metadata = notification.metadata
        score = 0.0
        if metadata.workflow_id is not None and metadata.workflow_id == workflow.workflow_id:
            score += 0.9
        if metadata.phase is not None and metadata.phase == workflow.phase:
            score += 0.7

        score += STATUS_AFFINITY.get((workflow.status, notification.type), 0.0)

        if workflow.progress > 0.8 and notification.type == NotificationType.SUCCESS:
            score += 0.5
        elif workflow.progress < 0.2 and notification.type == NotificationType.WARNING:
            score += 0.4

        return score
