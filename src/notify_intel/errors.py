"""
Error taxonomy for the notification filtering engine.

Only ConfigurationError and InvalidNotificationError ever reach callers.
StageFailure and PredictionError are raised and handled inside the pipeline.
"""

from __future__ import annotations


class NotifyError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(NotifyError):
    """
    Invalid construction parameters.

    Raised once at construction time with every validation message collected.
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Invalid filter configuration: " + "; ".join(self.errors))


class InvalidNotificationError(NotifyError):
    """A notification or context record failed ingress validation."""


class PredictionError(NotifyError):
    """
    A relevance predictor could not score a single notification.

    The pipeline includes the affected notification rather than dropping it.
    """


class StageFailure(NotifyError):
    """A pipeline stage raised while filtering a batch."""

    def __init__(self, stage: str, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Stage '{stage}' failed: {cause!r}")
