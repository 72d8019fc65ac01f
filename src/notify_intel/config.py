"""
Filter Pipeline Configuration.

Handles parsing and validation of the construction-time configuration of
the filter pipeline. Configuration can be built directly, from a mapping,
or from a YAML file:

    config = FilterConfig(max_notifications_per_hour=20)
    config = FilterConfig.from_dict({"maxNotificationsPerHour": 20})
    config = load_filter_config(Path("filter.yaml"))

Validation returns a list of messages; the pipeline raises
ConfigurationError at construction if any are present.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

# Relevance dimension weights
DEFAULT_RELEVANCE_WEIGHTS = {
    "user_role": 0.30,
    "workflow_phase": 0.25,
    "system_status": 0.20,
    "time_context": 0.15,
    "historical_patterns": 0.10,
}

# Confidence floor for context and prediction stages
DEFAULT_MIN_CONFIDENCE = 0.3

# Rule-filter relevance gate floor
DEFAULT_RELEVANCE_FLOOR = 0.3

DEFAULT_MAX_PER_HOUR = 60

WEIGHT_SUM_TOLERANCE = 0.001


@dataclass
class RelevanceWeights:
    """Weights of the five context relevance dimensions."""

    user_role: float = DEFAULT_RELEVANCE_WEIGHTS["user_role"]
    workflow_phase: float = DEFAULT_RELEVANCE_WEIGHTS["workflow_phase"]
    system_status: float = DEFAULT_RELEVANCE_WEIGHTS["system_status"]
    time_context: float = DEFAULT_RELEVANCE_WEIGHTS["time_context"]
    historical_patterns: float = DEFAULT_RELEVANCE_WEIGHTS["historical_patterns"]

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RelevanceWeights:
        """Create from dictionary; unspecified dimensions keep their defaults."""
        if not data:
            return cls()
        aliases = {
            "userRole": "user_role",
            "workflowPhase": "workflow_phase",
            "systemStatus": "system_status",
            "timeContext": "time_context",
            "historicalPatterns": "historical_patterns",
        }
        values = {aliases.get(k, k): v for k, v in data.items()}
        unknown = set(values) - set(DEFAULT_RELEVANCE_WEIGHTS)
        if unknown:
            raise ConfigurationError([f"Unknown relevance dimension(s): {sorted(unknown)}"])
        return cls(**values)

    def to_dict(self) -> dict[str, float]:
        return {
            "user_role": self.user_role,
            "workflow_phase": self.workflow_phase,
            "system_status": self.system_status,
            "time_context": self.time_context,
            "historical_patterns": self.historical_patterns,
        }

    def validate(self) -> list[str]:
        errors = []
        weights = self.to_dict()
        for name, value in weights.items():
            if not isinstance(value, (int, float)) or value < 0:
                errors.append(f"relevance_weights.{name} must be a non-negative number, got {value!r}")
        if not errors:
            total = sum(weights.values())
            if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
                errors.append(f"relevance_weights must sum to 1.0, got {total:.3f}")
        return errors


@dataclass
class FilterConfig:
    """
    Filter pipeline configuration.

    Stage toggles:
    - enable_context_filtering: context relevance stage
    - enable_ml_filtering: prediction stage (needs an injected predictor)
    - enable_behavior_analysis: per-user behavior stage
    - enable_adaptive_filtering: allows update_model() to reach the predictor
    """

    min_confidence_threshold: float = DEFAULT_MIN_CONFIDENCE
    max_notifications_per_hour: int = DEFAULT_MAX_PER_HOUR
    enable_ml_filtering: bool = False
    enable_context_filtering: bool = True
    enable_behavior_analysis: bool = True
    enable_adaptive_filtering: bool = False

    relevance_weights: RelevanceWeights = field(default_factory=RelevanceWeights)
    relevance_floor: float = DEFAULT_RELEVANCE_FLOOR

    predictor_timeout_seconds: float = 2.0
    prediction_workers: int = 4
    behavior_cache_size: int = 1024

    required_keywords: list[str] = field(default_factory=list)
    max_notification_age_hours: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FilterConfig:
        """
        Create from dictionary.

        Accepts snake_case keys and the camelCase spelling used by callers
        (e.g. ``minConfidenceThreshold``).
        """
        if not data:
            return cls()

        def get(key: str, camel: str, default: Any) -> Any:
            if key in data:
                return data[key]
            return data.get(camel, default)

        return cls(
            min_confidence_threshold=get(
                "min_confidence_threshold", "minConfidenceThreshold", DEFAULT_MIN_CONFIDENCE
            ),
            max_notifications_per_hour=get(
                "max_notifications_per_hour", "maxNotificationsPerHour", DEFAULT_MAX_PER_HOUR
            ),
            enable_ml_filtering=get("enable_ml_filtering", "enableMLFiltering", False),
            enable_context_filtering=get("enable_context_filtering", "enableContextFiltering", True),
            enable_behavior_analysis=get("enable_behavior_analysis", "enableBehaviorAnalysis", True),
            enable_adaptive_filtering=get(
                "enable_adaptive_filtering", "enableAdaptiveFiltering", False
            ),
            relevance_weights=RelevanceWeights.from_dict(
                get("relevance_weights", "relevanceWeights", None)
            ),
            relevance_floor=get("relevance_floor", "relevanceFloor", DEFAULT_RELEVANCE_FLOOR),
            predictor_timeout_seconds=get(
                "predictor_timeout_seconds", "predictorTimeoutSeconds", 2.0
            ),
            prediction_workers=get("prediction_workers", "predictionWorkers", 4),
            behavior_cache_size=get("behavior_cache_size", "behaviorCacheSize", 1024),
            required_keywords=list(get("required_keywords", "requiredKeywords", []) or []),
            max_notification_age_hours=get(
                "max_notification_age_hours", "maxNotificationAgeHours", None
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {
            "min_confidence_threshold": self.min_confidence_threshold,
            "max_notifications_per_hour": self.max_notifications_per_hour,
            "enable_ml_filtering": self.enable_ml_filtering,
            "enable_context_filtering": self.enable_context_filtering,
            "enable_behavior_analysis": self.enable_behavior_analysis,
            "enable_adaptive_filtering": self.enable_adaptive_filtering,
            "relevance_weights": self.relevance_weights.to_dict(),
            "relevance_floor": self.relevance_floor,
            "predictor_timeout_seconds": self.predictor_timeout_seconds,
            "prediction_workers": self.prediction_workers,
            "behavior_cache_size": self.behavior_cache_size,
        }
        if self.required_keywords:
            result["required_keywords"] = list(self.required_keywords)
        if self.max_notification_age_hours is not None:
            result["max_notification_age_hours"] = self.max_notification_age_hours
        return result

    def validate(self) -> list[str]:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not _is_number(self.min_confidence_threshold) or not (
            0.0 <= self.min_confidence_threshold <= 1.0
        ):
            errors.append(
                f"min_confidence_threshold must be between 0.0 and 1.0, got {self.min_confidence_threshold!r}"
            )
        if not _is_number(self.relevance_floor) or not (0.0 <= self.relevance_floor <= 1.0):
            errors.append(f"relevance_floor must be between 0.0 and 1.0, got {self.relevance_floor!r}")
        if not isinstance(self.max_notifications_per_hour, int) or isinstance(
            self.max_notifications_per_hour, bool
        ) or self.max_notifications_per_hour < 0:
            errors.append(
                f"max_notifications_per_hour must be a non-negative integer, got {self.max_notifications_per_hour!r}"
            )
        if not _is_number(self.predictor_timeout_seconds) or self.predictor_timeout_seconds <= 0:
            errors.append(
                f"predictor_timeout_seconds must be positive, got {self.predictor_timeout_seconds!r}"
            )
        if not isinstance(self.prediction_workers, int) or self.prediction_workers < 1:
            errors.append(f"prediction_workers must be >= 1, got {self.prediction_workers!r}")
        if not isinstance(self.behavior_cache_size, int) or self.behavior_cache_size < 1:
            errors.append(f"behavior_cache_size must be >= 1, got {self.behavior_cache_size!r}")
        if self.max_notification_age_hours is not None and (
            not _is_number(self.max_notification_age_hours) or self.max_notification_age_hours <= 0
        ):
            errors.append(
                f"max_notification_age_hours must be positive, got {self.max_notification_age_hours!r}"
            )
        for flag in (
            "enable_ml_filtering",
            "enable_context_filtering",
            "enable_behavior_analysis",
            "enable_adaptive_filtering",
        ):
            if not isinstance(getattr(self, flag), bool):
                errors.append(f"{flag} must be a boolean, got {getattr(self, flag)!r}")

        errors.extend(self.relevance_weights.validate())
        return errors

    def ensure_valid(self) -> None:
        """Raise ConfigurationError if validation fails."""
        errors = self.validate()
        if errors:
            raise ConfigurationError(errors)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def load_filter_config(path: Path | str) -> FilterConfig:
    """
    Load a FilterConfig from a YAML file.

    The file may hold the configuration at top level or under a
    ``filter`` key.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError([f"Cannot load filter config {path}: {e}"]) from e

    if data is None:
        return FilterConfig()
    if not isinstance(data, dict):
        raise ConfigurationError([f"Filter config {path} must contain a mapping"])

    return FilterConfig.from_dict(data.get("filter", data))
