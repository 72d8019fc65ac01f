"""
notify_intel - Context-Aware Notification Filtering

Decides which notifications in a batch to deliver, in what order and why,
given a snapshot of the user's session, workflow, system health, time of
day and notification history.

Usage as library:
    from notify_intel import FilterConfig, FilterPipeline

    pipeline = FilterPipeline(FilterConfig(max_notifications_per_hour=20))
    result = pipeline.filter(notifications, context)

Usage as CLI:
    python -m notify_intel simulate batch.json --context context.yaml
    python -m notify_intel explain batch.json --id n-42

Package structure:
    notify_intel/
    ├── core/           # Settings and logging
    ├── scoring/        # Context relevance dimensions and ContextScorer
    ├── models.py       # Notification, context and result records
    ├── config.py       # FilterConfig (YAML loadable)
    ├── rule_filter.py  # Deterministic rule stage
    ├── behavior.py     # Behavior analysis and LRU cache
    ├── predictors.py   # Relevance predictor protocol and implementations
    ├── detectors.py    # Duplicate and spam strategies
    ├── explain.py      # Explanations and recommendations
    └── pipeline.py     # FilterPipeline orchestrator
"""

__version__ = "1.0.0"

from .behavior import BehaviorCache, BehaviorStore, InMemoryBehaviorStore, analyze_behavior
from .config import FilterConfig, RelevanceWeights, load_filter_config
from .detectors import (
    DuplicateDetector,
    FingerprintDuplicateDetector,
    NoDuplicateDetector,
    PhraseSpamDetector,
    SpamDetector,
)
from .errors import (
    ConfigurationError,
    InvalidNotificationError,
    NotifyError,
    PredictionError,
    StageFailure,
)
from .models import (
    ContextAnalysis,
    ContextSnapshot,
    FilterCriteria,
    FilterResult,
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
    PipelineResult,
    PipelineStatistics,
    UserBehaviorPattern,
    UserPreferences,
)
from .pipeline import FilterPipeline, create_pipeline
from .predictors import (
    AdaptivePredictor,
    ContextScorePredictor,
    HttpRelevancePredictor,
    IntrinsicRelevancePredictor,
    PassThroughPredictor,
    RelevancePredictor,
)
from .rule_filter import RuleFilter
from .scoring import ContextScorer

__all__ = [
    # Pipeline
    "FilterPipeline",
    "create_pipeline",
    "FilterConfig",
    "RelevanceWeights",
    "load_filter_config",
    # Components
    "RuleFilter",
    "ContextScorer",
    "analyze_behavior",
    "BehaviorCache",
    "BehaviorStore",
    "InMemoryBehaviorStore",
    # Strategies
    "RelevancePredictor",
    "AdaptivePredictor",
    "PassThroughPredictor",
    "IntrinsicRelevancePredictor",
    "ContextScorePredictor",
    "HttpRelevancePredictor",
    "DuplicateDetector",
    "SpamDetector",
    "NoDuplicateDetector",
    "FingerprintDuplicateDetector",
    "PhraseSpamDetector",
    # Models
    "Notification",
    "NotificationCategory",
    "NotificationPriority",
    "NotificationType",
    "ContextSnapshot",
    "UserPreferences",
    "FilterCriteria",
    "FilterResult",
    "ContextAnalysis",
    "UserBehaviorPattern",
    "PipelineResult",
    "PipelineStatistics",
    # Errors
    "NotifyError",
    "ConfigurationError",
    "InvalidNotificationError",
    "PredictionError",
    "StageFailure",
]
