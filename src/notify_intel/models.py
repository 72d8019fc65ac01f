"""
Notification Engine Data Models.

Core data structures for notifications, context snapshots, filter criteria,
derived behavior patterns and filtering results.

Records arriving from callers are parsed with ``from_dict`` which accepts
both camelCase and snake_case keys and validates values at ingress, so the
rest of the engine works with typed fields only.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidNotificationError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class NotificationType(str, Enum):
    """Notification type."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


class NotificationCategory(str, Enum):
    """Notification category."""

    WORKFLOW = "workflow"
    SYSTEM = "system"
    PERFORMANCE = "performance"
    SECURITY = "security"
    USER = "user"
    BUSINESS = "business"


class NotificationPriority(str, Enum):
    """Notification priority, most important first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SystemStatus(str, Enum):
    """Overall system health reported in the context snapshot."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    MAINTENANCE = "maintenance"


PRIORITY_ORDER: tuple[NotificationPriority, ...] = (
    NotificationPriority.CRITICAL,
    NotificationPriority.HIGH,
    NotificationPriority.MEDIUM,
    NotificationPriority.LOW,
)


def priority_rank(priority: NotificationPriority) -> int:
    """Rank of a priority; 0 is the most important."""
    return PRIORITY_ORDER.index(priority)


# =============================================================================
# Parsing Helpers
# =============================================================================


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any, field_name: str = "timestamp") -> datetime:
    """
    Parse a timestamp from a datetime, ISO-8601 string or epoch number.

    Epoch values above 1e11 are taken as milliseconds.

    Raises:
        InvalidNotificationError: If the value cannot be interpreted
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, bool):
        raise InvalidNotificationError(f"{field_name} must be a timestamp, got bool")
    if isinstance(value, (int, float)):
        seconds = value / 1000.0 if value > 1e11 else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError as e:
            raise InvalidNotificationError(f"{field_name} is not ISO-8601: {value!r}") from e
    raise InvalidNotificationError(f"{field_name} must be a timestamp, got {type(value).__name__}")


def _get(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the value of the first key present in data."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    """Convert a raw value to an enum member."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError as e:
        valid = ", ".join(m.value for m in enum_cls)
        raise InvalidNotificationError(
            f"Invalid {field_name} {value!r}. Valid: {valid}"
        ) from e


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidNotificationError(f"{field_name} must be a number, got {value!r}")
    if math.isnan(value):
        raise InvalidNotificationError(f"{field_name} must not be NaN")
    return float(value)


def _optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidNotificationError(f"{field_name} must be a string, got {value!r}")
    return value


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise InvalidNotificationError(f"{field_name} must be a bool, got {value!r}")
    return value


def _int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidNotificationError(f"{field_name} must be an int, got {value!r}")
    return value


def _str_list(value: Any, field_name: str) -> tuple[str, ...]:
    """Keyword lists must be real sequences of strings, never a bare string."""
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise InvalidNotificationError(f"{field_name} must be a list of strings, got {value!r}")
    for item in value:
        if not isinstance(item, str):
            raise InvalidNotificationError(f"{field_name} entries must be strings, got {item!r}")
    return tuple(value)


_CLOCK_RE = re.compile(r"(\d{2}):(\d{2})")


def parse_clock(value: Any, field_name: str = "time") -> tuple[int, int]:
    """
    Parse an ``HH:MM`` wall-clock string.

    Returns:
        (hour, minute)

    Raises:
        InvalidNotificationError: If the value is not HH:MM within 00:00-23:59
    """
    match = _CLOCK_RE.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise InvalidNotificationError(f"{field_name} must be HH:MM, got {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidNotificationError(f"{field_name} out of range: {value!r}")
    return hour, minute


# =============================================================================
# Notification
# =============================================================================


# Recognized metadata keys and their accepted spellings
_METADATA_KEYS = {
    "requires_permission": ("requiresPermission", "requires_permission"),
    "workflow_id": ("workflowId", "workflow_id"),
    "phase": ("phase",),
    "user_engaged": ("userEngaged", "user_engaged"),
    "response_time_ms": ("responseTimeMs", "response_time_ms", "responseTime"),
}


@dataclass(frozen=True)
class NotificationMetadata:
    """
    Recognized optional notification metadata plus an open extension map.

    Unknown keys are preserved in ``extra`` untouched.
    """

    requires_permission: str | None = None
    workflow_id: str | None = None
    phase: str | None = None
    user_engaged: bool = False
    response_time_ms: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> NotificationMetadata:
        """Parse and validate a raw metadata mapping."""
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise InvalidNotificationError(f"metadata must be a mapping, got {data!r}")

        known_spellings = {k for spellings in _METADATA_KEYS.values() for k in spellings}
        extra = {k: v for k, v in data.items() if k not in known_spellings}

        engaged = _get(data, *_METADATA_KEYS["user_engaged"], default=False)
        if not isinstance(engaged, bool):
            raise InvalidNotificationError(f"metadata.userEngaged must be a bool, got {engaged!r}")

        response_time = _get(data, *_METADATA_KEYS["response_time_ms"])
        if response_time is not None:
            response_time = _float(response_time, "metadata.responseTimeMs")

        return cls(
            requires_permission=_optional_str(
                _get(data, *_METADATA_KEYS["requires_permission"]), "metadata.requiresPermission"
            ),
            workflow_id=_optional_str(_get(data, *_METADATA_KEYS["workflow_id"]), "metadata.workflowId"),
            phase=_optional_str(_get(data, *_METADATA_KEYS["phase"]), "metadata.phase"),
            user_engaged=engaged,
            response_time_ms=response_time,
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict (camelCase keys)."""
        result: dict[str, Any] = dict(self.extra)
        if self.requires_permission is not None:
            result["requiresPermission"] = self.requires_permission
        if self.workflow_id is not None:
            result["workflowId"] = self.workflow_id
        if self.phase is not None:
            result["phase"] = self.phase
        if self.user_engaged:
            result["userEngaged"] = True
        if self.response_time_ms is not None:
            result["responseTimeMs"] = self.response_time_ms
        return result


@dataclass(frozen=True)
class NotificationAction:
    """A user-facing action attached to a notification."""

    id: str
    label: str
    action: str
    style: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NotificationAction:
        try:
            return cls(
                id=str(data["id"]),
                label=str(data["label"]),
                action=str(data["action"]),
                style=data.get("style"),
            )
        except (KeyError, TypeError) as e:
            raise InvalidNotificationError(f"Invalid action {data!r}: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        result = {"id": self.id, "label": self.label, "action": self.action}
        if self.style:
            result["style"] = self.style
        return result


@dataclass(frozen=True)
class Notification:
    """
    A candidate notification awaiting a filtering decision.

    Immutable; the engine only changes which result set it belongs to.
    """

    id: str
    title: str
    message: str
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    created_at: datetime
    metadata: NotificationMetadata = field(default_factory=NotificationMetadata)
    actions: tuple[NotificationAction, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "created_at", ensure_utc(self.created_at))

    @property
    def text(self) -> str:
        """Lower-cased title and message used for keyword matching."""
        return f"{self.title} {self.message}".lower()

    @property
    def rank(self) -> int:
        """Priority rank (0 = critical)."""
        return priority_rank(self.priority)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Notification:
        """
        Parse and validate a raw notification mapping.

        Raises:
            InvalidNotificationError: If a required field is missing or invalid
        """
        if not isinstance(data, dict):
            raise InvalidNotificationError(f"Notification must be a mapping, got {data!r}")

        missing = [k for k in ("id", "type", "category", "priority") if k not in data]
        if missing:
            raise InvalidNotificationError(f"Notification missing fields: {', '.join(missing)}")

        created = _get(data, "createdAt", "created_at", "timestamp")
        if created is None:
            raise InvalidNotificationError(f"Notification {data['id']!r} missing createdAt")

        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            message=str(data.get("message", "")),
            type=_enum(NotificationType, data["type"], "type"),
            category=_enum(NotificationCategory, data["category"], "category"),
            priority=_enum(NotificationPriority, data["priority"], "priority"),
            created_at=parse_datetime(created, "createdAt"),
            metadata=NotificationMetadata.from_dict(data.get("metadata")),
            actions=tuple(NotificationAction.from_dict(a) for a in data.get("actions") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        result: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "category": self.category.value,
            "priority": self.priority.value,
            "createdAt": self.created_at.isoformat(),
        }
        metadata = self.metadata.to_dict()
        if metadata:
            result["metadata"] = metadata
        if self.actions:
            result["actions"] = [a.to_dict() for a in self.actions]
        return result


def sort_by_priority(notifications: list[Notification]) -> list[Notification]:
    """Stable sort by (priority rank, created_at)."""
    return sorted(notifications, key=lambda n: (n.rank, n.created_at))


# =============================================================================
# User Preferences & Filter Criteria
# =============================================================================


@dataclass(frozen=True)
class QuietHours:
    """Quiet hours window in HH:MM, evaluated in ``timezone``."""

    start: str = "22:00"
    end: str = "08:00"
    timezone: str = "UTC"

    def __post_init__(self) -> None:
        parse_clock(self.start, "quietHours.start")
        parse_clock(self.end, "quietHours.end")
        if not isinstance(self.timezone, str) or not self.timezone:
            raise InvalidNotificationError(
                f"quietHours.timezone must be a non-empty string, got {self.timezone!r}"
            )
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise InvalidNotificationError(
                f"Unknown quietHours.timezone {self.timezone!r}"
            ) from e

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> QuietHours | None:
        if not data:
            return None
        if not isinstance(data, dict):
            raise InvalidNotificationError(f"quietHours must be a mapping, got {data!r}")
        return cls(
            start=data.get("start", _get(data, "startTime", default="22:00")),
            end=data.get("end", _get(data, "endTime", default="08:00")),
            timezone=data.get("timezone", "UTC"),
        )


@dataclass(frozen=True)
class UserPreferences:
    """
    Per-user notification preferences.

    Missing category/type entries mean enabled. Missing thresholds mean
    every priority passes for that category.
    """

    category_settings: dict[NotificationCategory, bool] = field(default_factory=dict)
    type_settings: dict[NotificationType, bool] = field(default_factory=dict)
    priority_thresholds: dict[NotificationCategory, NotificationPriority] = field(
        default_factory=dict
    )
    quiet_hours: QuietHours | None = None
    always_include_keywords: tuple[str, ...] = ()
    always_exclude_keywords: tuple[str, ...] = ()
    max_notifications_per_hour: int | None = None

    def category_enabled(self, category: NotificationCategory) -> bool:
        return self.category_settings.get(category, True)

    def type_enabled(self, notification_type: NotificationType) -> bool:
        return self.type_settings.get(notification_type, True)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> UserPreferences | None:
        """Parse preferences; returns None for an empty mapping."""
        if not data:
            return None

        categories = _get(data, "categorySettings", "category_settings", default={}) or {}
        types = _get(data, "typeSettings", "type_settings", default={}) or {}
        thresholds = _get(data, "priorityThresholds", "priority_thresholds", default={}) or {}
        max_per_hour = _get(data, "maxNotificationsPerHour", "max_notifications_per_hour")
        if max_per_hour is not None and (
            isinstance(max_per_hour, bool) or not isinstance(max_per_hour, int) or max_per_hour < 0
        ):
            raise InvalidNotificationError(
                f"maxNotificationsPerHour must be a non-negative int, got {max_per_hour!r}"
            )

        return cls(
            category_settings={
                _enum(NotificationCategory, k, "category"): _bool(v, f"categorySettings.{k}")
                for k, v in categories.items()
            },
            type_settings={
                _enum(NotificationType, k, "type"): _bool(v, f"typeSettings.{k}")
                for k, v in types.items()
            },
            priority_thresholds={
                _enum(NotificationCategory, k, "category"): _enum(
                    NotificationPriority, v, "priority"
                )
                for k, v in thresholds.items()
            },
            quiet_hours=QuietHours.from_dict(_get(data, "quietHours", "quiet_hours")),
            always_include_keywords=_str_list(
                _get(data, "alwaysIncludeKeywords", "always_include_keywords"),
                "alwaysIncludeKeywords",
            ),
            always_exclude_keywords=_str_list(
                _get(data, "alwaysExcludeKeywords", "always_exclude_keywords"),
                "alwaysExcludeKeywords",
            ),
            max_notifications_per_hour=max_per_hour,
        )


# Applied by the pipeline when a session is present but the caller sent no preferences
DEFAULT_USER_PREFERENCES = UserPreferences(
    priority_thresholds={
        NotificationCategory.WORKFLOW: NotificationPriority.MEDIUM,
        NotificationCategory.SYSTEM: NotificationPriority.HIGH,
        NotificationCategory.PERFORMANCE: NotificationPriority.MEDIUM,
        NotificationCategory.SECURITY: NotificationPriority.HIGH,
        NotificationCategory.USER: NotificationPriority.LOW,
        NotificationCategory.BUSINESS: NotificationPriority.MEDIUM,
    },
)


@dataclass(frozen=True)
class TimeRange:
    """Inclusive creation-time window."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return ensure_utc(self.start) <= moment <= ensure_utc(self.end)


@dataclass
class FilterCriteria:
    """Rule-filter criteria. ``None`` means no constraint for that field."""

    priorities: list[NotificationPriority] | None = None
    categories: list[NotificationCategory] | None = None
    types: list[NotificationType] | None = None
    keywords: list[str] | None = None
    time_range: TimeRange | None = None
    user_preferences: UserPreferences | None = None


# =============================================================================
# Context Snapshot
# =============================================================================


@dataclass(frozen=True)
class UserSession:
    user_id: str
    role: str = ""
    permissions: tuple[str, ...] = ()
    last_active_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> UserSession | None:
        if not data:
            return None
        user_id = _get(data, "userId", "user_id")
        if user_id is None:
            raise InvalidNotificationError("userSession.userId is required")
        last_active = _get(data, "lastActiveAt", "last_active_at", "lastActive")
        return cls(
            user_id=str(user_id),
            role=str(data.get("role", "")),
            permissions=tuple(data.get("permissions") or ()),
            last_active_at=parse_datetime(last_active, "lastActiveAt") if last_active else None,
        )


@dataclass(frozen=True)
class WorkflowContext:
    workflow_id: str = ""
    phase: str = ""
    status: str = ""
    progress: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> WorkflowContext | None:
        if not data:
            return None
        progress = _float(data.get("progress", 0.0), "workflow.progress")
        return cls(
            workflow_id=str(_get(data, "workflowId", "workflow_id", default="")),
            phase=str(data.get("phase", "")),
            status=str(data.get("status", "")),
            progress=max(0.0, min(1.0, progress)),
        )


@dataclass(frozen=True)
class SystemContext:
    status: SystemStatus = SystemStatus.HEALTHY
    load: float = 0.0
    memory_usage: float = 0.0
    error_rate: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SystemContext | None:
        if not data:
            return None
        return cls(
            status=_enum(SystemStatus, data.get("status", "healthy"), "system.status"),
            load=_float(data.get("load", 0.0), "system.load"),
            memory_usage=_float(_get(data, "memoryUsage", "memory_usage", default=0.0), "system.memoryUsage"),
            error_rate=_float(_get(data, "errorRate", "error_rate", default=0.0), "system.errorRate"),
        )


@dataclass(frozen=True)
class TimeContext:
    """Time-of-day record. ``day_of_week`` is 0=Sunday .. 6=Saturday."""

    hour: int = 12
    day_of_week: int = 1
    is_business_hours: bool = False
    is_weekend: bool = False

    @classmethod
    def from_datetime(
        cls,
        moment: datetime,
        business_start: int = 9,
        business_end: int = 17,
    ) -> TimeContext:
        """Derive a time record from a local datetime."""
        day_of_week = (moment.weekday() + 1) % 7
        is_weekend = day_of_week in (0, 6)
        return cls(
            hour=moment.hour,
            day_of_week=day_of_week,
            is_business_hours=not is_weekend and business_start <= moment.hour < business_end,
            is_weekend=is_weekend,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TimeContext | None:
        if not data:
            return None
        return cls(
            hour=_int(data.get("hour", 12), "timeContext.hour"),
            day_of_week=_int(_get(data, "dayOfWeek", "day_of_week", default=1), "timeContext.dayOfWeek"),
            is_business_hours=_bool(
                _get(data, "isBusinessHours", "is_business_hours", default=False),
                "timeContext.isBusinessHours",
            ),
            is_weekend=_bool(
                _get(data, "isWeekend", "is_weekend", default=False), "timeContext.isWeekend"
            ),
        )


@dataclass(frozen=True)
class HistoryContext:
    recent_notifications: tuple[Notification, ...] = ()
    engagement_by_category: dict[NotificationCategory, float] = field(default_factory=dict)
    preferences_by_category: dict[NotificationCategory, bool] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> HistoryContext | None:
        if not data:
            return None
        recent = _get(data, "recentNotifications", "recent_notifications", default=()) or ()
        engagement = _get(data, "engagementByCategory", "engagement_by_category", "userEngagement", default={}) or {}
        prefs = _get(data, "preferencesByCategory", "preferences_by_category", default={}) or {}
        return cls(
            recent_notifications=tuple(
                n if isinstance(n, Notification) else Notification.from_dict(n) for n in recent
            ),
            engagement_by_category={
                _enum(NotificationCategory, k, "category"): _float(v, f"engagement.{k}")
                for k, v in engagement.items()
            },
            preferences_by_category={
                _enum(NotificationCategory, k, "category"): _bool(v, f"preferencesByCategory.{k}")
                for k, v in prefs.items()
            },
        )


@dataclass(frozen=True)
class ContextSnapshot:
    """
    Caller-supplied picture of user, workflow, system, time and history state.

    Every sub-record is optional; an absent record contributes nothing to
    scoring and is never an error.
    """

    user_session: UserSession | None = None
    workflow: WorkflowContext | None = None
    system: SystemContext | None = None
    time: TimeContext | None = None
    history: HistoryContext | None = None
    preferences: UserPreferences | None = None

    @property
    def user_id(self) -> str | None:
        return self.user_session.user_id if self.user_session else None

    @property
    def role(self) -> str | None:
        return self.user_session.role if self.user_session else None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ContextSnapshot:
        if not data:
            return cls()
        return cls(
            user_session=UserSession.from_dict(_get(data, "userSession", "user_session")),
            workflow=WorkflowContext.from_dict(_get(data, "workflow", "workflowContext")),
            system=SystemContext.from_dict(_get(data, "system", "systemContext")),
            time=TimeContext.from_dict(_get(data, "time", "timeContext")),
            history=HistoryContext.from_dict(_get(data, "history", "historicalContext")),
            preferences=UserPreferences.from_dict(data.get("preferences")),
        )


# =============================================================================
# Behavior Pattern
# =============================================================================


@dataclass(frozen=True)
class EngagementPattern:
    category: NotificationCategory
    engagement_rate: float
    average_response_time_ms: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "engagement_rate": self.engagement_rate,
            "average_response_time_ms": self.average_response_time_ms,
        }


@dataclass(frozen=True)
class FatigueIndicators:
    recent_notification_count: int = 0
    average_seconds_between: float = 0.0
    last_engagement_at: datetime = EPOCH

    def to_dict(self) -> dict[str, Any]:
        return {
            "recent_notification_count": self.recent_notification_count,
            "average_seconds_between": self.average_seconds_between,
            "last_engagement_at": self.last_engagement_at.isoformat(),
        }


@dataclass(frozen=True)
class UserBehaviorPattern:
    """Derived per-user profile used by the behavior stage."""

    user_id: str
    preferred_hours: tuple[int, ...] = ()
    preferred_categories: tuple[NotificationCategory, ...] = ()
    preferred_types: tuple[NotificationType, ...] = ()
    engagement_patterns: tuple[EngagementPattern, ...] = ()
    fatigue: FatigueIndicators = field(default_factory=FatigueIndicators)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict (used by behavior stores)."""
        return {
            "user_id": self.user_id,
            "preferred_hours": list(self.preferred_hours),
            "preferred_categories": [c.value for c in self.preferred_categories],
            "preferred_types": [t.value for t in self.preferred_types],
            "engagement_patterns": [p.to_dict() for p in self.engagement_patterns],
            "fatigue": self.fatigue.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserBehaviorPattern:
        fatigue = data.get("fatigue") or {}
        return cls(
            user_id=str(data["user_id"]),
            preferred_hours=tuple(int(h) for h in data.get("preferred_hours", ())),
            preferred_categories=tuple(
                NotificationCategory(c) for c in data.get("preferred_categories", ())
            ),
            preferred_types=tuple(NotificationType(t) for t in data.get("preferred_types", ())),
            engagement_patterns=tuple(
                EngagementPattern(
                    category=NotificationCategory(p["category"]),
                    engagement_rate=float(p["engagement_rate"]),
                    average_response_time_ms=float(p["average_response_time_ms"]),
                )
                for p in data.get("engagement_patterns", ())
            ),
            fatigue=FatigueIndicators(
                recent_notification_count=int(fatigue.get("recent_notification_count", 0)),
                average_seconds_between=float(fatigue.get("average_seconds_between", 0.0)),
                last_engagement_at=parse_datetime(
                    fatigue.get("last_engagement_at", EPOCH), "last_engagement_at"
                ),
            ),
        )


# =============================================================================
# Results
# =============================================================================


@dataclass
class FilterStatistics:
    total: int = 0
    included: int = 0
    excluded: int = 0
    inclusion_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "included": self.included,
            "excluded": self.excluded,
            "inclusion_rate": round(self.inclusion_rate, 4),
        }


@dataclass
class FilterResult:
    """Partition of a batch into included and excluded notifications."""

    included: list[Notification] = field(default_factory=list)
    excluded: list[Notification] = field(default_factory=list)
    statistics: FilterStatistics = field(default_factory=FilterStatistics)
    exclusion_reasons: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class ContextAnalysis:
    """Context scoring result for a single notification."""

    relevance: float = 0.0
    priority_adjustment: float = 0.0
    recommendations: list[str] = field(default_factory=list)
    risk_factors: list[str] = field(default_factory=list)
    opportunities: list[str] = field(default_factory=list)
    dimension_scores: dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.relevance = max(0.0, min(1.0, self.relevance))
        self.priority_adjustment = max(-1.0, min(1.0, self.priority_adjustment))

    def to_dict(self) -> dict[str, Any]:
        return {
            "relevance": round(self.relevance, 4),
            "priority_adjustment": round(self.priority_adjustment, 4),
            "dimension_scores": {k: round(v, 4) for k, v in self.dimension_scores.items()},
            "recommendations": list(self.recommendations),
            "risk_factors": list(self.risk_factors),
            "opportunities": list(self.opportunities),
        }


@dataclass
class PipelineStatistics:
    total: int = 0
    filtered: int = 0
    inclusion_rate: float = 0.0
    ml_confidence: float = 1.0

    def __post_init__(self) -> None:
        self.ml_confidence = max(0.0, min(1.0, self.ml_confidence))

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "filtered": self.filtered,
            "inclusion_rate": round(self.inclusion_rate, 4),
            "ml_confidence": round(self.ml_confidence, 4),
        }


@dataclass
class PipelineResult:
    """
    Final output of the filter pipeline.

    ``degraded`` is set when the pipeline fell back to rule-only filtering or
    was interrupted; ``completed_stage`` names the last stage that finished.
    """

    notifications: list[Notification] = field(default_factory=list)
    statistics: PipelineStatistics = field(default_factory=PipelineStatistics)
    explanations: dict[str, list[str]] = field(default_factory=dict)
    recommendations: list[str] = field(default_factory=list)
    degraded: bool = False
    completed_stage: str | None = None

    @property
    def ids(self) -> list[str]:
        return [n.id for n in self.notifications]

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "notifications": [n.to_dict() for n in self.notifications],
            "statistics": self.statistics.to_dict(),
            "explanations": {k: list(v) for k, v in self.explanations.items()},
            "recommendations": list(self.recommendations),
            "degraded": self.degraded,
            "completed_stage": self.completed_stage,
        }


def within(moment: datetime, now: datetime, window: timedelta) -> bool:
    """True when ``moment`` falls in the trailing ``window`` ending at ``now``."""
    return moment >= now - window
