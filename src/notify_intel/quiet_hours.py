"""
Quiet Hours Checker.

Timezone-aware quiet hours checking using zoneinfo for DST handling.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from .models import QuietHours, parse_clock


@dataclass
class QuietHoursChecker:
    """
    Checks whether a moment falls within a quiet hours window.

    The window is ``[start, end)`` in the configured timezone and may span
    midnight (e.g. 22:00 to 08:00). A window whose start equals its end is
    empty.
    """

    config: QuietHours

    def __post_init__(self) -> None:
        """Resolve the window; QuietHours has already validated its fields."""
        self._start_time = time(*parse_clock(self.config.start, "quietHours.start"))
        self._end_time = time(*parse_clock(self.config.end, "quietHours.end"))
        self._timezone = ZoneInfo(self.config.timezone)

    def _localize(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            # Naive datetimes are UTC throughout the engine
            moment = moment.replace(tzinfo=ZoneInfo("UTC"))
        return moment.astimezone(self._timezone)

    def is_quiet_time(self, moment: datetime) -> bool:
        """
        Check if the given moment is within quiet hours.

        Args:
            moment: Time to check (naive values are UTC)

        Returns:
            True if within quiet hours, False otherwise
        """
        current_time = self._localize(moment).time()

        if self._start_time == self._end_time:
            return False
        if self._start_time < self._end_time:
            # Same-day window (e.g., 13:00 to 14:00)
            return self._start_time <= current_time < self._end_time
        # Spans midnight: start > end (e.g., 22:00 to 06:00)
        return current_time >= self._start_time or current_time < self._end_time

    def next_active_time(self, moment: datetime) -> datetime | None:
        """
        Get the next time when notifications will be active.

        Returns:
            Datetime when quiet hours end, or None if not in quiet period
        """
        if not self.is_quiet_time(moment):
            return None

        local = self._localize(moment)
        end_dt = local.replace(
            hour=self._end_time.hour,
            minute=self._end_time.minute,
            second=0,
            microsecond=0,
        )
        if end_dt <= local:
            end_dt = end_dt + timedelta(days=1)
        return end_dt
