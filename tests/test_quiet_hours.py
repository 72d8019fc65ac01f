"""
Tests for quiet hours checking.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from notify_intel.errors import InvalidNotificationError
from notify_intel.models import QuietHours
from notify_intel.quiet_hours import QuietHoursChecker


def utc(hour: int, minute: int = 0, day: int = 15) -> datetime:
    return datetime(2026, 1, day, hour, minute, tzinfo=timezone.utc)


class TestQuietHoursChecker:
    """Tests for QuietHoursChecker."""

    def test_overnight_window(self):
        """A window spanning midnight covers both sides of it."""
        checker = QuietHoursChecker(QuietHours(start="22:00", end="08:00"))

        assert checker.is_quiet_time(utc(23)) is True
        assert checker.is_quiet_time(utc(2)) is True
        assert checker.is_quiet_time(utc(7, 59)) is True
        assert checker.is_quiet_time(utc(12)) is False
        assert checker.is_quiet_time(utc(21, 59)) is False

    def test_start_inclusive_end_exclusive(self):
        checker = QuietHoursChecker(QuietHours(start="22:00", end="08:00"))

        assert checker.is_quiet_time(utc(22)) is True
        assert checker.is_quiet_time(utc(8)) is False

    def test_same_day_window(self):
        checker = QuietHoursChecker(QuietHours(start="13:00", end="14:00"))

        assert checker.is_quiet_time(utc(13, 30)) is True
        assert checker.is_quiet_time(utc(14)) is False
        assert checker.is_quiet_time(utc(23)) is False

    def test_equal_start_and_end_is_empty(self):
        checker = QuietHoursChecker(QuietHours(start="09:00", end="09:00"))

        assert checker.is_quiet_time(utc(9)) is False

    def test_timezone_applied(self):
        """Window is evaluated in the configured timezone."""
        checker = QuietHoursChecker(
            QuietHours(start="22:00", end="08:00", timezone="America/New_York")
        )

        # 04:00 UTC is 23:00 EST
        assert checker.is_quiet_time(utc(4)) is True
        # 14:00 UTC is 09:00 EST
        assert checker.is_quiet_time(utc(14)) is False

    def test_naive_datetime_treated_as_utc(self):
        checker = QuietHoursChecker(QuietHours(start="22:00", end="08:00"))

        assert checker.is_quiet_time(datetime(2026, 1, 15, 23, 0)) is True

    def test_unknown_timezone_rejected_before_checking(self):
        """Bad windows never reach the checker."""
        with pytest.raises(InvalidNotificationError, match="Mars/Olympus"):
            QuietHoursChecker(QuietHours(start="22:00", end="08:00", timezone="Mars/Olympus"))

    def test_invalid_time_format(self):
        with pytest.raises(InvalidNotificationError, match="HH:MM"):
            QuietHoursChecker(QuietHours(start="10pm", end="08:00"))

    def test_next_active_time(self):
        """Next active time is the end of the current window."""
        checker = QuietHoursChecker(QuietHours(start="22:00", end="08:00"))

        resume = checker.next_active_time(utc(23))

        assert resume == utc(8, day=16)
        assert checker.next_active_time(utc(2)) == utc(8)
        assert checker.next_active_time(utc(12)) is None
