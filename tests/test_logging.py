"""
Tests for structured logging.
"""

from __future__ import annotations

import json
import logging
import sys

from notify_intel.core.logging import (
    NotifyFormatter,
    configure_logging,
    get_logger,
    reset_logging,
    set_log_level,
)


def make_record(message: str = "Batch filtered", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="notify_intel.pipeline",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestNotifyFormatter:
    """Tests for text and JSON formatting."""

    def test_text_format(self):
        formatted = NotifyFormatter().format(make_record())

        assert formatted == "[NOTIFY INFO] [pipeline] Batch filtered"

    def test_json_format_includes_extra(self):
        formatted = NotifyFormatter(json_output=True).format(make_record(total=12))

        data = json.loads(formatted)
        assert data["level"] == "INFO"
        assert data["logger"] == "notify_intel.pipeline"
        assert data["message"] == "Batch filtered"
        assert data["total"] == 12

    def test_exception_included(self):
        try:
            raise ValueError("bad batch")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()

        assert "ValueError: bad batch" in NotifyFormatter().format(record)


class TestConfigureLogging:
    """Tests for package logger configuration."""

    def test_same_name_same_logger(self):
        assert get_logger("notify_intel.test") is get_logger("notify_intel.test")

    def test_foreign_names_nested_under_package(self):
        assert get_logger("scheduler").name == "notify_intel.scheduler"

    def test_level_from_settings(self, monkeypatch):
        monkeypatch.setenv("NOTIFY_LOG_LEVEL", "info")
        from notify_intel.core.config import reset_settings

        reset_settings()

        get_logger("notify_intel.level_test")
        package = logging.getLogger("notify_intel")

        assert package.level == logging.INFO
        assert package.propagate is False
        assert len(package.handlers) == 1

    def test_reconfigure_replaces_handler(self):
        configure_logging(json_output=False)
        package = configure_logging(level="ERROR", json_output=True)

        assert len(package.handlers) == 1
        assert package.handlers[0].formatter.json_output is True
        assert package.level == logging.ERROR

    def test_module_loggers_share_package_handler(self):
        """Library modules log through the package handler once configured."""
        configure_logging(level=logging.DEBUG)
        child = logging.getLogger("notify_intel.pipeline")

        assert child.handlers == []
        assert child.getEffectiveLevel() == logging.DEBUG

    def test_set_log_level(self):
        get_logger("notify_intel.dynamic")

        set_log_level(logging.ERROR)

        assert logging.getLogger("notify_intel.dynamic").getEffectiveLevel() == logging.ERROR

    def test_reset_restores_propagation(self):
        get_logger("notify_intel.reset_test")

        reset_logging()

        package = logging.getLogger("notify_intel")
        assert package.propagate is True
        assert package.level == logging.NOTSET
        assert package.handlers == []
