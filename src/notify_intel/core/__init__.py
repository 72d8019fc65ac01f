"""Shared settings and logging for notify_intel."""

from .config import NotifySettings, get_settings, reset_settings
from .logging import configure_logging, get_logger, reset_logging, set_log_level

__all__ = [
    "NotifySettings",
    "configure_logging",
    "get_logger",
    "get_settings",
    "reset_logging",
    "reset_settings",
    "set_log_level",
]
