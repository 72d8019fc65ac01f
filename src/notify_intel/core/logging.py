"""
Package logging for notify_intel.

Library modules log through ``logging.getLogger(__name__)`` and never touch
handlers. Applications (the CLI, services embedding the engine) call
``configure_logging()`` or ``get_logger()``; both install a single stderr
handler on the ``notify_intel`` package logger, so every module below it
shares one format and one level.

Usage:
    from notify_intel.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Batch filtered", extra={"total": 12, "filtered": 4})

Environment Variables:
    NOTIFY_LOG_LEVEL: DEBUG, INFO, WARNING (default), ERROR or CRITICAL
    NOTIFY_LOG_JSON: Emit one JSON object per line
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import get_settings

PACKAGE_LOGGER = "notify_intel"

# Attributes every LogRecord carries; anything else came in through ``extra``
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


class NotifyFormatter(logging.Formatter):
    """
    Text or JSON-lines formatter.

    Text lines look like ``[NOTIFY WARNING] [pipeline] message``.
    """

    def __init__(self, json_output: bool = False) -> None:
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if self.json_output:
            return json.dumps(self._as_dict(record, message), default=str)

        line = f"[NOTIFY {record.levelname}] [{record.name.rsplit('.', 1)[-1]}] {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line

    def _as_dict(self, record: logging.LogRecord, message: str) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(
                timespec="seconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
        }
        data.update(
            (key, value) for key, value in vars(record).items() if key not in _STANDARD_ATTRS
        )
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return data


class _PackageHandler(logging.StreamHandler):
    """Marker type so reconfiguration only replaces handlers installed here."""


def configure_logging(
    level: int | str | None = None,
    json_output: bool | None = None,
) -> logging.Logger:
    """
    Install the package handler, replacing any earlier one.

    Args:
        level: Overrides NOTIFY_LOG_LEVEL
        json_output: Overrides NOTIFY_LOG_JSON

    Returns:
        The ``notify_intel`` package logger
    """
    settings = get_settings()
    package = logging.getLogger(PACKAGE_LOGGER)

    for handler in [h for h in package.handlers if isinstance(h, _PackageHandler)]:
        package.removeHandler(handler)

    handler = _PackageHandler(sys.stderr)
    handler.setFormatter(
        NotifyFormatter(settings.log_json if json_output is None else json_output)
    )
    package.addHandler(handler)
    package.setLevel(settings.log_level if level is None else level)
    package.propagate = False
    return package


def _is_configured() -> bool:
    return any(isinstance(h, _PackageHandler) for h in logging.getLogger(PACKAGE_LOGGER).handlers)


def get_logger(name: str) -> logging.Logger:
    """
    Logger under the package namespace, configuring the package on first use.

    Names outside ``notify_intel`` are nested beneath it.
    """
    if not _is_configured():
        configure_logging()
    if name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def set_log_level(level: int | str) -> None:
    """Change the level of the whole package at runtime."""
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)


def reset_logging() -> None:
    """
    Undo configure_logging().

    Drops the package handler, restores propagation and clears levels on
    every notify_intel logger so pytest's caplog sees their records.
    """
    package = logging.getLogger(PACKAGE_LOGGER)
    for handler in [h for h in package.handlers if isinstance(h, _PackageHandler)]:
        package.removeHandler(handler)
        handler.close()

    for name, entry in list(logging.Logger.manager.loggerDict.items()):
        if isinstance(entry, logging.Logger) and (
            name == PACKAGE_LOGGER or name.startswith(f"{PACKAGE_LOGGER}.")
        ):
            entry.propagate = True
            entry.setLevel(logging.NOTSET)
