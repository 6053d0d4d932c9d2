"""
Logging setup for Cosmic Forge.

Formula failures are logged with their field, kind and details as
``extra`` context; ``JSONFormatter`` keeps that context machine-readable
and ``ConsoleFormatter`` is for reading logs in a terminal.
"""

import logging
import sys
from typing import Any

import orjson

# Attributes every LogRecord carries; anything else arrived through ``extra``
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per log line, with ``extra`` context under ``"extra"``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if context:
            entry["extra"] = context

        # Sets and other odd extra values fall back to str()
        return orjson.dumps(entry, default=str).decode("utf-8")


class ConsoleFormatter(logging.Formatter):
    """Plain text lines with the level name colored by severity."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        color = self.LEVEL_COLORS.get(level, self.RESET)
        record.levelname = f"{color}{level}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers share the record
            record.levelname = level


def setup_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """Send all logging to stdout, as JSON lines or colored text."""
    level = log_level.upper()
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Lark logs grammar construction at DEBUG
    logging.getLogger("lark").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger for a module; pass ``__name__``."""
    return logging.getLogger(name)


class LoggerMixin:
    """Gives a class a ``logger`` named ``<module>.<ClassName>``."""

    @property
    def logger(self) -> logging.Logger:
        cls = type(self)
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")
