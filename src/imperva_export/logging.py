"""
Logging setup for the export client.

All loggers live under the ``imperva_export`` namespace so that one call to
``setup_logging`` controls the whole package. Output goes to stderr, either
through rich's console handler or as JSON lines.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pythonjsonlogger import jsonlogger
from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "imperva_export"

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def get_logger(name: str) -> logging.Logger:
    """Return a logger inside the package namespace."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class JSONFormatter(jsonlogger.JsonFormatter):
    """One JSON object per record: time, level, logger, message."""

    def __init__(self) -> None:
        super().__init__("%(message)s")

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["time"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname.lower()
        log_record["logger"] = record.name


def setup_logging(level: str = "none", json_output: bool = False) -> bool:
    """
    Configure package logging.

    Args:
        level: One of none, debug, info, warn, error. Unknown values
            fall back to info with a warning.
        json_output: Emit JSON lines instead of rich console output.

    Returns:
        True when logging is enabled, False for level "none".
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = False

    normalized = (level or "none").strip().lower()
    if normalized == "none":
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.CRITICAL + 1)
        return False

    if json_output:
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

    if normalized in LOG_LEVELS:
        logger.setLevel(LOG_LEVELS[normalized])
    else:
        logger.setLevel(logging.INFO)
        logger.warning(f"Unknown log level '{level}', defaulting to 'info'")

    if logger.level == logging.DEBUG:
        logger.debug("Debug level logging enabled")
    return True


__all__ = ["get_logger", "setup_logging", "JSONFormatter", "LOG_LEVELS", "ROOT_LOGGER"]
