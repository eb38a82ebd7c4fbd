"""
Logging setup for the course recommender.

``configure_logging(config)`` is called once per CLI command, before the
dataset is loaded. Library modules only ever do
``logger = logging.getLogger(__name__)``.

Two line formats are supported:

  text (default)::

    2026-02-24T15:00:00Z [INFO] course_recommender.recommendations.executor: ...

  JSON (``json_format = true`` under [logging])::

    {"ts": "2026-02-24T15:00:00Z", "level": "INFO", "logger": "...", "msg": "...",
     "trainees": 6, "chunks": 3}

Values passed through ``extra=`` (run sizes, trainee ids) become top-level
JSON keys; the text format drops them.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional, TextIO

if TYPE_CHECKING:
    from course_recommender.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Loggers that are chatty at INFO (one line per HTTP request).
QUIET_LOGGERS = ("httpx", "httpcore")

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ``ts``, ``level``, ``logger``, ``msg``, extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, val in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                payload[key] = val
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def build_handlers(
    config: "LoggingConfig", stream: Optional[TextIO] = None
) -> list[logging.Handler]:
    """Console handler plus, when ``config.log_file`` is set, a file handler."""
    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter: logging.Formatter = (
        JsonFormatter()
        if config.json_format
        else logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stdout)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def configure_logging(config: "LoggingConfig", stream: Optional[TextIO] = None) -> None:
    """Configure the root logger from the ``[logging]`` config section.

    Args:
        config: Logging configuration section from ``AppConfig``.
        stream: Console stream override. Commands whose stdout carries JSON
                or SSE frames pass ``sys.stderr``.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, handlers=build_handlers(config, stream), force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
