"""
Tests for course_recommender/utils/logging.py.

What we test
------------
JsonFormatter:
  - Core keys present; extra= values promoted to top level.
  - Exception text captured under "exc".
build_handlers():
  - Console only when log_file is empty; file handler added (and parent
    directory created) when set.
configure_logging():
  - Root level set; console writes to the given stream; httpx quietened.
"""

from __future__ import annotations

import io
import json
import logging
import sys

import pytest

from course_recommender.config import LoggingConfig
from course_recommender.utils.logging import JsonFormatter, build_handlers, configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg: str = "hello %s", args=("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "course_recommender.test", logging.INFO, __file__, 1, msg, args, None
    )
    for key, val in extra.items():
        setattr(record, key, val)
    return record


class TestJsonFormatter:
    def test_core_keys(self):
        payload = json.loads(JsonFormatter().format(_record()))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "course_recommender.test"
        assert payload["msg"] == "hello world"
        assert payload["ts"].endswith("Z")

    def test_extra_fields(self):
        payload = json.loads(JsonFormatter().format(_record(trainees=6, chunks=3)))
        assert payload["trainees"] == 6
        assert payload["chunks"] == 3
        assert "args" not in payload
        assert "levelno" not in payload

    def test_exception(self):
        try:
            raise ValueError("bad row")
        except ValueError:
            record = logging.LogRecord(
                "x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        payload = json.loads(JsonFormatter().format(record))
        assert "ValueError: bad row" in payload["exc"]


class TestBuildHandlers:
    def test_console_only(self):
        handlers = build_handlers(LoggingConfig(level="debug", log_file=""))
        assert len(handlers) == 1
        assert handlers[0].level == logging.DEBUG

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        handlers = build_handlers(LoggingConfig(log_file=str(log_file), json_format=True))
        try:
            assert len(handlers) == 2
            assert log_file.parent.is_dir()
            assert all(isinstance(h.formatter, JsonFormatter) for h in handlers)
        finally:
            for handler in handlers:
                handler.close()


class TestConfigureLogging:
    def test_writes_to_stream(self):
        stream = io.StringIO()
        configure_logging(LoggingConfig(level="WARNING", log_file=""), stream=stream)

        logging.getLogger("course_recommender.x").info("hidden")
        logging.getLogger("course_recommender.x").warning("shown")

        output = stream.getvalue()
        assert "shown" in output
        assert "hidden" not in output
        assert logging.getLogger().level == logging.WARNING

    def test_quiets_httpx(self):
        configure_logging(LoggingConfig(level="DEBUG", log_file=""), stream=io.StringIO())
        assert logging.getLogger("httpx").level == logging.WARNING
