# tests/unit/logging/test_logger.py — v2
"""Tests for logging/logger.py — formatters and setup."""

from __future__ import annotations

import json
import logging
import sys
from logging.handlers import RotatingFileHandler

import pytest

from webpexpress.config.settings import Settings
from webpexpress.logging.context import clear_context, set_batch_context
from webpexpress.logging.logger import (
    ROOT_LOGGER,
    JsonFormatter,
    TextFormatter,
    setup_logging,
    setup_logging_from_settings,
)


def _record(msg="hello", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="webpexpress.engine.worker_pool",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


@pytest.fixture(autouse=True)
def _reset():
    clear_context()
    yield
    clear_context()
    logging.getLogger(ROOT_LOGGER).handlers.clear()


class TestJsonFormatter:
    def test_basic_fields(self):
        entry = json.loads(JsonFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "webpexpress.engine.worker_pool"
        assert entry["message"] == "hello"
        assert "timestamp" in entry
        assert "thread" in entry
        assert "context" not in entry

    def test_context_included(self):
        set_batch_context("20260101_000000_abcd1234", "a.png")
        entry = json.loads(JsonFormatter().format(_record()))
        assert entry["context"] == {
            "batch_id": "20260101_000000_abcd1234",
            "source": "a.png",
        }

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record(level=logging.ERROR, exc_info=sys.exc_info())
        entry = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in entry["exception"]


class TestTextFormatter:
    def test_plain_line(self):
        line = TextFormatter().format(_record("converted"))
        assert "[INFO    ]" in line
        assert line.endswith("- converted")

    def test_context_in_line(self):
        set_batch_context("b42", "photo.jpg")
        line = TextFormatter().format(_record())
        assert "[b42]" in line
        assert "(photo.jpg)" in line


class TestSetupLogging:
    def test_console_only(self):
        setup_logging(level="DEBUG")
        root = logging.getLogger(ROOT_LOGGER)
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_json_format(self):
        setup_logging(log_format="json")
        root = logging.getLogger(ROOT_LOGGER)
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_reinit_does_not_duplicate(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger(ROOT_LOGGER).handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "engine.log"
        setup_logging(log_file=log_file, rotation="1KB", retention=2)
        handlers = logging.getLogger(ROOT_LOGGER).handlers
        assert len(handlers) == 2
        file_handler = handlers[1]
        assert isinstance(file_handler, RotatingFileHandler)
        assert file_handler.maxBytes == 1024
        assert file_handler.backupCount == 2
        assert log_file.parent.is_dir()
        file_handler.close()

    def test_from_settings_verbose(self):
        s = Settings(_env_file=None, log_level="WARNING")
        setup_logging_from_settings(s, verbose=True)
        assert logging.getLogger(ROOT_LOGGER).level == logging.DEBUG

    def test_from_settings(self):
        s = Settings(_env_file=None, log_level="WARNING", log_format="json")
        setup_logging_from_settings(s)
        root = logging.getLogger(ROOT_LOGGER)
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
