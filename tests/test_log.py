"""Tests for logging setup."""

import json
import logging

import pytest
import structlog

from novelmate.log import configure_logging, resolve_level, shorten_values


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestResolveLevel:
    def test_verbosity(self):
        assert resolve_level(-1) == logging.WARNING
        assert resolve_level(0) == logging.INFO
        assert resolve_level(1) == logging.DEBUG

    def test_level_name_used_without_flags(self):
        assert resolve_level(0, "debug") == logging.DEBUG
        assert resolve_level(0, "ERROR") == logging.ERROR

    def test_flags_win_over_level_name(self):
        assert resolve_level(-1, "DEBUG") == logging.WARNING

    def test_unknown_level_name(self):
        assert resolve_level(0, "chatty") == logging.INFO


class TestShortenValues:
    def test_long_values_clipped(self):
        event = shorten_values(limit=5)(None, "info", {"event": "x" * 10, "error": "가" * 12})
        assert event["event"] == "x" * 10
        assert event["error"] == "가가가가가... (12 chars)"

    def test_short_and_non_string_values_kept(self):
        event = shorten_values(limit=5)(None, "info", {"event": "e", "name": "서울", "count": 123456})
        assert event == {"event": "e", "name": "서울", "count": 123456}


class TestConfigureLogging:
    def test_file_keeps_debug_and_non_ascii(self, tmp_path, restore_logging):
        log_file = tmp_path / "logs" / "novelmate.jsonl"
        configure_logging(verbosity=-1, log_file=log_file)

        structlog.get_logger("novelmate.test").debug("name_added", original="김철수")
        for handler in logging.getLogger().handlers:
            handler.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "김철수" in text
        record = json.loads(text.splitlines()[-1])
        assert record["event"] == "name_added"
        assert record["level"] == "debug"

    def test_level_name_applies_to_console(self, restore_logging):
        configure_logging(level_name="WARNING")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert root.handlers[0].level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING
