"""Tests for the structlog based logging facade."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from typing import Any

import pytest

from catalog_browser.core.logger import LogConfig, LogFormat, UnifiedLogger, _coerce_log_level
from tests.support.fakes import quiet_logging


def _json_lines(text: str, message: str) -> list[dict[str, Any]]:
    events = [json.loads(line) for line in text.splitlines() if line.strip()]
    return [event for event in events if event.get("message") == message]


@pytest.fixture
def json_logging(capsys: pytest.CaptureFixture[str]) -> Iterator[None]:
    # depends on capsys so the handler binds to the captured stderr
    UnifiedLogger.configure(LogConfig(level="INFO", format=LogFormat.JSON))
    yield
    UnifiedLogger.reset()
    quiet_logging()


@pytest.mark.unit
class TestUnifiedLogger:
    def test_json_events_carry_bound_context(self, json_logging: None, capsys: pytest.CaptureFixture[str]) -> None:
        logger = UnifiedLogger.get("catalog_browser.tests").bind(component="tests")

        with UnifiedLogger.scoped(action="Search", seq=3):
            logger.info("engine.state.published", page=2)

        (event,) = _json_lines(capsys.readouterr().err, "engine.state.published")
        assert event["message"] == "engine.state.published"
        assert event["level"] == "info"
        assert event["component"] == "tests"
        assert event["action"] == "Search"
        assert event["seq"] == 3
        assert event["page"] == 2
        assert "timestamp" in event

    def test_scoped_context_is_removed_afterwards(
        self, json_logging: None, capsys: pytest.CaptureFixture[str]
    ) -> None:
        logger = UnifiedLogger.get("catalog_browser.tests")

        with UnifiedLogger.scoped(seq=1):
            pass
        logger.info("after")

        (event,) = _json_lines(capsys.readouterr().err, "after")
        assert "seq" not in event

    def test_sensitive_fields_are_redacted(self, json_logging: None, capsys: pytest.CaptureFixture[str]) -> None:
        UnifiedLogger.get("catalog_browser.tests").info("login", password="hunter2")

        (event,) = _json_lines(capsys.readouterr().err, "login")
        assert event["password"] == "***REDACTED***"

    def test_events_below_level_are_dropped(self, json_logging: None, capsys: pytest.CaptureFixture[str]) -> None:
        UnifiedLogger.get("catalog_browser.tests").debug("noise")

        assert "noise" not in capsys.readouterr().err

    def test_coerce_log_level(self) -> None:
        assert _coerce_log_level("debug") == logging.DEBUG
        assert _coerce_log_level(logging.ERROR) == logging.ERROR
        with pytest.raises(ValueError):
            _coerce_log_level("chatty")
