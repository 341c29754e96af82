# tests/unit/core/test_logging.py
"""Tests for structured logging configuration."""

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from planscope.core.logging import configure_logging

SQLALCHEMY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.engine.Engine", "sqlalchemy.pool")


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    sqlalchemy_levels = {name: logging.getLogger(name).level for name in SQLALCHEMY_LOGGERS}
    yield
    root.handlers = handlers
    root.setLevel(level)
    for name, sqlalchemy_level in sqlalchemy_levels.items():
        logging.getLogger(name).setLevel(sqlalchemy_level)
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True, level="INFO")
        structlog.get_logger("planscope.test").info("Execution plan captured", sql="SELECT 1")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "Execution plan captured"
        assert payload["sql"] == "SELECT 1"
        assert payload["level"] == "info"
        assert payload["logger"] == "planscope.test"
        assert "_record" not in payload

    def test_stdlib_records_share_the_pipeline(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True, level="INFO")
        logging.getLogger("planscope.diagnostics.sinks").warning("sink disabled")

        payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert payload["event"] == "sink disabled"
        assert payload["level"] == "warning"

    def test_level_filters(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(level="WARNING")
        structlog.get_logger("planscope.test").info("hidden")
        assert "hidden" not in capsys.readouterr().out

    def test_console_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=False, level="DEBUG")
        structlog.get_logger("planscope.test").debug("Plan provider configured", provider="sqlite")
        out = capsys.readouterr().out
        assert "Plan provider configured" in out
        assert "provider=sqlite" in out

    def test_sqlalchemy_engine_logger_clamped(self) -> None:
        configure_logging(level="DEBUG")
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_sql_echo_keeps_sqlalchemy_loggers_at_root_level(self) -> None:
        configure_logging(level="DEBUG", sql_echo=True)
        assert logging.getLogger("sqlalchemy.engine").level == logging.DEBUG
        assert logging.getLogger("sqlalchemy.pool").level == logging.DEBUG

    def test_sqlalchemy_clamp_never_below_root(self) -> None:
        configure_logging(level="ERROR")
        assert logging.getLogger("sqlalchemy.engine").level == logging.ERROR
