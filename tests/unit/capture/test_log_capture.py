# tests/unit/capture/test_log_capture.py
"""Unit tests for SqlCaptureHandler (log-record capture source)."""

import logging
from collections.abc import Callable, Iterator

import pytest

from planscope.capture.dispatcher import EventDispatcher
from planscope.capture.instrumentation import SqlCaptureHandler, placeholder_for_paramstyle
from tests.fixtures.doubles import RecordingPlanProvider

STATEMENT_LOGGER = "shop.sql"
BIND_LOGGER = "shop.sql.bind"


@pytest.fixture
def handler(make_dispatcher: Callable[..., EventDispatcher]) -> Iterator[SqlCaptureHandler]:
    capture = SqlCaptureHandler(make_dispatcher(), statement_logger=STATEMENT_LOGGER, bind_logger=BIND_LOGGER)
    capture.install()
    yield capture
    capture.uninstall()
    for name in (STATEMENT_LOGGER, BIND_LOGGER):
        logging.getLogger(name).setLevel(logging.NOTSET)


class TestSqlCaptureHandler:
    def test_statement_and_bind_records_correlate(
        self, handler: SqlCaptureHandler, plan_provider: RecordingPlanProvider
    ) -> None:
        logging.getLogger(STATEMENT_LOGGER).debug("SELECT * FROM account WHERE id = ?")
        logging.getLogger(BIND_LOGGER).debug("binding parameter [1] as [INTEGER] - [%d]", 7)

        assert plan_provider.explained == ["SELECT * FROM account WHERE id = 7"]

    def test_nested_bind_logger_handled_once(
        self, handler: SqlCaptureHandler, plan_provider: RecordingPlanProvider
    ) -> None:
        logging.getLogger(STATEMENT_LOGGER).debug("SELECT * FROM account WHERE id = ? OR id = ?")
        logging.getLogger(BIND_LOGGER).debug("[1] INTEGER")
        logging.getLogger(BIND_LOGGER).debug("[2] INTEGER")

        assert plan_provider.explained == ["SELECT * FROM account WHERE id = 1 OR id = 2"]

    def test_install_lowers_logger_levels(self, handler: SqlCaptureHandler) -> None:
        assert logging.getLogger(STATEMENT_LOGGER).isEnabledFor(logging.DEBUG)
        assert logging.getLogger(BIND_LOGGER).isEnabledFor(logging.DEBUG)

    def test_unrelated_child_logger_ignored(
        self, handler: SqlCaptureHandler, plan_provider: RecordingPlanProvider
    ) -> None:
        logging.getLogger(f"{STATEMENT_LOGGER}.pool").debug("SELECT 1")
        assert plan_provider.explained == []

    def test_uninstall_stops_capture(self, handler: SqlCaptureHandler, plan_provider: RecordingPlanProvider) -> None:
        handler.uninstall()
        logging.getLogger(STATEMENT_LOGGER).debug("SELECT 1")
        assert plan_provider.explained == []

    def test_same_logger_for_both_rejected(self, make_dispatcher: Callable[..., EventDispatcher]) -> None:
        with pytest.raises(ValueError, match="must differ"):
            SqlCaptureHandler(make_dispatcher(), statement_logger="shop.sql", bind_logger="shop.sql")


class TestPlaceholderForParamstyle:
    @pytest.mark.parametrize(("paramstyle", "expected"), [("qmark", "?"), ("format", "%s")])
    def test_positional_styles(self, paramstyle: str, expected: str) -> None:
        assert placeholder_for_paramstyle(paramstyle) == expected

    @pytest.mark.parametrize("paramstyle", ["named", "pyformat", "numeric"])
    def test_named_styles(self, paramstyle: str) -> None:
        assert placeholder_for_paramstyle(paramstyle) is None
