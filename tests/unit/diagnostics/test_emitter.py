# tests/unit/diagnostics/test_emitter.py
"""Unit tests for DiagnosticEmitter and DiagnosticRecord rendering."""

import threading
from unittest.mock import patch

import pytest

from planscope.capture.buffer import PendingStatement
from planscope.contracts.events import DiagnosticRecord
from planscope.diagnostics.emitter import DiagnosticEmitter
from planscope.diagnostics.sinks import MemoryLogSink
from planscope.diagnostics.statistics import SelectBeforeInsert
from tests.fixtures.doubles import FailingSink


def finalized_statement() -> PendingStatement:
    statement = PendingStatement("SELECT * FROM user WHERE id = ?", "shop.users.load_user:12", sequence=7)
    statement.mark_complete()
    statement.mark_finalized("SELECT * FROM user WHERE id = 42", [{"detail": "SEARCH user"}])
    return statement


class TestDiagnosticRecord:
    def test_render_format(self) -> None:
        record = DiagnosticRecord(
            caller_context="shop.users.load_user:12",
            literal_sql="SELECT 1",
            plan_text="Lvl 1",
            dialect="mysql",
            sequence=1,
        )
        assert record.render() == (
            "EXECUTION_PLANS: Method 'shop.users.load_user:12' was executed. "
            "The associated SQL query, with bound arguments, is: 'SELECT 1'.\n"
            "Lvl 1\n"
        )

    def test_empty_plan_still_renders(self) -> None:
        record = DiagnosticRecord("caller", "SELECT 1", "", "none", 1)
        assert record.render().endswith("is: 'SELECT 1'.\n\n")


class TestBuildRecord:
    def test_builds_from_finalized_statement(self) -> None:
        record = DiagnosticEmitter().build_record(finalized_statement(), "PLAN", "mysql")

        assert record.caller_context == "shop.users.load_user:12"
        assert record.literal_sql == "SELECT * FROM user WHERE id = 42"
        assert record.sequence == 7
        assert record.plan_rows == ({"detail": "SEARCH user"},)

    def test_rejects_unfinalized_statement(self) -> None:
        statement = PendingStatement("SELECT 1", "caller", sequence=1)
        with pytest.raises(ValueError, match="is not finalized"):
            DiagnosticEmitter().build_record(statement, "", "none")


class TestEmit:
    def test_logs_and_appends_to_every_sink(self) -> None:
        first, second = MemoryLogSink(), MemoryLogSink()
        emitter = DiagnosticEmitter([first, second])
        record = emitter.build_record(finalized_statement(), "PLAN", "mysql")

        with patch("planscope.diagnostics.emitter.logger") as mock_logger:
            emitter.emit(record)

        assert first.entries == [record.render()]
        assert second.entries == [record.render()]
        mock_logger.info.assert_called_once()
        assert mock_logger.info.call_args.kwargs["sql"] == "SELECT * FROM user WHERE id = 42"
        assert mock_logger.info.call_args.kwargs["plan_rows"] == 1

    def test_failing_sink_isolated(self) -> None:
        failing, healthy = FailingSink(), MemoryLogSink()
        emitter = DiagnosticEmitter([failing, healthy])
        record = emitter.build_record(finalized_statement(), "PLAN", "mysql")

        with patch("planscope.diagnostics.emitter.logger") as mock_logger:
            emitter.emit(record)
            emitter.emit(record)

        assert len(healthy.entries) == 2
        assert mock_logger.warning.call_count == 2
        assert emitter.health_metrics == {
            "records_emitted": 2,
            "findings_emitted": 0,
            "sink_failures": {"FailingSink": 2},
        }

    def test_no_sinks_only_logs(self) -> None:
        emitter = DiagnosticEmitter()
        with patch("planscope.diagnostics.emitter.logger") as mock_logger:
            emitter.emit(emitter.build_record(finalized_statement(), "", "none"))

        mock_logger.info.assert_called_once()
        assert emitter.health_metrics["records_emitted"] == 1

    def test_counters_consistent_under_concurrent_emits(self) -> None:
        emitter = DiagnosticEmitter([FailingSink()])
        record = emitter.build_record(finalized_statement(), "PLAN", "mysql")

        def worker() -> None:
            for _ in range(200):
                emitter.emit(record)

        with patch("planscope.diagnostics.emitter.logger"):
            threads = [threading.Thread(target=worker) for _ in range(4)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        metrics = emitter.health_metrics
        assert metrics["records_emitted"] == 800
        assert metrics["sink_failures"] == {"FailingSink": 800}


class TestEmitSelectBeforeInsert:
    def test_notice_appended_to_sinks(self) -> None:
        sink = MemoryLogSink()
        emitter = DiagnosticEmitter([sink])
        finding = SelectBeforeInsert(
            table="account",
            select_caller="shop.accounts.exists:10",
            insert_caller="shop.accounts.save:22",
        )

        emitter.emit_select_before_insert(finding)

        assert sink.entries == [finding.render()]
        assert sink.entries[0].startswith(
            "SELECT_BEFORE_INSERT: Potential inefficiency detected in 'shop.accounts.save:22'"
        )
        assert emitter.health_metrics["findings_emitted"] == 1
        assert emitter.health_metrics["records_emitted"] == 0

    def test_failing_sink_isolated(self) -> None:
        healthy = MemoryLogSink()
        emitter = DiagnosticEmitter([FailingSink(), healthy])
        with patch("planscope.diagnostics.emitter.logger") as mock_logger:
            emitter.emit_select_before_insert(SelectBeforeInsert("account", "a:1", "b:2"))

        assert len(healthy.entries) == 1
        mock_logger.warning.assert_called_once()
