# src/planscope/diagnostics/emitter.py
"""Diagnostic emitter: finalized statement -> log line + sink entries.

Every finalized statement produces exactly one DiagnosticRecord. It is
logged through structlog (structured fields for machine consumers) and its
rendered text is appended to each configured sink. A failing sink is
isolated: it is logged and the remaining sinks still receive the record.

Thread Safety:
    emit() is called from every capture thread. Counters are protected by
    _metrics_lock; sinks serialize their own writes.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from planscope.contracts.enums import StatementState
from planscope.contracts.events import DiagnosticRecord

if TYPE_CHECKING:
    from planscope.capture.buffer import PendingStatement
    from planscope.diagnostics.sinks import LogSinkProtocol
    from planscope.diagnostics.statistics import SelectBeforeInsert

logger = structlog.get_logger(__name__)


class DiagnosticEmitter:
    """Formats finalized statements and forwards them to logger and sinks."""

    def __init__(self, sinks: Sequence[LogSinkProtocol] = ()) -> None:
        self._sinks = list(sinks)
        self._metrics_lock = threading.Lock()
        self._emitted = 0
        self._findings_emitted = 0
        self._sink_failures: dict[str, int] = {}

    def build_record(self, statement: PendingStatement, plan_text: str, dialect: str) -> DiagnosticRecord:
        """Create the record for a finalized statement.

        Raises:
            ValueError: If the statement has not been finalized
        """
        if statement.state is not StatementState.FINALIZED or statement.literal_sql is None:
            raise ValueError(f"Statement {statement.sequence} is not finalized (state={statement.state})")
        return DiagnosticRecord(
            caller_context=statement.caller_context,
            literal_sql=statement.literal_sql,
            plan_text=plan_text,
            dialect=dialect,
            sequence=statement.sequence,
            plan_rows=tuple(statement.plan_rows),
        )

    def emit(self, record: DiagnosticRecord) -> None:
        """Log the record and append its rendered text to every sink."""
        logger.info(
            "Execution plan captured",
            caller=record.caller_context,
            sql=record.literal_sql,
            dialect=record.dialect,
            sequence=record.sequence,
            plan_rows=len(record.plan_rows),
        )
        self._append(record.render())
        with self._metrics_lock:
            self._emitted += 1

    def emit_select_before_insert(self, finding: SelectBeforeInsert) -> None:
        """Append a SELECT_BEFORE_INSERT notice to every sink.

        The structured warning is logged where the finding is detected.
        """
        self._append(finding.render())
        with self._metrics_lock:
            self._findings_emitted += 1

    def _append(self, text: str) -> None:
        for sink in self._sinks:
            try:
                sink.append(text)
            except Exception as e:
                sink_name = type(sink).__name__
                with self._metrics_lock:
                    self._sink_failures[sink_name] = self._sink_failures.get(sink_name, 0) + 1
                logger.warning("Diagnostic sink failed", sink=sink_name, error=str(e))

    @property
    def health_metrics(self) -> dict[str, object]:
        """Snapshot of emitter counters."""
        with self._metrics_lock:
            return {
                "records_emitted": self._emitted,
                "findings_emitted": self._findings_emitted,
                "sink_failures": self._sink_failures.copy(),
            }
