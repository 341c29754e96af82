# src/planscope/diagnostics/__init__.py
"""Diagnostic output: emitter, log sinks and per-scope statement statistics."""

from planscope.diagnostics.emitter import DiagnosticEmitter
from planscope.diagnostics.sinks import FileLogSink, LogSinkProtocol, MemoryLogSink
from planscope.diagnostics.statistics import RepeatedStatement, SelectBeforeInsert, StatementStatistics

__all__ = [
    "DiagnosticEmitter",
    "FileLogSink",
    "LogSinkProtocol",
    "MemoryLogSink",
    "RepeatedStatement",
    "SelectBeforeInsert",
    "StatementStatistics",
]
