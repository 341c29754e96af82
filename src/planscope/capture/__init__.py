# src/planscope/capture/__init__.py
"""Runtime SQL capture: correlation of statements, binds and plans.

Components:
- binder: placeholder substitution producing literal SQL
- buffer: CorrelationBuffer and the PendingStatement state machine
- caller: caller-context resolution from the call stack
- dispatcher: EventDispatcher and correlation scopes
- instrumentation: SQLAlchemy engine listeners and a logging handler
"""

from planscope.capture.binder import bind_arguments, count_placeholders, format_value, parse_bind_text
from planscope.capture.buffer import CorrelationBuffer, PendingStatement
from planscope.capture.caller import UNKNOWN_CALLER, capture_call_stack, resolve_caller
from planscope.capture.dispatcher import CorrelationScope, EventDispatcher
from planscope.capture.instrumentation import EngineInstrumentation, SqlCaptureHandler

__all__ = [
    "UNKNOWN_CALLER",
    "CorrelationBuffer",
    "CorrelationScope",
    "EngineInstrumentation",
    "EventDispatcher",
    "PendingStatement",
    "SqlCaptureHandler",
    "bind_arguments",
    "capture_call_stack",
    "count_placeholders",
    "format_value",
    "parse_bind_text",
    "resolve_caller",
]
