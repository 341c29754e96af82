# src/planscope/contracts/__init__.py
"""Shared contracts for cross-boundary data types.

This package is a leaf: it must not import from capture, plans or
diagnostics.

Import patterns:
    from planscope.contracts import BindEvent, Dialect, StatementEvent
"""

from planscope.contracts.enums import Dialect, EventCategory, StatementState
from planscope.contracts.errors import (
    AttributionError,
    FormattingError,
    PlanProviderError,
    PlanscopeError,
    UnsupportedDialectError,
)
from planscope.contracts.events import (
    BindEvent,
    BoundValue,
    DiagnosticRecord,
    PlanRow,
    StatementEvent,
)

__all__ = [
    "AttributionError",
    "BindEvent",
    "BoundValue",
    "DiagnosticRecord",
    "Dialect",
    "EventCategory",
    "FormattingError",
    "PlanProviderError",
    "PlanRow",
    "PlanscopeError",
    "StatementEvent",
    "StatementState",
    "UnsupportedDialectError",
]
