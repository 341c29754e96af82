# src/planscope/contracts/events.py
"""Events and records that flow through the capture pipeline.

StatementEvent and BindEvent are produced by a notification source (the
SQLAlchemy instrumentation, the logging handler, or a caller feeding the
dispatcher directly). DiagnosticRecord is what leaves the pipeline.
"""

from dataclasses import dataclass, field
from typing import Any

# A single execution-plan row: column name -> value, in driver column order.
PlanRow = dict[str, Any]


@dataclass(frozen=True, slots=True)
class BoundValue:
    """A bound parameter value with its declared SQL type.

    raw_value is the value's text form before any quoting. declared_type is
    the upper-case SQL type tag (VARCHAR, BIGINT, ...), which decides how
    the value is rendered into literal SQL.
    """

    raw_value: str
    declared_type: str

    @classmethod
    def from_python(cls, value: Any) -> "BoundValue":
        """Derive a typed value from a DBAPI parameter.

        bool is checked before int because bool is an int subclass and must
        not be rendered as a bare number.
        """
        if value is None:
            return cls("NULL", "NULL")
        if isinstance(value, bool):
            return cls(str(value).lower(), "BOOLEAN")
        if isinstance(value, int):
            return cls(str(value), "BIGINT" if abs(value) > 2**31 - 1 else "INTEGER")
        if isinstance(value, str):
            return cls(value, "VARCHAR")
        return cls(str(value), type(value).__name__.upper())


@dataclass(frozen=True, slots=True)
class StatementEvent:
    """Notification that a templated SQL statement began execution.

    caller_context None means the dispatcher resolves it from the call
    stack when the event is handled.
    """

    text: str
    caller_context: str | None = None


@dataclass(frozen=True, slots=True)
class BindEvent:
    """Notification that one positional parameter was bound.

    Instrumentation that knows the real value passes it as ``value``; text
    only sources leave it None and the binder parses ``text`` instead.
    """

    text: str
    value: BoundValue | None = None

    @classmethod
    def from_value(cls, index: int, value: Any) -> "BindEvent":
        """Build a bind event for a positional DBAPI parameter (1-based index)."""
        bound = BoundValue.from_python(value)
        return cls(
            text=f"binding parameter ({index}:{bound.declared_type}) <- [{bound.raw_value}]",
            value=bound,
        )


@dataclass(frozen=True, slots=True)
class DiagnosticRecord:
    """One correlated diagnostic: who ran which literal SQL and its plan."""

    caller_context: str
    literal_sql: str
    plan_text: str
    dialect: str
    sequence: int
    plan_rows: tuple[PlanRow, ...] = field(default=())

    def render(self) -> str:
        """Render the text block forwarded to the log sinks."""
        return (
            f"EXECUTION_PLANS: Method '{self.caller_context}' was executed. "
            f"The associated SQL query, with bound arguments, is: '{self.literal_sql}'.\n"
            f"{self.plan_text}\n"
        )
