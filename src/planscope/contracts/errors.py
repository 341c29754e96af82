# src/planscope/contracts/errors.py
"""Planscope exception hierarchy.

None of these cross the dispatcher boundary: the capture path catches
them, logs at warning/error level and carries on. They exist so the
internal components can signal precisely what went wrong.
"""


class PlanscopeError(Exception):
    """Base class for all planscope errors."""


class AttributionError(PlanscopeError):
    """Raised when a bind event has no open statement to attach to.

    Happens when the buffer is empty, or when its most recent statement
    has already been completed (more binds than placeholders).
    """


class FormattingError(PlanscopeError):
    """Raised when a bind payload cannot be turned into a SQL literal.

    The placeholder it belongs to is left unresolved.
    """


class PlanProviderError(PlanscopeError):
    """Raised when a dialect's execution-plan query fails or times out.

    Attributes:
        provider_name: Name of the provider that failed
        message: Human-readable error description
    """

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        self.message = message
        super().__init__(f"Plan provider '{provider_name}' failed: {message}")


class UnsupportedDialectError(PlanscopeError):
    """Raised when no plan provider is registered for a dialect."""

    def __init__(self, dialect: str, available: list[str]) -> None:
        self.dialect = dialect
        self.available = available
        super().__init__(f"No plan provider for dialect '{dialect}'. Available: {available}")
