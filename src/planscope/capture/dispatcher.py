# src/planscope/capture/dispatcher.py
"""EventDispatcher drives statement/bind correlation and finalization.

The dispatcher is the single entry point for capture sources:
1. STATEMENT opens a new pending statement in the caller's scope
2. BIND attaches to the scope's most recent statement
3. After every event, completion is re-checked
4. A completed statement is bound to literal SQL, explained, and emitted

Design principles:
- Nothing raises to the caller: capture runs inside the host's database
  calls and must never break them
- One CorrelationBuffer per correlation scope, never a process-wide one,
  so concurrent callers cannot steal each other's bind events
- Plan queries run outside every buffer lock

Scope resolution order for an event:
    explicit ``scope=`` argument  (e.g. one per DBAPI connection)
    -> scope installed by ``with dispatcher.scope(...)`` (contextvars)
    -> per-thread default scope
"""

from __future__ import annotations

import contextvars
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from planscope.capture.binder import DEFAULT_PLACEHOLDER, bind_arguments
from planscope.capture.buffer import CorrelationBuffer, PendingStatement
from planscope.capture.caller import capture_call_stack, resolve_caller
from planscope.contracts.enums import EventCategory
from planscope.contracts.errors import AttributionError
from planscope.contracts.events import BindEvent, PlanRow, StatementEvent
from planscope.diagnostics.statistics import RepeatedStatement, StatementStatistics

if TYPE_CHECKING:
    from planscope.diagnostics.emitter import DiagnosticEmitter
    from planscope.plans.protocols import PlanProviderProtocol

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class CorrelationScope:
    """Buffer and statistics for one request, transaction or connection."""

    buffer: CorrelationBuffer
    statistics: StatementStatistics
    name: str | None = None

    def close(self) -> list[RepeatedStatement]:
        """Report an unfinished statement and the repeated statements of this scope."""
        self.buffer.close()
        return self.statistics.report()


class EventDispatcher:
    """Correlates statement and bind notifications into diagnostics.

    Thread Safety:
        All handle_* methods are safe to call from any thread. Scopes are
        isolated per execution context; a scope shared between threads is
        still protected by its buffer's lock, but bind attribution is then
        only as good as the arrival order.

    Example:
        >>> dispatcher = EventDispatcher(provider, DiagnosticEmitter([sink]), base_path="shop")
        >>> with dispatcher.scope("GET /users"):
        ...     dispatcher.handle_statement(StatementEvent("SELECT * FROM user WHERE id = ?"))
        ...     dispatcher.handle_bind(BindEvent("[42] INTEGER"))
    """

    def __init__(
        self,
        plan_provider: PlanProviderProtocol,
        emitter: DiagnosticEmitter,
        *,
        base_path: str = "",
        placeholder: str = DEFAULT_PLACEHOLDER,
        history_size: int = 1000,
        repeat_threshold: int = 2,
        detect_select_before_insert: bool = True,
        stack_provider: Callable[[], list[str]] = capture_call_stack,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            plan_provider: Provider for the configured dialect
            emitter: Receives every finalized statement
            base_path: Module prefix identifying application code, used to
                resolve the caller of each statement
            placeholder: Positional placeholder token in statement templates
            history_size: Statements retained per scope
            repeat_threshold: Executions of one template within a scope
                that trigger a repeated-statement warning
            detect_select_before_insert: Flag an INSERT into a table already
                read in the same scope
            stack_provider: Returns the current call stack, innermost first
        """
        self._plans = plan_provider
        self._emitter = emitter
        self._base_path = base_path
        self._placeholder = placeholder
        self._history_size = history_size
        self._repeat_threshold = repeat_threshold
        self._detect_select_before_insert = detect_select_before_insert
        self._stack_provider = stack_provider

        self._current_scope: contextvars.ContextVar[CorrelationScope | None] = contextvars.ContextVar(
            f"planscope_scope_{id(self)}", default=None
        )
        self._thread_scopes = threading.local()

        self._metrics_lock = threading.Lock()
        self._statements_finalized = 0
        self._binds_dropped = 0
        self._failures = 0
        self._plan_failures = 0

    @property
    def base_path(self) -> str:
        return self._base_path

    @property
    def plan_provider(self) -> PlanProviderProtocol:
        return self._plans

    def new_scope(self, name: str | None = None) -> CorrelationScope:
        """Create a scope that the caller passes explicitly to handle_*."""
        return CorrelationScope(
            buffer=CorrelationBuffer(self._history_size, name=name, placeholder=self._placeholder),
            statistics=StatementStatistics(
                name,
                repeat_threshold=self._repeat_threshold,
                max_templates=self._history_size,
                detect_select_before_insert=self._detect_select_before_insert,
            ),
            name=name,
        )

    @contextmanager
    def scope(self, name: str | None = None) -> Iterator[CorrelationScope]:
        """Install a fresh scope for the current execution context.

        Nested scopes shadow the outer one until they exit. Repeated
        statements are reported when the scope closes.
        """
        correlation_scope = self.new_scope(name)
        token = self._current_scope.set(correlation_scope)
        try:
            yield correlation_scope
        finally:
            self._current_scope.reset(token)
            correlation_scope.close()

    def current_scope(self) -> CorrelationScope:
        """Scope for events that arrive without an explicit one."""
        active = self._current_scope.get()
        if active is not None:
            return active
        default: CorrelationScope | None = getattr(self._thread_scopes, "scope", None)
        if default is None:
            default = self.new_scope(f"thread-{threading.get_ident()}")
            self._thread_scopes.scope = default
        return default

    def resolve_caller(self) -> str:
        """Innermost application frame of the current call stack."""
        return resolve_caller(self._stack_provider(), self._base_path)

    def handle(self, text: str, category: EventCategory | str, scope: CorrelationScope | None = None) -> None:
        """Dispatch a raw ``{text, category}`` notification."""
        try:
            kind = EventCategory(category)
        except ValueError:
            logger.debug("Ignoring notification with unknown category", category=str(category))
            return
        if kind is EventCategory.STATEMENT:
            self.handle_statement(StatementEvent(text), scope)
        else:
            self.handle_bind(BindEvent(text), scope)

    def handle_statement(self, event: StatementEvent, scope: CorrelationScope | None = None) -> None:
        """Open a new statement. Zero-placeholder statements finalize at once."""
        try:
            target = scope if scope is not None else self.current_scope()
            if event.caller_context is None:
                event = StatementEvent(event.text, self.resolve_caller())
            ready = target.buffer.open(event)
            if ready is not None:
                self._finalize(target, ready)
        except Exception as e:
            self._record_failure("statement", e)

    def handle_bind(self, event: BindEvent, scope: CorrelationScope | None = None) -> None:
        """Attach a bind to the most recent statement of the scope.

        A bind with nothing to attach to is dropped with a warning.
        """
        try:
            target = scope if scope is not None else self.current_scope()
            try:
                ready = target.buffer.attach(event)
            except AttributionError as e:
                with self._metrics_lock:
                    self._binds_dropped += 1
                logger.warning("Dropping unattributable bind event", scope=target.name, bind=event.text, reason=str(e))
                return
            if ready is not None:
                self._finalize(target, ready)
        except Exception as e:
            self._record_failure("bind", e)

    def _finalize(self, scope: CorrelationScope, statement: PendingStatement) -> None:
        """COMPLETE -> FINALIZED: bind, explain, record, emit."""
        literal_sql = bind_arguments(statement.template, statement.binds, self._placeholder)
        rows, plan_text = self._explain(literal_sql)
        scope.buffer.finalize(statement, literal_sql, rows)
        finding = scope.statistics.record(statement.template, statement.caller_context)
        self._emitter.emit(self._emitter.build_record(statement, plan_text, str(self._plans.dialect)))
        if finding is not None:
            self._emitter.emit_select_before_insert(finding)
        with self._metrics_lock:
            self._statements_finalized += 1

    def _explain(self, literal_sql: str) -> tuple[list[PlanRow], str]:
        """Plan rows and rendered text; empty when the provider fails.

        Built-in providers never raise, plugin providers might. Either way
        the statement is still finalized and emitted.
        """
        try:
            rows = self._plans.explain(literal_sql)
            return rows, self._plans.render(rows)
        except Exception as e:
            with self._metrics_lock:
                self._plan_failures += 1
            logger.warning(
                "Plan provider failed, emitting empty plan",
                provider=self._plans.name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return [], ""

    def flush_statistics(self) -> list[RepeatedStatement]:
        """Report and reset the statistics of the current scope.

        The per-thread default scope never exits, so long-lived threads
        call this at the end of a unit of work to get repeated-statement
        reports for it.
        """
        return self.current_scope().statistics.flush()

    def _record_failure(self, kind: str, error: Exception) -> None:
        with self._metrics_lock:
            self._failures += 1
        logger.error(
            "SQL capture failed unexpectedly",
            event_kind=kind,
            error_type=type(error).__name__,
            error=str(error),
        )

    @property
    def health_metrics(self) -> dict[str, int]:
        """Snapshot of dispatcher counters.

        - statements_finalized: statements that produced a diagnostic
        - binds_dropped: bind events with no open statement to attach to
        - plan_failures: plan provider errors replaced by an empty plan
        - failures: unexpected errors swallowed at the capture boundary
        """
        with self._metrics_lock:
            return {
                "statements_finalized": self._statements_finalized,
                "binds_dropped": self._binds_dropped,
                "plan_failures": self._plan_failures,
                "failures": self._failures,
            }
