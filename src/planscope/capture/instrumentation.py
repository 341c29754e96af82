# src/planscope/capture/instrumentation.py
"""Capture sources feeding the EventDispatcher.

Two ways to observe SQL as it executes:

- EngineInstrumentation listens on a SQLAlchemy Engine
  (``before_cursor_execute``) and turns each cursor execution into one
  STATEMENT event followed by one typed BIND event per positional
  parameter. Each DBAPI connection gets its own correlation scope, kept in
  ``Connection.info`` and closed on commit/rollback, so one transaction is
  one scope.
- SqlCaptureHandler is a ``logging.Handler`` for applications whose data
  layer already logs statements and bind values on two named loggers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import event
from sqlalchemy.engine import Connection, Engine

from planscope.contracts.enums import EventCategory
from planscope.contracts.events import BindEvent, StatementEvent
from planscope.plans.executor import INTERNAL_OPTION

if TYPE_CHECKING:
    from planscope.capture.dispatcher import CorrelationScope, EventDispatcher

logger = structlog.get_logger(__name__)

_SCOPE_KEY = "planscope_scope"

# DBAPI paramstyles with positional markers, and the marker they use
POSITIONAL_PLACEHOLDERS: dict[str, str] = {"qmark": "?", "format": "%s"}


def placeholder_for_paramstyle(paramstyle: str) -> str | None:
    """Positional placeholder token of a DBAPI paramstyle, or None if named."""
    return POSITIONAL_PLACEHOLDERS.get(paramstyle)


class EngineInstrumentation:
    """Feed a dispatcher from SQLAlchemy cursor executions."""

    def __init__(self, dispatcher: EventDispatcher) -> None:
        self._dispatcher = dispatcher
        self._engines: list[Engine] = []

    def attach(self, engine: Engine) -> None:
        """Attach capture listeners to a SQLAlchemy engine."""
        if placeholder_for_paramstyle(engine.dialect.paramstyle) is None:
            logger.warning(
                "Engine uses a named paramstyle; bind values will not be substituted",
                paramstyle=engine.dialect.paramstyle,
                dialect=engine.dialect.name,
            )
        event.listen(engine, "before_cursor_execute", self._before_cursor_execute)
        event.listen(engine, "commit", self._close_scope)
        event.listen(engine, "rollback", self._close_scope)
        self._engines.append(engine)

    def detach(self) -> None:
        """Remove listeners from every attached engine."""
        for engine in self._engines:
            event.remove(engine, "before_cursor_execute", self._before_cursor_execute)
            event.remove(engine, "commit", self._close_scope)
            event.remove(engine, "rollback", self._close_scope)
        self._engines.clear()

    def _scope_for(self, conn: Connection) -> CorrelationScope:
        if _SCOPE_KEY in conn.info:
            scope: CorrelationScope = conn.info[_SCOPE_KEY]
        else:
            scope = self._dispatcher.new_scope(f"connection-{id(conn)}")
            conn.info[_SCOPE_KEY] = scope
        return scope

    def _before_cursor_execute(
        self,
        conn: Connection,
        cursor: object,
        statement: str,
        parameters: Any,
        context: object,
        executemany: bool,
    ) -> None:
        if conn.get_execution_options().get(INTERNAL_OPTION):
            return

        scope = self._scope_for(conn)
        self._dispatcher.handle_statement(StatementEvent(statement), scope)
        for index, value in enumerate(self._positional_parameters(parameters, executemany), start=1):
            self._dispatcher.handle_bind(BindEvent.from_value(index, value), scope)

    @staticmethod
    def _positional_parameters(parameters: Any, executemany: bool) -> Sequence[Any]:
        # executemany: the first parameter set stands in for the batch
        if executemany:
            parameters = parameters[0] if parameters else ()
        if parameters is None or isinstance(parameters, Mapping):
            return ()
        return parameters

    @staticmethod
    def _close_scope(conn: Connection) -> None:
        scope: CorrelationScope | None = conn.info.pop(_SCOPE_KEY, None)
        if scope is not None:
            scope.close()


class SqlCaptureHandler(logging.Handler):
    """Turn statement/bind log records into dispatcher events.

    Records from ``statement_logger`` are STATEMENT notifications, records
    from ``bind_logger`` are BIND notifications; the formatted message is
    the event text. Other records are ignored.

    Example:
        handler = SqlCaptureHandler(dispatcher, statement_logger="app.sql", bind_logger="app.sql.bind")
        handler.install()
    """

    def __init__(
        self,
        dispatcher: EventDispatcher,
        *,
        statement_logger: str,
        bind_logger: str,
        level: int = logging.DEBUG,
    ) -> None:
        if statement_logger == bind_logger:
            raise ValueError(f"statement_logger and bind_logger must differ, both are {statement_logger!r}")
        super().__init__(level)
        self._dispatcher = dispatcher
        self._categories: dict[str, EventCategory] = {
            statement_logger: EventCategory.STATEMENT,
            bind_logger: EventCategory.BIND,
        }

    def install(self) -> None:
        """Attach to both loggers and lower them to this handler's level.

        When one logger is nested under the other, the handler is attached
        only to the parent; records from the child reach it by propagation.
        """
        names = list(self._categories)
        for name in names:
            source = logging.getLogger(name)
            if not any(name.startswith(f"{other}.") for other in names):
                source.addHandler(self)
            if source.getEffectiveLevel() > self.level:
                logger.info(
                    "Updated logging level for SQL capture",
                    logger_name=name,
                    old_level=logging.getLevelName(source.level),
                    new_level=logging.getLevelName(self.level),
                )
                source.setLevel(self.level)

    def uninstall(self) -> None:
        for name in self._categories:
            logging.getLogger(name).removeHandler(self)

    def emit(self, record: logging.LogRecord) -> None:
        category = self._categories.get(record.name)
        if category is None:
            return
        try:
            self._dispatcher.handle(record.getMessage(), category)
        except Exception:
            self.handleError(record)
