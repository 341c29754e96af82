# src/planscope/core/logging.py
"""Structured logging configuration for planscope.

planscope runs inside someone else's application, so this is opt-in
(``install(..., configure_logs=True)``). When used, it routes both
structlog and stdlib logging records through structlog's
ProcessorFormatter: the capture modules (structlog), the file sink
(stdlib logging) and the host's own loggers produce one consistent
stream, JSON or console, each line tagged with its logger name.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# SQLAlchemy's own statement and pool logging echoes every captured
# statement a second time
_SQLALCHEMY_LOGGERS: tuple[str, ...] = (
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "sqlalchemy.pool",
)


def _drop_formatter_bookkeeping(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Drop ProcessorFormatter's _record and _from_structlog keys."""
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    sql_echo: bool = False,
) -> None:
    """Configure structlog and stdlib logging.

    Args:
        json_output: JSON lines if True, console output otherwise
        level: Root log level (DEBUG, INFO, WARNING, ERROR)
        sql_echo: Leave SQLAlchemy's engine/pool loggers at ``level``.
            By default they are raised to at least WARNING.
    """
    log_level = getattr(logging, level.upper())

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        # FileLogSink logs with %-style arguments
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    )
    final_processors: list[Any] = [_drop_formatter_bookkeeping]
    if json_output:
        final_processors.append(structlog.processors.format_exc_info)
    final_processors.append(renderer)

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Caching off so tests can reconfigure logging
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ProcessorFormatter(processors=final_processors, foreign_pre_chain=shared_processors))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    sqlalchemy_level = log_level if sql_echo else max(log_level, logging.WARNING)
    for logger_name in _SQLALCHEMY_LOGGERS:
        logging.getLogger(logger_name).setLevel(sqlalchemy_level)
