# src/planscope/bootstrap.py
"""Wire planscope into an application's SQLAlchemy engine.

Usage:
    from planscope.bootstrap import install
    from planscope.core.config import load_settings

    runtime = install(engine, load_settings(Path("planscope.yaml")))
    ...
    runtime.close()
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog
from sqlalchemy.engine import Engine

from planscope.capture.binder import DEFAULT_PLACEHOLDER
from planscope.capture.dispatcher import EventDispatcher
from planscope.capture.instrumentation import EngineInstrumentation, SqlCaptureHandler, placeholder_for_paramstyle
from planscope.contracts.enums import Dialect
from planscope.core.config import PlanscopeSettings, SinkSettings
from planscope.core.logging import configure_logging
from planscope.diagnostics.emitter import DiagnosticEmitter
from planscope.diagnostics.sinks import FileLogSink, LogSinkProtocol, MemoryLogSink
from planscope.plans.executor import EngineQueryExecutor
from planscope.plans.factory import create_plan_provider

logger = structlog.get_logger(__name__)


@dataclass
class PlanscopeRuntime:
    """Everything install() created, so it can be inspected and torn down."""

    dispatcher: EventDispatcher
    instrumentation: EngineInstrumentation
    sinks: list[LogSinkProtocol] = field(default_factory=list)
    log_handler: SqlCaptureHandler | None = None

    def close(self) -> None:
        """Detach from the engine and loggers and stop plan workers. Idempotent."""
        self.instrumentation.detach()
        if self.log_handler is not None:
            self.log_handler.uninstall()
            self.log_handler = None
        self.dispatcher.plan_provider.close()
        logger.info("planscope stopped", **self.dispatcher.health_metrics)


def resolve_dialect(configured: Dialect | str, engine: Engine) -> Dialect | None:
    """Configured dialect, or the engine's backend when set to 'auto'."""
    if configured != "auto":
        return Dialect(configured)
    return Dialect.from_url(engine.url.render_as_string(hide_password=True))


def build_sinks(settings: SinkSettings) -> list[LogSinkProtocol]:
    if settings.kind == "file" and settings.path is not None:
        return [FileLogSink(settings.path, fail_on_error=settings.fail_on_error)]
    if settings.kind == "memory":
        return [MemoryLogSink()]
    return []


def install(
    engine: Engine,
    settings: PlanscopeSettings | None = None,
    *,
    configure_logs: bool = False,
) -> PlanscopeRuntime | None:
    """Instrument an engine so every statement it runs is explained.

    Args:
        engine: Application engine to observe; plan queries run on it too
        settings: Configuration; defaults when None
        configure_logs: Also apply settings.logging to structlog/stdlib

    Returns:
        The runtime, or None when settings.enabled is False.
    """
    settings = settings or PlanscopeSettings()
    if not settings.enabled:
        logger.debug("planscope_disabled", reason="settings.enabled=False")
        return None
    if configure_logs:
        configure_logging(
            json_output=settings.logging.json_output,
            level=settings.logging.level,
            sql_echo=settings.logging.sql_echo,
        )

    placeholder = (
        settings.capture.placeholder
        or placeholder_for_paramstyle(engine.dialect.paramstyle)
        or DEFAULT_PLACEHOLDER
    )
    dialect = resolve_dialect(settings.plans.dialect, engine)
    provider = create_plan_provider(
        dialect,
        EngineQueryExecutor(engine),
        timeout_seconds=settings.plans.plan_timeout_seconds,
        max_workers=settings.plans.max_workers,
    )
    sinks = build_sinks(settings.sink)
    dispatcher = EventDispatcher(
        provider,
        DiagnosticEmitter(sinks),
        base_path=settings.capture.base_path,
        placeholder=placeholder,
        history_size=settings.capture.history_size,
        repeat_threshold=settings.capture.repeat_threshold,
        detect_select_before_insert=settings.capture.detect_select_before_insert,
    )

    instrumentation = EngineInstrumentation(dispatcher)
    instrumentation.attach(engine)

    log_handler = None
    if settings.capture.statement_logger is not None and settings.capture.bind_logger is not None:
        log_handler = SqlCaptureHandler(
            dispatcher,
            statement_logger=settings.capture.statement_logger,
            bind_logger=settings.capture.bind_logger,
        )
        log_handler.install()

    logger.info(
        "planscope installed",
        dialect=str(dialect),
        provider=provider.name,
        base_path=settings.capture.base_path,
        placeholder=placeholder,
        sinks=[type(sink).__name__ for sink in sinks],
    )
    return PlanscopeRuntime(dispatcher=dispatcher, instrumentation=instrumentation, sinks=sinks, log_handler=log_handler)
