# tests/integration/test_bootstrap.py
"""install() wiring from settings to an instrumented engine."""

from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import Engine

from planscope.bootstrap import install, resolve_dialect
from planscope.contracts.enums import Dialect
from planscope.core.config import CaptureSettings, PlanscopeSettings, PlanSettings, SinkSettings
from planscope.diagnostics.sinks import FileLogSink, MemoryLogSink
from planscope.plans.providers import NoopPlanProvider, SQLitePlanProvider


class TestInstall:
    def test_disabled_installs_nothing(self, sqlite_engine: Engine) -> None:
        assert install(sqlite_engine, PlanscopeSettings(enabled=False)) is None

    def test_auto_dialect_and_memory_sink(self, sqlite_engine: Engine) -> None:
        settings = PlanscopeSettings(capture=CaptureSettings(base_path=__name__), sink=SinkSettings(kind="memory"))
        runtime = install(sqlite_engine, settings)
        assert runtime is not None
        try:
            with sqlite_engine.connect() as conn:
                conn.execute(text("SELECT name FROM account WHERE id = :id"), {"id": 1}).all()
        finally:
            runtime.close()

        assert isinstance(runtime.dispatcher.plan_provider, SQLitePlanProvider)
        (sink,) = runtime.sinks
        assert isinstance(sink, MemoryLogSink)
        assert len(sink.entries) == 1
        assert "'SELECT name FROM account WHERE id = 1'" in sink.entries[0]
        assert f"Method '{__name__}.TestInstall.test_auto_dialect_and_memory_sink:" in sink.entries[0]

    def test_file_sink(self, sqlite_engine: Engine, tmp_path: Path) -> None:
        path = tmp_path / "plans.txt"
        runtime = install(sqlite_engine, PlanscopeSettings(sink=SinkSettings(kind="file", path=str(path))))
        assert runtime is not None
        try:
            with sqlite_engine.connect() as conn:
                conn.execute(text("SELECT COUNT(*) FROM account")).all()
        finally:
            runtime.close()

        assert isinstance(runtime.sinks[0], FileLogSink)
        assert "EXECUTION_PLANS: Method 'Unknown method' was executed." in path.read_text(encoding="utf-8")

    def test_select_before_insert_switch(self, sqlite_engine: Engine) -> None:
        settings = PlanscopeSettings(
            capture=CaptureSettings(detect_select_before_insert=False), sink=SinkSettings(kind="memory")
        )
        runtime = install(sqlite_engine, settings)
        assert runtime is not None
        try:
            with sqlite_engine.begin() as conn:
                conn.execute(text("SELECT id FROM account WHERE id = :id"), {"id": 9}).first()
                conn.execute(text("INSERT INTO account (id, name) VALUES (:id, :name)"), {"id": 9, "name": "Ivy"})
        finally:
            runtime.close()

        assert len(runtime.sinks[0].entries) == 2  # type: ignore[attr-defined]

    def test_explicit_noop_dialect(self, sqlite_engine: Engine) -> None:
        runtime = install(sqlite_engine, PlanscopeSettings(plans=PlanSettings(dialect="none")))
        assert runtime is not None
        runtime.close()
        assert isinstance(runtime.dispatcher.plan_provider, NoopPlanProvider)

    def test_close_detaches(self, sqlite_engine: Engine) -> None:
        runtime = install(sqlite_engine, PlanscopeSettings(sink=SinkSettings(kind="memory")))
        assert runtime is not None
        runtime.close()
        runtime.close()

        with sqlite_engine.connect() as conn:
            conn.execute(text("SELECT 1")).all()

        assert runtime.sinks[0].entries == []  # type: ignore[attr-defined]

    def test_log_capture_installed_when_configured(self, sqlite_engine: Engine) -> None:
        settings = PlanscopeSettings(capture=CaptureSettings(statement_logger="app.sql", bind_logger="app.bind"))
        runtime = install(sqlite_engine, settings)
        assert runtime is not None
        assert runtime.log_handler is not None
        runtime.close()
        assert runtime.log_handler is None


class TestResolveDialect:
    def test_auto_uses_engine_backend(self, sqlite_engine: Engine) -> None:
        assert resolve_dialect("auto", sqlite_engine) is Dialect.SQLITE

    def test_configured_dialect_wins(self, sqlite_engine: Engine) -> None:
        assert resolve_dialect(Dialect.MYSQL, sqlite_engine) is Dialect.MYSQL
