# tests/conftest.py
"""Shared test fixtures.

Test doubles live in tests/fixtures/doubles.py.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from hypothesis import Verbosity, settings
from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine
from sqlalchemy.engine import Engine

from planscope.capture.dispatcher import EventDispatcher
from planscope.diagnostics.emitter import DiagnosticEmitter
from planscope.diagnostics.sinks import MemoryLogSink
from tests.fixtures.doubles import RecordingPlanProvider

settings.register_profile("ci", max_examples=100, deadline=None)
settings.register_profile("nightly", max_examples=1000, deadline=None)
settings.register_profile("debug", max_examples=10, verbosity=Verbosity.verbose, deadline=None)
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "ci"))

# Fixed call stack: one framework frame, then the application frame
APP_STACK = ["sqlalchemy.engine.base.Connection.execute:1", "shop.users.load_user:12"]


@pytest.fixture
def plan_provider() -> RecordingPlanProvider:
    return RecordingPlanProvider()


@pytest.fixture
def memory_sink() -> MemoryLogSink:
    return MemoryLogSink()


@pytest.fixture
def make_dispatcher(
    plan_provider: RecordingPlanProvider, memory_sink: MemoryLogSink
) -> Callable[..., EventDispatcher]:
    """Factory for dispatchers wired to the recording provider and memory sink.

    The call stack is fixed so caller resolution is deterministic.
    """

    def _make(**overrides: Any) -> EventDispatcher:
        options: dict[str, Any] = {"base_path": "shop", "stack_provider": lambda: list(APP_STACK)}
        options.update(overrides)
        provider = options.pop("plan_provider", plan_provider)
        emitter = options.pop("emitter", DiagnosticEmitter([memory_sink]))
        return EventDispatcher(provider, emitter, **options)

    return _make


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    """File-backed SQLite engine with a populated ``account`` table.

    File-backed so plan queries get their own pooled connection.
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'shop.db'}")
    metadata = MetaData()
    accounts = Table(
        "account",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("name", String(50), nullable=False),
    )
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(accounts.insert(), [{"id": 1, "name": "Ada"}, {"id": 2, "name": "O'Brien"}])
    yield engine
    engine.dispose()
