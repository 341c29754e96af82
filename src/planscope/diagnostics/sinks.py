# src/planscope/diagnostics/sinks.py
"""Durable destinations for rendered diagnostics.

A sink only has to accept text. FileLogSink appends to a plain text file;
MemoryLogSink keeps records in memory for tests and interactive sessions.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from threading import Lock
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

_BANNER = (
    "=== planscope: runtime SQL execution plans ===\n"
    "Each entry shows the calling method, the literal SQL and its execution plan.\n"
    "------------------------------------------\n"
    "Started at: {started}\n"
    "------------------------------------------\n"
)


@runtime_checkable
class LogSinkProtocol(Protocol):
    """Append-only destination for diagnostic text. append() must not raise."""

    def append(self, text: str) -> None: ...


class MemoryLogSink:
    """Keeps appended entries in a list."""

    def __init__(self) -> None:
        self._lock = Lock()
        self.entries: list[str] = []

    def append(self, text: str) -> None:
        with self._lock:
            self.entries.append(text)


class FileLogSink:
    """Append diagnostics to a text file.

    The file is truncated and stamped with a banner when the sink is
    created, so each process run starts a fresh log. Write failures are
    logged; after _MAX_CONSECUTIVE_FAILURES in a row the sink disables
    itself and retries every 100 dropped entries.
    """

    _MAX_CONSECUTIVE_FAILURES = 5

    def __init__(self, path: str | Path, *, fail_on_error: bool = False) -> None:
        self._path = Path(path)
        self._fail_on_error = fail_on_error
        self._lock = Lock()
        self._disabled = False
        self._consecutive_failures = 0
        self._total_dropped = 0

        self._path.parent.mkdir(parents=True, exist_ok=True)
        started = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        self._path.write_text(_BANNER.format(started=started), encoding="utf-8")

    @property
    def path(self) -> Path:
        return self._path

    def append(self, text: str) -> None:
        with self._lock:
            if self._disabled:
                self._total_dropped += 1
                if self._total_dropped % 100 != 0:
                    return
                logger.warning(
                    "Diagnostic log sink still disabled, %d entries dropped; retrying",
                    self._total_dropped,
                )
                self._disabled = False

            try:
                with self._path.open("a", encoding="utf-8") as handle:
                    handle.write(text if text.endswith("\n") else text + "\n")
                if self._consecutive_failures > 0:
                    logger.info(
                        "Diagnostic log sink recovered after %d consecutive failures",
                        self._consecutive_failures,
                    )
                self._consecutive_failures = 0
            except OSError as exc:
                self._consecutive_failures += 1
                self._total_dropped += 1
                logger.error(
                    "Diagnostic log sink write failed (attempt %d/%d): %s",
                    self._consecutive_failures,
                    self._MAX_CONSECUTIVE_FAILURES,
                    exc,
                )
                if self._fail_on_error:
                    raise
                if self._consecutive_failures >= self._MAX_CONSECUTIVE_FAILURES:
                    logger.error(
                        "Diagnostic log sink disabled after %d consecutive failures",
                        self._consecutive_failures,
                    )
                    self._disabled = True
