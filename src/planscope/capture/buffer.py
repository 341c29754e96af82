# src/planscope/capture/buffer.py
"""Correlation buffer linking statement events to their bind events.

Each buffer holds the statements of one correlation scope (a request, a
transaction, a DBAPI connection). Bind events only ever attach to the most
recently opened statement, and a statement moves strictly forward:

    OPEN -> COMPLETE -> FINALIZED

Key design decisions:
- Ring history via deque(maxlen=N): oldest entries evicted first, so a
  long-lived scope cannot grow without bound
- Completion is claimed under the buffer lock: exactly one caller sees
  the OPEN -> COMPLETE transition and goes on to finalize the statement
- Finalization work (plan query) happens outside the lock
- A statement still OPEN when the next one opens, or when the scope
  closes, is abandoned: it stays OPEN, and is logged and counted once
"""

import itertools
import threading
from collections import deque
from dataclasses import dataclass, field

import structlog

from planscope.capture.binder import DEFAULT_PLACEHOLDER, count_placeholders
from planscope.contracts.enums import StatementState
from planscope.contracts.errors import AttributionError
from planscope.contracts.events import BindEvent, PlanRow, StatementEvent

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class PendingStatement:
    """A captured statement and everything correlated to it so far."""

    template: str
    caller_context: str
    sequence: int
    placeholder: str = DEFAULT_PLACEHOLDER
    binds: list[BindEvent] = field(default_factory=list)
    plan_rows: list[PlanRow] = field(default_factory=list)
    state: StatementState = StatementState.OPEN
    literal_sql: str | None = None
    abandoned: bool = False
    placeholder_count: int = field(init=False)

    def __post_init__(self) -> None:
        self.placeholder_count = count_placeholders(self.template, self.placeholder)

    def is_complete(self) -> bool:
        """True once every placeholder has a bind event."""
        return self.placeholder_count == len(self.binds)

    def mark_complete(self) -> None:
        if self.state is not StatementState.OPEN:
            raise ValueError(f"Statement {self.sequence} cannot complete from state {self.state}")
        self.state = StatementState.COMPLETE

    def mark_finalized(self, literal_sql: str, plan_rows: list[PlanRow]) -> None:
        if self.state is not StatementState.COMPLETE:
            raise ValueError(f"Statement {self.sequence} cannot finalize from state {self.state}")
        self.literal_sql = literal_sql
        self.plan_rows.extend(plan_rows)
        self.state = StatementState.FINALIZED


class CorrelationBuffer:
    """Ordered, bounded store of the statements of one correlation scope.

    Thread Safety:
        open(), attach() and finalize() are serialized by an internal lock,
        so a buffer shared by mistake never double-finalizes a statement.
        Correct attribution still requires one buffer per concurrent
        caller; the dispatcher's scopes provide that.

    Example:
        buffer = CorrelationBuffer(max_size=100)
        ready = buffer.open(StatementEvent("SELECT 1"))
        # ready is the statement itself: zero placeholders completes at once
    """

    # Log aggregate eviction metrics every N evictions
    _LOG_INTERVAL = 100

    def __init__(
        self,
        max_size: int = 1000,
        *,
        name: str | None = None,
        placeholder: str = DEFAULT_PLACEHOLDER,
    ) -> None:
        """Initialize the buffer.

        Args:
            max_size: Maximum number of statements retained. When full, the
                oldest entry is evicted on open().
            name: Scope name, used in log lines
            placeholder: Positional placeholder token of the templates

        Raises:
            ValueError: If max_size < 1.
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self.name = name
        self._placeholder = placeholder
        self._statements: deque[PendingStatement] = deque(maxlen=max_size)
        self._sequence = itertools.count(1)
        self._lock = threading.Lock()
        self._evicted_count = 0
        self._abandoned_count = 0
        self._last_logged_eviction = 0

    def open(self, event: StatementEvent) -> PendingStatement | None:
        """Start tracking a new statement.

        A previous statement still waiting for binds is abandoned: binds
        only ever attach to the newest statement, so it can never complete.

        Returns:
            The statement if it completed on creation (no placeholders) and
            the caller must finalize it, otherwise None.
        """
        with self._lock:
            if self._statements and self._statements[-1].state is StatementState.OPEN:
                self._abandon(self._statements[-1])
            statement = PendingStatement(
                template=event.text,
                caller_context=event.caller_context,
                sequence=next(self._sequence),
                placeholder=self._placeholder,
            )
            self._track_eviction()
            self._statements.append(statement)
            return self._claim_if_complete(statement)

    def attach(self, event: BindEvent) -> PendingStatement | None:
        """Append a bind event to the most recently opened statement.

        Returns:
            The statement if this bind completed it, otherwise None.

        Raises:
            AttributionError: If there is no statement, or the most recent
                one is no longer open.
        """
        with self._lock:
            if not self._statements:
                raise AttributionError("Bind event received with no open statement")
            last = self._statements[-1]
            if last.state is not StatementState.OPEN:
                raise AttributionError(
                    f"Bind event received after statement {last.sequence} was already {last.state}"
                )
            last.binds.append(event)
            return self._claim_if_complete(last)

    def finalize(self, statement: PendingStatement, literal_sql: str, plan_rows: list[PlanRow]) -> None:
        """Record the outcome of a completed statement."""
        with self._lock:
            statement.mark_finalized(literal_sql, plan_rows)

    def _claim_if_complete(self, statement: PendingStatement) -> PendingStatement | None:
        # Caller holds self._lock
        if statement.state is StatementState.OPEN and statement.is_complete():
            statement.mark_complete()
            return statement
        return None

    def close(self) -> None:
        """Abandon the newest statement if it is still waiting for binds."""
        with self._lock:
            if self._statements and self._statements[-1].state is StatementState.OPEN:
                self._abandon(self._statements[-1])

    def _abandon(self, statement: PendingStatement) -> None:
        # Caller holds self._lock
        if statement.abandoned:
            return
        statement.abandoned = True
        self._abandoned_count += 1
        logger.warning(
            "Statement superseded before all its binds arrived",
            scope=self.name,
            sequence=statement.sequence,
            template=statement.template,
            expected_binds=statement.placeholder_count,
            received_binds=len(statement.binds),
        )

    def _track_eviction(self) -> None:
        # Caller holds self._lock. Check fullness BEFORE append (deque evicts during)
        if len(self._statements) != self._statements.maxlen:
            return
        self._evicted_count += 1
        if self._evicted_count - self._last_logged_eviction >= self._LOG_INTERVAL:
            logger.debug(
                "Correlation buffer history trimmed",
                scope=self.name,
                evicted_total=self._evicted_count,
                buffer_size=self._statements.maxlen,
            )
            self._last_logged_eviction = self._evicted_count

    @property
    def last(self) -> PendingStatement | None:
        """Most recently opened statement, or None if the buffer is empty."""
        with self._lock:
            return self._statements[-1] if self._statements else None

    def statements(self) -> list[PendingStatement]:
        """Snapshot of retained statements, oldest first."""
        with self._lock:
            return list(self._statements)

    @property
    def evicted_count(self) -> int:
        """Number of statements dropped from history due to the size bound."""
        return self._evicted_count

    @property
    def abandoned_count(self) -> int:
        """Number of statements superseded or closed while still waiting for binds."""
        return self._abandoned_count

    def __len__(self) -> int:
        return len(self._statements)
