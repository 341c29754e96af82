"""Per-scope statement statistics.

Running the same statement template many times inside one request or
transaction is the classic N+1 pattern: one query loads a list, then one
more query per element loads a relationship. Counting templates per scope
makes it visible without any ORM-specific hooks.

The same per-scope view also catches a save that reads a row before
inserting it (SELECT_BEFORE_INSERT), which usually means the ORM could not
tell the entity was new and checked the database first.

Statistics are bounded: once ``max_templates`` distinct templates have
been seen, the current window is reported and reset. Scopes that never
close (the per-thread default) therefore still report and never grow
without limit.
"""

import re
from collections import Counter, defaultdict
from dataclasses import dataclass
from threading import Lock

import structlog

logger = structlog.get_logger(__name__)

# Table name with optional quoting: account, "account", `account`, [account], main.account
_TABLE = r"([\w$.`\"\[\]]+)"
_SELECT_FROM = re.compile(r"^\s*SELECT\b.*?\bFROM\s+" + _TABLE, re.IGNORECASE | re.DOTALL)
_INSERT_INTO = re.compile(r"^\s*INSERT\s+(?:OR\s+\w+\s+)?INTO\s+" + _TABLE, re.IGNORECASE)
_QUOTES = re.compile(r"[`\"\[\]]")


def _table_name(raw: str) -> str:
    return _QUOTES.sub("", raw).lower()


def selected_table(template: str) -> str | None:
    """Table of the first FROM clause of a SELECT, or None."""
    match = _SELECT_FROM.match(template)
    return _table_name(match.group(1)) if match else None


def inserted_table(template: str) -> str | None:
    """Target table of an INSERT, or None."""
    match = _INSERT_INTO.match(template)
    return _table_name(match.group(1)) if match else None


@dataclass(frozen=True, slots=True)
class RepeatedStatement:
    """A template executed at least the threshold number of times."""

    template: str
    count: int
    callers: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class SelectBeforeInsert:
    """A SELECT on a table followed by an INSERT into it within one scope."""

    table: str
    select_caller: str
    insert_caller: str
    scope_name: str | None = None

    def render(self) -> str:
        """Render the text block forwarded to the log sinks."""
        return (
            f"SELECT_BEFORE_INSERT: Potential inefficiency detected in '{self.insert_caller}': "
            f"SELECT on '{self.table}' (from '{self.select_caller}') before INSERT into it "
            f"in the same unit of work.\n"
        )


class StatementStatistics:
    """Counts finalized statements per template for one scope."""

    def __init__(
        self,
        scope_name: str | None = None,
        *,
        repeat_threshold: int = 2,
        max_templates: int = 1000,
        detect_select_before_insert: bool = True,
    ) -> None:
        if repeat_threshold < 2:
            raise ValueError(f"repeat_threshold must be >= 2, got {repeat_threshold}")
        if max_templates < 1:
            raise ValueError(f"max_templates must be >= 1, got {max_templates}")
        self.scope_name = scope_name
        self._threshold = repeat_threshold
        self._max_templates = max_templates
        self._detect_select_before_insert = detect_select_before_insert
        self._counts: Counter[str] = Counter()
        self._callers: defaultdict[str, dict[str, None]] = defaultdict(dict)
        # table -> caller of the first SELECT on it; tables already flagged
        self._selected: dict[str, str] = {}
        self._flagged: set[str] = set()
        self._lock = Lock()

    def record(self, template: str, caller_context: str) -> SelectBeforeInsert | None:
        """Count one finalized statement.

        Returns:
            A SelectBeforeInsert finding when this statement is an INSERT
            into a table already read in this scope, otherwise None.
        """
        drained: list[RepeatedStatement] | None = None
        finding: SelectBeforeInsert | None = None
        with self._lock:
            if template not in self._counts and len(self._counts) >= self._max_templates:
                drained = self._drain()
            self._counts[template] += 1
            self._callers[template][caller_context] = None
            if self._detect_select_before_insert:
                finding = self._check_select_before_insert(template, caller_context)

        if drained is not None:
            logger.debug(
                "Statement statistics window full, reporting and resetting",
                scope=self.scope_name,
                max_templates=self._max_templates,
            )
            self._log_repeated(drained)
        if finding is not None:
            logger.warning(
                "Select before insert detected",
                scope=self.scope_name,
                table=finding.table,
                select_caller=finding.select_caller,
                insert_caller=finding.insert_caller,
            )
        return finding

    def _check_select_before_insert(self, template: str, caller_context: str) -> SelectBeforeInsert | None:
        # Caller holds self._lock
        table = selected_table(template)
        if table is not None:
            if len(self._selected) < self._max_templates:
                self._selected.setdefault(table, caller_context)
            return None
        table = inserted_table(template)
        if table is None or table not in self._selected or table in self._flagged:
            return None
        self._flagged.add(table)
        return SelectBeforeInsert(
            table=table,
            select_caller=self._selected[table],
            insert_caller=caller_context,
            scope_name=self.scope_name,
        )

    def _repeated(self) -> list[RepeatedStatement]:
        # Caller holds self._lock
        return [
            RepeatedStatement(template=template, count=count, callers=tuple(self._callers[template]))
            for template, count in self._counts.most_common()
            if count >= self._threshold
        ]

    def _drain(self) -> list[RepeatedStatement]:
        # Caller holds self._lock
        repeated = self._repeated()
        self._counts.clear()
        self._callers.clear()
        self._selected.clear()
        self._flagged.clear()
        return repeated

    @property
    def distinct_templates(self) -> int:
        """Number of distinct templates in the current window."""
        with self._lock:
            return len(self._counts)

    def repeated(self) -> list[RepeatedStatement]:
        """Templates at or above the threshold, most frequent first."""
        with self._lock:
            return self._repeated()

    def report(self) -> list[RepeatedStatement]:
        """Log repeated templates (one warning each) and return them."""
        repeated = self.repeated()
        self._log_repeated(repeated)
        return repeated

    def flush(self) -> list[RepeatedStatement]:
        """Report the current window, then start a new one."""
        with self._lock:
            repeated = self._drain()
        self._log_repeated(repeated)
        return repeated

    def _log_repeated(self, repeated: list[RepeatedStatement]) -> None:
        if not repeated:
            logger.debug("No repeated statements detected", scope=self.scope_name)
        for item in repeated:
            logger.warning(
                "Repeated statement detected (possible N+1)",
                scope=self.scope_name,
                template=item.template,
                count=item.count,
                callers=list(item.callers),
            )
