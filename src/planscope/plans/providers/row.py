# src/planscope/plans/providers/row.py
"""Providers for dialects whose EXPLAIN returns the plan as a row set.

The plan is the driver's rows verbatim. Each row renders as its own
key/value table:

    Lvl 1
    +----------------------+--------+
    | Key                  | Value  |
    +----------------------+--------+
    | select_type          | SIMPLE |
    ...
"""

from typing import ClassVar

from planscope.contracts.enums import Dialect
from planscope.contracts.events import PlanRow
from planscope.plans.providers.base import BasePlanProvider

KEY_WIDTH = 20
ELLIPSIS = "…"


def truncate(value: str, width: int = KEY_WIDTH) -> str:
    """Clip value to width characters, marking the cut with an ellipsis."""
    if len(value) <= width:
        return value
    return value[: width - 1] + ELLIPSIS


def _display(value: object) -> str:
    return "NULL" if value is None else str(value)


def render_row_table(index: int, row: PlanRow, key_width: int = KEY_WIDTH) -> str:
    """Render one plan row as a two-column Key/Value table."""
    pairs = [(truncate(str(key), key_width), _display(value)) for key, value in row.items()]
    value_width = max([len("Value"), *(len(value) for _, value in pairs)])
    separator = f"+{'-' * (key_width + 2)}+{'-' * (value_width + 2)}+"

    lines = [f"Lvl {index}", separator, f"| {'Key':<{key_width}} | {'Value':<{value_width}} |", separator]
    lines.extend(f"| {key:<{key_width}} | {value:<{value_width}} |" for key, value in pairs)
    lines.append(separator)
    return "\n".join(lines)


class RowPlanProvider(BasePlanProvider):
    """Plan provider for ``<prefix> <sql>`` style EXPLAIN statements."""

    explain_prefix: ClassVar[str] = "EXPLAIN"

    def _fetch_plan(self, literal_sql: str) -> list[PlanRow]:
        return self._executor.query_for_list(f"{self.explain_prefix} {literal_sql}")

    def render(self, rows: list[PlanRow]) -> str:
        return "\n\n".join(render_row_table(index, row) for index, row in enumerate(rows, start=1))


class MySQLPlanProvider(RowPlanProvider):
    _name = "mysql"
    dialect = Dialect.MYSQL


class PostgresPlanProvider(RowPlanProvider):
    _name = "postgresql"
    dialect = Dialect.POSTGRESQL


class SQLitePlanProvider(RowPlanProvider):
    _name = "sqlite"
    dialect = Dialect.SQLITE
    explain_prefix = "EXPLAIN QUERY PLAN"
