# src/planscope/plans/executor.py
"""Query executor backed by a SQLAlchemy engine."""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from sqlalchemy import Connection
from sqlalchemy.engine import Engine

from planscope.contracts.events import PlanRow

# Execution option marking planscope's own traffic. The capture
# instrumentation skips any statement run on a connection carrying it,
# otherwise every EXPLAIN would itself be captured and explained.
INTERNAL_OPTION = "planscope_internal"


class EngineQueryExecutor:
    """Run plan queries on a pooled connection of the given engine.

    Nothing is committed: connections roll back when returned to the pool.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        with self._engine.connect() as conn:
            yield conn.execution_options(**{INTERNAL_OPTION: True})

    @staticmethod
    def _rows(conn: Connection, sql: str) -> list[PlanRow]:
        # exec_driver_sql: literal SQL must not be re-parsed for :name binds
        result = conn.exec_driver_sql(sql)
        if not result.returns_rows:
            return []
        return [dict(row) for row in result.mappings()]

    def query_for_list(self, sql: str) -> list[PlanRow]:
        with self._connection() as conn:
            return self._rows(conn, sql)

    def query_script(self, statements: Sequence[str]) -> list[PlanRow]:
        """Run statements on one connection and return the last one's rows.

        Needed when a plan is written by one statement and read by the next
        within the same database session.
        """
        rows: list[PlanRow] = []
        with self._connection() as conn:
            for sql in statements:
                rows = self._rows(conn, sql)
        return rows
