# src/planscope/plans/providers/noop.py
"""No-op plan provider for dialects without an EXPLAIN facility."""

from typing import ClassVar

from planscope.contracts.enums import Dialect
from planscope.contracts.events import PlanRow
from planscope.plans.protocols import QueryExecutorProtocol


class NoopPlanProvider:
    """Always returns an empty plan and an empty rendering.

    Used for H2, for ``dialect: none`` and as the fallback when no provider
    matches the configured database. Never touches the executor.
    """

    _name = "noop"
    dialects: ClassVar[frozenset[Dialect]] = frozenset({Dialect.H2, Dialect.NONE})

    def __init__(
        self,
        executor: QueryExecutorProtocol | None = None,
        *,
        dialect: Dialect = Dialect.NONE,
        **_options: object,
    ) -> None:
        self._dialect = dialect

    @property
    def name(self) -> str:
        return self._name

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    def explain(self, literal_sql: str) -> list[PlanRow]:
        return []

    def render(self, rows: list[PlanRow]) -> str:
        return ""

    def close(self) -> None:
        pass
