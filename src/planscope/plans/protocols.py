# src/planscope/plans/protocols.py
"""Protocol definitions for execution-plan retrieval.

A plan provider knows how one SQL dialect exposes execution plans; a query
executor is the thin collaborator that actually runs SQL against the
database for it.
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from planscope.contracts.enums import Dialect
    from planscope.contracts.events import PlanRow


@runtime_checkable
class QueryExecutorProtocol(Protocol):
    """Runs SQL for a plan provider.

    Statements that return no rows (e.g. ``EXPLAIN PLAN FOR ...``) yield
    an empty list. Errors propagate; the provider decides what to do.
    """

    def query_for_list(self, sql: str) -> list["PlanRow"]: ...

    def query_script(self, statements: "Sequence[str]") -> list["PlanRow"]:
        """Run statements in one session; return the last statement's rows."""
        ...


@runtime_checkable
class PlanProviderProtocol(Protocol):
    """Protocol for dialect-specific execution-plan providers.

    Lifecycle:
        1. Discovery: planscope_get_plan_providers hook returns provider classes
        2. Selection: create_plan_provider() picks the class for the dialect
        3. Operation: explain() + render() once per finalized statement
        4. Shutdown: close() releases worker threads

    Error handling:
        - explain() MUST NOT raise - log and return an empty plan
        - render() MUST NOT raise for rows produced by explain()
        - close() MUST be idempotent
    """

    @property
    def name(self) -> str: ...

    @property
    def dialect(self) -> "Dialect": ...

    def explain(self, literal_sql: str) -> list["PlanRow"]:
        """Fetch the execution plan of a literal SQL statement."""
        ...

    def render(self, rows: list["PlanRow"]) -> str:
        """Render plan rows as display text. Must be deterministic."""
        ...

    def close(self) -> None: ...
