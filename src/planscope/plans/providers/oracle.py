# src/planscope/plans/providers/oracle.py
"""Two-step plan provider for Oracle.

``EXPLAIN PLAN FOR`` only writes into PLAN_TABLE; the formatted plan is
read back through DBMS_XPLAN.DISPLAY, one text line per row.
"""

from planscope.contracts.enums import Dialect
from planscope.contracts.events import PlanRow
from planscope.plans.providers.base import BasePlanProvider

DISPLAY_QUERY = "SELECT * FROM TABLE(DBMS_XPLAN.DISPLAY)"


class OraclePlanProvider(BasePlanProvider):
    """Explain into PLAN_TABLE, then read the rendered plan back."""

    _name = "oracle"
    dialect = Dialect.ORACLE

    def _fetch_plan(self, literal_sql: str) -> list[PlanRow]:
        return self._executor.query_script([f"EXPLAIN PLAN FOR {literal_sql}", DISPLAY_QUERY])

    def render(self, rows: list[PlanRow]) -> str:
        return "\n".join("".join(str(value) for value in row.values() if value is not None) for row in rows)
