# src/planscope/plans/providers/__init__.py
"""Built-in plan providers.

Available providers:
- MySQLPlanProvider, PostgresPlanProvider, SQLitePlanProvider: row-returning EXPLAIN
- OraclePlanProvider: EXPLAIN PLAN FOR + DBMS_XPLAN.DISPLAY
- NoopPlanProvider: H2 and ``none``; empty plans

Plugin registration:
    Providers are registered via the planscope_get_plan_providers hook.
    BuiltinPlanProvidersPlugin registers all built-in providers.
"""

from planscope.plans.hookspecs import hookimpl
from planscope.plans.providers.base import BasePlanProvider
from planscope.plans.providers.noop import NoopPlanProvider
from planscope.plans.providers.oracle import OraclePlanProvider
from planscope.plans.providers.row import (
    MySQLPlanProvider,
    PostgresPlanProvider,
    RowPlanProvider,
    SQLitePlanProvider,
)


class BuiltinPlanProvidersPlugin:
    """Plugin that registers built-in plan providers."""

    @hookimpl
    def planscope_get_plan_providers(self) -> list[type]:
        """Return built-in provider classes."""
        return [MySQLPlanProvider, PostgresPlanProvider, SQLitePlanProvider, OraclePlanProvider, NoopPlanProvider]


__all__ = [
    "BasePlanProvider",
    "BuiltinPlanProvidersPlugin",
    "MySQLPlanProvider",
    "NoopPlanProvider",
    "OraclePlanProvider",
    "PostgresPlanProvider",
    "RowPlanProvider",
    "SQLitePlanProvider",
]
