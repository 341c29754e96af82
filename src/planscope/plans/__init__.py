# src/planscope/plans/__init__.py
"""Execution-plan retrieval, one provider per SQL dialect.

Components:
- protocols: PlanProviderProtocol, QueryExecutorProtocol
- providers: built-in dialect providers (row-returning, Oracle, no-op)
- hookspecs: pluggy hooks for provider discovery
- factory: create_plan_provider() selects a provider from a Dialect
- executor: EngineQueryExecutor running plan queries through SQLAlchemy
"""

from planscope.plans.executor import INTERNAL_OPTION, EngineQueryExecutor
from planscope.plans.factory import create_plan_provider, discover_provider_registry
from planscope.plans.protocols import PlanProviderProtocol, QueryExecutorProtocol
from planscope.plans.providers import (
    BasePlanProvider,
    MySQLPlanProvider,
    NoopPlanProvider,
    OraclePlanProvider,
    PostgresPlanProvider,
    SQLitePlanProvider,
)

__all__ = [
    "INTERNAL_OPTION",
    "BasePlanProvider",
    "EngineQueryExecutor",
    "MySQLPlanProvider",
    "NoopPlanProvider",
    "OraclePlanProvider",
    "PlanProviderProtocol",
    "PostgresPlanProvider",
    "QueryExecutorProtocol",
    "SQLitePlanProvider",
    "create_plan_provider",
    "discover_provider_registry",
]
