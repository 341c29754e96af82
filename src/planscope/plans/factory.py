# src/planscope/plans/factory.py
"""Factory functions for creating a plan provider from configuration.

This module provides the glue between configuration (a Dialect) and the
runtime provider instance. It handles:
1. Discovering provider classes via pluggy hooks
2. Building the dialect -> provider class registry
3. Instantiating the provider, falling back to the no-op provider when
   the dialect has no registered provider

Usage:
    from planscope.plans.factory import create_plan_provider

    provider = create_plan_provider(Dialect.MYSQL, EngineQueryExecutor(engine))
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pluggy
import structlog

from planscope.contracts.enums import Dialect
from planscope.contracts.errors import PlanProviderError, UnsupportedDialectError
from planscope.plans.hookspecs import PROJECT_NAME, PlanscopePlanSpec
from planscope.plans.protocols import PlanProviderProtocol, QueryExecutorProtocol
from planscope.plans.providers import BuiltinPlanProvidersPlugin, NoopPlanProvider

logger = structlog.get_logger(__name__)


def _provider_dialects(provider_class: type[Any]) -> frozenset[Dialect]:
    """Dialects served by a provider class.

    A class declares either ``dialects`` (several) or ``dialect`` (one).

    Raises:
        PlanProviderError: If the class declares neither.
    """
    declared = getattr(provider_class, "dialects", None)
    if declared is None:
        single = getattr(provider_class, "dialect", None)
        if not isinstance(single, Dialect):
            raise PlanProviderError(
                provider_class.__name__,
                f"Provider class must declare a Dialect in 'dialect' or 'dialects', got {single!r}",
            )
        return frozenset({single})
    return frozenset(declared)


def discover_provider_registry(provider_plugins: Iterable[Any] = ()) -> dict[Dialect, type[Any]]:
    """Discover plan providers via pluggy hooks.

    Args:
        provider_plugins: Additional plugin objects implementing
            ``planscope_get_plan_providers``.

    Returns:
        Mapping of dialect to provider class.

    Raises:
        PlanProviderError: If a plugin is invalid or two providers claim
            the same dialect.
    """
    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(PlanscopePlanSpec)

    for plugin in [BuiltinPlanProvidersPlugin(), *provider_plugins]:
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            raise PlanProviderError(
                "plan_plugins",
                f"Invalid plan provider plugin {type(plugin).__name__}: {e}",
            ) from e

    registry: dict[Dialect, type[Any]] = {}
    for provider_classes in plugin_manager.hook.planscope_get_plan_providers():
        for provider_class in provider_classes:
            for dialect in _provider_dialects(provider_class):
                if dialect in registry:
                    raise PlanProviderError(
                        provider_class.__name__,
                        f"Duplicate plan provider for dialect '{dialect}': "
                        f"{registry[dialect].__name__} and {provider_class.__name__}",
                    )
                registry[dialect] = provider_class
    return registry


def lookup_provider(registry: dict[Dialect, type[Any]], dialect: Dialect | None) -> type[Any]:
    """Provider class registered for a dialect.

    Raises:
        UnsupportedDialectError: If dialect is None or has no provider.
    """
    if dialect is None or dialect not in registry:
        raise UnsupportedDialectError(str(dialect), sorted(str(d) for d in registry))
    return registry[dialect]


def create_plan_provider(
    dialect: Dialect | None,
    executor: QueryExecutorProtocol | None,
    *,
    timeout_seconds: float | None = None,
    max_workers: int = 2,
    provider_plugins: Iterable[Any] = (),
) -> PlanProviderProtocol:
    """Create the plan provider for a dialect.

    An unknown or unsupported dialect is not fatal: it is logged and the
    no-op provider is returned, so capture keeps working without plans.

    Args:
        dialect: Configured dialect. None means the database could not be
            mapped to any dialect.
        executor: Collaborator that runs SQL against the database
        timeout_seconds: Plan query timeout; None disables it
        max_workers: Worker threads used for timed plan queries
        provider_plugins: Additional provider plugins

    Raises:
        PlanProviderError: If provider discovery itself is misconfigured.
    """
    registry = discover_provider_registry(provider_plugins)
    try:
        provider_class = lookup_provider(registry, dialect)
    except UnsupportedDialectError as e:
        logger.warning("Falling back to no-op plan provider", dialect=str(dialect), error=str(e))
        return NoopPlanProvider(executor, dialect=Dialect.NONE)

    if provider_class is NoopPlanProvider:
        provider: PlanProviderProtocol = NoopPlanProvider(executor, dialect=dialect)
    else:
        provider = provider_class(executor, timeout_seconds=timeout_seconds, max_workers=max_workers)
    logger.debug("Plan provider configured", dialect=str(dialect), provider=provider.name)
    return provider
