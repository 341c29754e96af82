# src/planscope/plans/hookspecs.py
"""pluggy hook specifications for plan providers.

Usage (registering an extra provider):
    from planscope.plans.hookspecs import hookimpl

    class MyProvidersPlugin:
        @hookimpl
        def planscope_get_plan_providers(self):
            return [MyDialectPlanProvider]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from planscope.plans.providers.base import BasePlanProvider

PROJECT_NAME = "planscope"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class PlanscopePlanSpec:
    """Hook specifications for plan provider plugins."""

    @hookspec
    def planscope_get_plan_providers(self) -> list[type["BasePlanProvider"]]:  # type: ignore[empty-body]
        """Return plan provider classes (not instances).

        Each class declares the Dialect it serves; a dialect may be served
        by exactly one provider.
        """
