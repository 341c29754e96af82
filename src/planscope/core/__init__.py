# src/planscope/core/__init__.py
"""Core infrastructure: configuration and logging."""

from planscope.core.config import (
    CaptureSettings,
    LoggingSettings,
    PlanscopeSettings,
    PlanSettings,
    SinkSettings,
    load_settings,
)
from planscope.core.logging import configure_logging

__all__ = [
    "CaptureSettings",
    "LoggingSettings",
    "PlanSettings",
    "PlanscopeSettings",
    "SinkSettings",
    "configure_logging",
    "load_settings",
]
