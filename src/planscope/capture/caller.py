"""Caller-context resolution.

SQL usually executes deep inside ORM and driver frames. To make a
diagnostic actionable we report the innermost frame that belongs to the
application, identified by a module prefix (the base path).
"""

import sys
from collections.abc import Iterable
from types import FrameType

UNKNOWN_CALLER = "Unknown method"


def describe_frame(frame: FrameType) -> str:
    """Render a frame as ``module.qualname:lineno``."""
    module = frame.f_globals.get("__name__", "<unknown>")
    return f"{module}.{frame.f_code.co_qualname}:{frame.f_lineno}"


def capture_call_stack(skip: int = 1) -> list[str]:
    """Simplified call stack of the current thread, innermost frame first.

    Args:
        skip: Number of innermost frames to drop (1 drops this function).
    """
    frames: list[str] = []
    frame: FrameType | None = sys._getframe(skip)
    while frame is not None:
        frames.append(describe_frame(frame))
        frame = frame.f_back
    return frames


def resolve_caller(frames: Iterable[str], base_path: str) -> str:
    """Return the first frame whose qualified name starts with base_path.

    Frames must be ordered innermost first. An empty base path matches
    nothing, since every frame would qualify.

    Example:
        >>> resolve_caller(["sqlalchemy.engine.Connection.execute:1", "shop.users.load:7"], "shop")
        'shop.users.load:7'
    """
    if not base_path:
        return UNKNOWN_CALLER
    for frame in frames:
        if frame.startswith(base_path):
            return frame
    return UNKNOWN_CALLER
