"""
Pass tracing for the projection engine.

With debug mode on, :func:`~linproject.engine.run_projection` reports every
pass over the restrictions through :func:`log_pass`. Each line shows the
stopping measure, the largest move of the estimate, how many rows were
corrected and how many inequality rows hold a positive multiplier. The last
number tells whether a solve is still releasing earlier corrections.

The switch starts from the ``LINPROJECT_DEBUG`` environment variable
(``1``, ``true``, ``yes`` or ``on``).
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Sequence

_DEBUG_ENV_VAR = "LINPROJECT_DEBUG"
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _enabled_from_environment() -> bool:
    return os.getenv(_DEBUG_ENV_VAR, "0").strip().lower() in _TRUTHY


_debug_enabled: bool = _enabled_from_environment()


def is_debug_enabled() -> bool:
    """Whether the engine traces every pass."""
    return _debug_enabled


def set_debug_enabled(enabled: bool) -> None:
    global _debug_enabled
    _debug_enabled = bool(enabled)


@contextmanager
def debug_context(enabled: bool = True) -> Iterator[None]:
    """
    Switch pass tracing on or off for the duration of a block.

    The switch is process-wide; solves running in other threads see it too.

    >>> with debug_context(True):
    ...     result = handle.solve(x)
    """
    global _debug_enabled
    prev = _debug_enabled
    _debug_enabled = bool(enabled)
    try:
        yield
    finally:
        _debug_enabled = prev


def log_pass(
    logger: logging.Logger,
    iteration: int,
    tol: float,
    change: float,
    corrected: int,
    multipliers: Sequence[float],
) -> None:
    """Write the DEBUG trace line of one completed pass."""
    active = sum(1 for u in multipliers if u > 0.0)
    logger.debug(
        "pass %d: max violation %.6e, max change %.6e, %d row(s) corrected, "
        "%d active inequality multiplier(s)",
        iteration,
        tol,
        change,
        corrected,
        active,
    )


__all__ = ["is_debug_enabled", "set_debug_enabled", "debug_context", "log_pass"]
