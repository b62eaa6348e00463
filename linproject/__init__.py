"""linproject - weighted projection onto linear restrictions by successive projection."""

__version__ = "0.1.0"

from . import api, compiled, core, engine, normalize, utils
from .api import compile, project, sparse_project
from .compiled import CompiledRestrictions
from .core import (
    DEFAULT_DIVERGENCE_FACTOR,
    DEFAULT_EPS,
    DEFAULT_MAXITER,
    ProjectionResult,
    RestrictionSystem,
    Status,
)
from .debug_mode import debug_context, is_debug_enabled, set_debug_enabled
from .logging import configure_logging, get_logger, set_log_level
from .normalize import from_dense, from_triplets

__all__ = [
    "__version__",
    "api",
    "compiled",
    "core",
    "engine",
    "normalize",
    "utils",
    # Solver API
    "project",
    "sparse_project",
    "compile",
    "CompiledRestrictions",
    # Core types
    "Status",
    "ProjectionResult",
    "RestrictionSystem",
    "DEFAULT_EPS",
    "DEFAULT_MAXITER",
    "DEFAULT_DIVERGENCE_FACTOR",
    # Normalization
    "from_dense",
    "from_triplets",
    # Diagnostics
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
    "get_logger",
    "set_log_level",
    "configure_logging",
]
