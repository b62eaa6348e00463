"""
Successive projection engine.

The engine cycles through the restriction rows and moves the estimate towards
each row's hyperplane along the direction that is orthogonal under the metric
``diag(w)``. For row ``a`` with residual ``v = a . x - b`` a full projection is

    x_j <- x_j - (v / sum_k a_k**2 / w_k) * a_j / w_j

which reduces to a Euclidean projection when all weights are equal.

Equality rows are projected whenever their residual is above the rounding
level of the row. Inequality rows follow Hildreth's scheme: every row keeps
the accumulated step as a nonnegative multiplier. A row violated by more
than ``eps`` is projected and its multiplier grows; a row that is slack while
its multiplier is positive gives back at most that multiplier. The limit is
therefore the weighted projection of the start, not just some feasible point.

A pass ends the projection with status 0 when the violation measure of
:meth:`~linproject.core.RestrictionSystem.convergence_violation` is at most
``eps`` and either the estimate moved by at most ``eps`` (relative to its
magnitude) or no passes remain. Further passes only release multipliers, so
a feasible estimate is never reported as an iteration-limit failure.
Failure outcomes are never raised; they are reported through
:class:`~linproject.core.Status` together with the last estimate.

References:
    - Hildreth, *A quadratic programming procedure* (1957)
    - Censor & Zenios, *Parallel Optimization* (1997)
"""

from __future__ import annotations

import time

import numpy as np

from .core import (
    DEFAULT_DIVERGENCE_FACTOR,
    DEFAULT_EPS,
    DEFAULT_MAXITER,
    ProjectionResult,
    RestrictionSystem,
    Status,
)
from .debug_mode import is_debug_enabled, log_pass
from .logging import get_logger

logger = get_logger(__name__)

# residuals within this many ulps of the row terms are rounding noise
_ROUNDING = 64 * np.finfo(float).eps


def _row_scaling(system: RestrictionSystem, w: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Per-solve buffers: ``a_ij / w_j`` for every nonzero and, per row,
    ``sum_j a_ij**2 / w_j``.
    """

    matrix = system.matrix
    scaled = matrix.data / w[matrix.indices]
    row_ids = np.repeat(np.arange(system.nrows), np.diff(matrix.indptr))
    denom = np.bincount(row_ids, weights=matrix.data * scaled, minlength=system.nrows)
    return scaled, denom


def _sweep(
    system: RestrictionSystem,
    estimate: np.ndarray,
    scaled: np.ndarray,
    indptr: list,
    denom: list,
    rhs: list,
    multipliers: list,
    eps: float,
) -> int:
    """
    One pass over all rows, correcting ``estimate`` and ``multipliers`` in
    place. Returns the number of rows that moved the estimate.
    """

    indices = system.matrix.indices
    data = system.matrix.data
    neq = system.neq
    corrected = 0
    for i in range(system.nrows):
        d = denom[i]
        if d == 0.0:
            # degenerate row, nothing to project onto
            continue
        start, end = indptr[i], indptr[i + 1]
        cols = indices[start:end]
        if i < neq:
            terms = data[start:end] * estimate[cols]
            v = float(terms.sum()) - rhs[i]
            if abs(v) <= _ROUNDING * max(abs(rhs[i]), float(np.abs(terms).sum())):
                continue
            step = v / d
        else:
            v = float(data[start:end] @ estimate[cols]) - rhs[i]
            if v > eps:
                step = v / d
            elif v < 0.0 and multipliers[i] > 0.0:
                step = max(v / d, -multipliers[i])
            else:
                continue
            multipliers[i] += step
        estimate[cols] -= step * scaled[start:end]
        corrected += 1
    return corrected


def _objective(x0: np.ndarray, x: np.ndarray, w: np.ndarray) -> float:
    return float(np.sum(w * (x0 - x) ** 2))


def allocation_failure(x0, started: float) -> ProjectionResult:
    """Status 1 result carrying a copy of the start, or the start itself."""
    try:
        x = np.array(x0, dtype=float, copy=True)
    except MemoryError:
        x = x0
    return ProjectionResult(
        x=x,
        status=Status.ALLOCATION_FAILED,
        tol=float("nan"),
        iterations=0,
        duration=time.perf_counter() - started,
        objective=0.0,
        message=Status.ALLOCATION_FAILED.message,
    )


def run_projection(
    system: RestrictionSystem,
    x: np.ndarray,
    w: np.ndarray,
    eps: float = DEFAULT_EPS,
    maxiter: int = DEFAULT_MAXITER,
    divergence_factor: float = DEFAULT_DIVERGENCE_FACTOR,
) -> ProjectionResult:
    """
    Project ``x`` onto the restrictions of ``system`` under weights ``w``.

    Inputs are assumed to be validated: ``x`` and ``w`` are finite float
    arrays of length ``system.nvar``, ``w > 0``, ``eps >= 0`` and
    ``maxiter >= 1``. ``x`` is not modified.

    Divergence is declared when the estimate stops being finite or when the
    estimate or the violation grows beyond
    ``divergence_factor * max(1, max|x|, max|b|)``.
    """

    started = time.perf_counter()
    try:
        estimate = np.array(x, dtype=float, copy=True)
        previous = np.empty_like(estimate)
        scaled, denom_arr = _row_scaling(system, w)
        # plain lists give fast scalar access inside the row loop
        indptr = system.matrix.indptr.tolist()
        denom = denom_arr.tolist()
        rhs = system.rhs.tolist()
        multipliers = [0.0] * system.nrows
    except MemoryError:
        logger.warning(
            "Could not allocate projection buffers for %d variables and %d nonzeros",
            system.nvar,
            system.nnz,
        )
        return allocation_failure(x, started)

    scale = max(1.0, float(np.max(np.abs(x))), float(np.max(np.abs(system.rhs))))
    bound = divergence_factor * scale
    debug = is_debug_enabled()

    status = Status.MAX_ITER
    iterations = 0
    tol = system.convergence_violation(estimate)
    if tol <= eps:
        # no multipliers to release yet
        status = Status.CONVERGED
    else:
        try:
            with np.errstate(over="ignore", invalid="ignore"):
                while iterations < maxiter:
                    np.copyto(previous, estimate)
                    corrected = _sweep(
                        system, estimate, scaled, indptr, denom, rhs, multipliers, eps
                    )
                    iterations += 1
                    tol = system.convergence_violation(estimate)
                    change = float(np.max(np.abs(estimate - previous)))
                    if debug:
                        log_pass(logger, iterations, tol, change, corrected, multipliers)
                    if (
                        not np.isfinite(tol)
                        or not np.isfinite(change)
                        or tol > bound
                        or float(np.max(np.abs(estimate))) > bound
                    ):
                        status = Status.DIVERGED
                        break
                    settled = change <= eps * max(1.0, float(np.max(np.abs(estimate))))
                    if tol <= eps and (settled or iterations == maxiter):
                        status = Status.CONVERGED
                        break
        except MemoryError:
            logger.warning("Ran out of memory after %d passes", iterations)
            status = Status.ALLOCATION_FAILED

    duration = time.perf_counter() - started
    if status is Status.CONVERGED:
        logger.debug(
            "Converged after %d passes (tol=%.3e, %.4fs)", iterations, tol, duration
        )
    else:
        logger.info("%s after %d passes (tol=%.3e)", status.message, iterations, tol)

    with np.errstate(over="ignore", invalid="ignore"):
        objective = _objective(x, estimate, w)

    return ProjectionResult(
        x=estimate,
        status=status,
        tol=float(tol),
        iterations=iterations,
        duration=duration,
        objective=objective,
        message=status.message,
    )


__all__ = ["run_projection", "allocation_failure"]
