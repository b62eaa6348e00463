"""
One-shot solver entry points.

:func:`project` and :func:`sparse_project` normalize the restrictions and
solve once; they are equivalent to :func:`compile` followed by a single
:meth:`CompiledRestrictions.solve`. Use :func:`compile` directly when the same
restrictions are applied to many records.
"""

from __future__ import annotations

import time
from typing import Optional

from .compiled import CompiledRestrictions
from .core import DEFAULT_DIVERGENCE_FACTOR, DEFAULT_EPS, DEFAULT_MAXITER, ProjectionResult
from .engine import allocation_failure
from .logging import get_logger
from .utils import as_vector

logger = get_logger(__name__)


def compile(  # noqa: A001
    restrictions,
    b,
    neq: int,
    sparse: bool = False,
    nvar: Optional[int] = None,
    base: int = 1,
) -> CompiledRestrictions:
    """
    Normalize a restriction system once for repeated solving.

    Args:
        restrictions: Dense ``(m, n)`` coefficient matrix, or when ``sparse``
            is True, ``(row, column, coefficient)`` entries.
        b: Right-hand side with one entry per restriction.
        neq: Number of leading equality restrictions.
        sparse: Interpret ``restrictions`` as triplets.
        nvar: Number of variables for sparse input (largest column by default).
        base: Index base of sparse input (1 or 0).

    Raises:
        ValueError: If the restrictions fail validation.
    """

    if sparse:
        return CompiledRestrictions.from_triplets(restrictions, b, neq, nvar=nvar, base=base)
    if nvar is not None:
        raise ValueError("nvar only applies to sparse input")
    return CompiledRestrictions.from_dense(restrictions, b, neq)


def project(
    x,
    A,
    b,
    neq: int,
    w=None,
    eps: float = DEFAULT_EPS,
    maxiter: int = DEFAULT_MAXITER,
    divergence_factor: float = DEFAULT_DIVERGENCE_FACTOR,
) -> ProjectionResult:
    """
    Minimize ``sum w (x - x0)**2`` subject to dense linear restrictions.

    The first ``neq`` rows of ``A x = b`` are equalities, the remaining rows
    are inequalities ``A x <= b``.

    Args:
        x: Start vector of length ``A.shape[1]``.
        A: Coefficient matrix.
        b: Right-hand side.
        neq: Number of equality rows.
        w: Positive weights; all ones when omitted.
        eps: Tolerance on the L-infinity violation.
        maxiter: Maximum number of passes over the restrictions.
        divergence_factor: See :func:`linproject.engine.run_projection`.

    Returns:
        :class:`ProjectionResult`. Numerical failures are reported through its
        ``status``; invalid arguments raise ``ValueError``.
    """

    started = time.perf_counter()
    start = as_vector(x, "x")
    try:
        handle = compile(A, b, neq)
    except MemoryError:
        logger.warning("Could not allocate memory while normalizing restrictions")
        return allocation_failure(start, started)
    return handle.solve(start, w=w, eps=eps, maxiter=maxiter, divergence_factor=divergence_factor)


def sparse_project(
    x,
    triplets,
    b,
    neq: int,
    w=None,
    eps: float = DEFAULT_EPS,
    maxiter: int = DEFAULT_MAXITER,
    base: int = 1,
    divergence_factor: float = DEFAULT_DIVERGENCE_FACTOR,
) -> ProjectionResult:
    """
    Minimize ``sum w (x - x0)**2`` subject to restrictions in triplet form.

    ``triplets`` holds ``(row, column, coefficient)`` entries with indices
    counted from ``base``; the number of variables is ``len(x)``. Entries with
    the same ``(row, column)`` are summed.

    Returns:
        :class:`ProjectionResult`, see :func:`project`.
    """

    started = time.perf_counter()
    start = as_vector(x, "x")
    try:
        handle = compile(triplets, b, neq, sparse=True, nvar=start.shape[0], base=base)
    except MemoryError:
        logger.warning("Could not allocate memory while normalizing restrictions")
        return allocation_failure(start, started)
    return handle.solve(start, w=w, eps=eps, maxiter=maxiter, divergence_factor=divergence_factor)


__all__ = ["compile", "project", "sparse_project"]
