"""
Reusable compiled restriction systems.

Normalizing a large restriction system is the expensive part of a projection.
:class:`CompiledRestrictions` performs it once and can then be solved for many
start vectors and weight vectors. The handle is never modified by a solve, so
a single instance may be shared between threads as long as each thread works
on its own inputs.

Example:
    >>> handle = CompiledRestrictions.from_dense([[1, -1], [-1, -1]], [0, -1], neq=0)
    >>> handle.solve([0.8, -0.2]).status
    <Status.CONVERGED: 0>
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

import numpy as np

from .core import (
    DEFAULT_DIVERGENCE_FACTOR,
    DEFAULT_EPS,
    DEFAULT_MAXITER,
    ProjectionResult,
    RestrictionSystem,
)
from .engine import run_projection
from .normalize import from_dense, from_triplets, triplets_to_arrays
from .utils import as_vector, check_eps, check_maxiter, check_weights


class CompiledRestrictions:
    """
    Immutable handle around a normalized :class:`RestrictionSystem`.

    Args:
        system: Canonical restriction system, typically produced by
            :func:`linproject.normalize.from_dense` or
            :func:`linproject.normalize.from_triplets`.
    """

    __slots__ = ("_system",)

    def __init__(self, system: RestrictionSystem) -> None:
        if not isinstance(system, RestrictionSystem):
            raise ValueError(
                f"system must be a RestrictionSystem, got {type(system).__name__}"
            )
        object.__setattr__(self, "_system", system)

    def __setattr__(self, name, value):
        raise AttributeError("CompiledRestrictions is immutable")

    @classmethod
    def from_dense(cls, A, b, neq: int) -> "CompiledRestrictions":
        return cls(from_dense(A, b, neq))

    @classmethod
    def from_triplets(
        cls,
        triplets,
        b,
        neq: int,
        nvar: Optional[int] = None,
        base: int = 1,
    ) -> "CompiledRestrictions":
        """Compile ``(row, column, coefficient)`` entries, see :func:`from_triplets`."""
        rows, cols, coefs = triplets_to_arrays(triplets)
        return cls(from_triplets(rows, cols, coefs, b, neq, nvar=nvar, base=base))

    @property
    def system(self) -> RestrictionSystem:
        return self._system

    @property
    def nrows(self) -> int:
        return self._system.nrows

    @property
    def nvar(self) -> int:
        return self._system.nvar

    @property
    def neq(self) -> int:
        return self._system.neq

    @property
    def nnz(self) -> int:
        return self._system.nnz

    @property
    def degenerate_rows(self) -> Tuple[int, ...]:
        return self._system.degenerate_rows

    def row(self, i: int) -> Dict[int, float]:
        """Coefficients of restriction ``i`` (1-based) keyed by 1-based column."""
        if isinstance(i, bool) or int(i) != i or not 1 <= i <= self.nrows:
            raise ValueError(f"row must be an integer in [1, {self.nrows}], got {i}")
        matrix = self._system.matrix
        start, end = matrix.indptr[i - 1], matrix.indptr[i]
        return {
            int(col) + 1: float(coef)
            for col, coef in zip(matrix.indices[start:end], matrix.data[start:end])
        }

    def to_dense(self) -> np.ndarray:
        return self._system.matrix.toarray()

    def residuals(self, x) -> np.ndarray:
        """Signed residuals ``A x - b``; nonpositive inequality rows are satisfied."""
        return self._system.residuals(as_vector(x, "x", self.nvar))

    def max_violation(self, x) -> float:
        return self._system.violation(self.residuals(x))

    def is_feasible(self, x, eps: float = DEFAULT_EPS) -> bool:
        return self.max_violation(x) <= check_eps(eps)

    def solve(
        self,
        x,
        w=None,
        eps: float = DEFAULT_EPS,
        maxiter: int = DEFAULT_MAXITER,
        divergence_factor: float = DEFAULT_DIVERGENCE_FACTOR,
    ) -> ProjectionResult:
        """
        Project ``x`` onto the compiled restrictions.

        Args:
            x: Start vector of length ``nvar``. It is not modified.
            w: Positive weights of length ``nvar``; all ones when omitted.
            eps: Tolerance on the L-infinity violation of the restrictions.
            maxiter: Maximum number of passes over the restrictions.
            divergence_factor: Growth factor beyond which the iteration is
                declared divergent.

        Returns:
            A fresh :class:`ProjectionResult`.

        Raises:
            ValueError: On invalid ``x``, ``w``, ``eps`` or ``maxiter``.
        """

        start = as_vector(x, "x", self.nvar)
        weights = check_weights(w, self.nvar)
        eps = check_eps(eps)
        maxiter = check_maxiter(maxiter)
        if not divergence_factor > 1.0:
            raise ValueError(
                f"divergence_factor must be greater than 1, got {divergence_factor}"
            )
        return run_projection(
            self._system, start, weights, eps, maxiter, float(divergence_factor)
        )

    def __repr__(self) -> str:
        return (
            f"CompiledRestrictions(nrows={self.nrows}, neq={self.neq}, "
            f"nvar={self.nvar}, nnz={self.nnz})"
        )


__all__ = ["CompiledRestrictions"]
