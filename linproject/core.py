"""
Core data containers for successive projection.

A restriction system is stored in canonical row form: a CSR matrix whose row
``i`` holds the nonzero coefficients of restriction ``i`` with sorted,
duplicate-free column indices, together with the right-hand side ``b`` and
the number of leading equality rows ``neq``. Rows ``0..neq-1`` encode
``a_i . x = b_i`` and the remaining rows encode ``a_i . x <= b_i``.

References:
    - Hildreth, *A quadratic programming procedure* (1957)
    - Censor & Zenios, *Parallel Optimization* (1997)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple

import numpy as np
import scipy.sparse as sp

DEFAULT_EPS = 1e-8
DEFAULT_MAXITER = 1000
DEFAULT_DIVERGENCE_FACTOR = 1e10


class Status(IntEnum):
    """Exit status of a projection. Values match the integer status codes."""

    CONVERGED = 0
    ALLOCATION_FAILED = 1
    DIVERGED = 2
    MAX_ITER = 3

    @property
    def message(self) -> str:
        return _STATUS_MESSAGES[self]


_STATUS_MESSAGES = {
    Status.CONVERGED: "Converged: all restrictions satisfied within tolerance",
    Status.ALLOCATION_FAILED: "Could not allocate memory for the projection",
    Status.DIVERGED: "Divergence detected (restrictions may be contradictory)",
    Status.MAX_ITER: "Maximum number of iterations reached",
}


@dataclass(frozen=True, eq=False)
class ProjectionResult:
    """
    Outcome of a single projection.

    Attributes:
        x: Final estimate. Always present, also when ``status`` is nonzero.
        status: Exit status, see :class:`Status`.
        tol: Stopping measure at ``x``, see
            :meth:`RestrictionSystem.convergence_violation`.
        iterations: Number of completed passes over the restrictions.
        duration: Wall-clock time of the solve in seconds.
        objective: Weighted squared distance ``sum w (x0 - x)**2``.
        message: Human-readable description of ``status``.
    """

    x: np.ndarray
    status: Status
    tol: float
    iterations: int
    duration: float
    objective: float
    message: str = ""

    @property
    def converged(self) -> bool:
        return self.status is Status.CONVERGED


@dataclass(frozen=True, eq=False)
class RestrictionSystem:
    """
    Canonical, immutable restriction system.

    Instances are produced by :mod:`linproject.normalize`; the CSR index and
    data arrays as well as ``rhs`` are flagged read-only so that one system
    can be shared by concurrent solves.
    """

    matrix: sp.csr_matrix
    rhs: np.ndarray
    neq: int
    degenerate_rows: Tuple[int, ...] = ()

    @property
    def nrows(self) -> int:
        return int(self.matrix.shape[0])

    @property
    def nvar(self) -> int:
        return int(self.matrix.shape[1])

    @property
    def nnz(self) -> int:
        return int(self.matrix.nnz)

    @property
    def is_equality(self) -> np.ndarray:
        return np.arange(self.nrows) < self.neq

    def residuals(self, x: np.ndarray) -> np.ndarray:
        """Signed residuals ``A x - b``."""
        return self.matrix @ x - self.rhs

    def violation(self, residuals: np.ndarray) -> float:
        """
        L-infinity violation for precomputed residuals.

        Equality rows count with ``|r_i|``, inequality rows with
        ``max(r_i, 0)``.
        """
        worst = np.concatenate(
            [np.abs(residuals[: self.neq]), residuals[self.neq :], [0.0]]
        )
        return float(np.max(worst))

    def max_violation(self, x: np.ndarray) -> float:
        return self.violation(self.residuals(x))

    def convergence_violation(self, x: np.ndarray) -> float:
        """
        Violation measure used to stop a projection.

        Inequality rows count with ``max(r_i, 0)`` as in :meth:`violation`.
        Equality rows count with ``|r_i|`` relative to
        ``max(1, |b_i|, sum_j |a_ij x_j|)``: an equality is projected onto
        exactly, so what remains is rounding error that grows with the
        magnitude of its terms.
        """
        residuals = self.residuals(x)
        neq = self.neq
        magnitude = abs(self.matrix[:neq]) @ np.abs(x)
        scale = np.maximum(np.maximum(np.abs(self.rhs[:neq]), magnitude), 1.0)
        worst = np.concatenate(
            [np.abs(residuals[:neq]) / scale, residuals[neq:], [0.0]]
        )
        return float(np.max(worst))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RestrictionSystem):
            return NotImplemented
        return (
            self.matrix.shape == other.matrix.shape
            and self.neq == other.neq
            and np.array_equal(self.matrix.indptr, other.matrix.indptr)
            and np.array_equal(self.matrix.indices, other.matrix.indices)
            and np.array_equal(self.matrix.data, other.matrix.data)
            and np.array_equal(self.rhs, other.rhs)
        )

    __hash__ = None  # type: ignore[assignment]


__all__ = [
    "DEFAULT_EPS",
    "DEFAULT_MAXITER",
    "DEFAULT_DIVERGENCE_FACTOR",
    "Status",
    "ProjectionResult",
    "RestrictionSystem",
]
