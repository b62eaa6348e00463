"""
Conversion of user input into canonical restriction rows.

Two explicit constructors are provided: :func:`from_dense` for a coefficient
matrix and :func:`from_triplets` for ``(row, column, coefficient)`` entries.
Both end in the same canonical CSR form, so a system built from either input
yields identical rows. Triplets sharing a ``(row, column)`` pair are summed
and coefficients that are exactly zero are dropped.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np
import scipy.sparse as sp

from .core import RestrictionSystem
from .logging import get_logger
from .utils import as_index_array, as_vector, check_neq

logger = get_logger(__name__)

# Number of degenerate row numbers spelled out in the warning.
_MAX_REPORTED_ROWS = 10


def _finalize(matrix: sp.csr_matrix, rhs: np.ndarray, neq: int) -> RestrictionSystem:
    matrix.sum_duplicates()
    matrix.eliminate_zeros()
    rhs = np.array(rhs, dtype=float, copy=True)

    counts = np.diff(matrix.indptr)
    degenerate = tuple(int(i) + 1 for i in np.flatnonzero(counts == 0))
    if degenerate:
        shown = ", ".join(str(i) for i in degenerate[:_MAX_REPORTED_ROWS])
        if len(degenerate) > _MAX_REPORTED_ROWS:
            shown += ", ..."
        logger.warning(
            "%d restriction(s) have no nonzero coefficients and will never be "
            "corrected; they still count towards the residual (rows %s)",
            len(degenerate),
            shown,
        )

    for arr in (matrix.indptr, matrix.indices, matrix.data, rhs):
        arr.flags.writeable = False

    logger.debug(
        "Normalized %d restrictions (%d equalities) over %d variables, %d nonzeros",
        matrix.shape[0],
        neq,
        matrix.shape[1],
        matrix.nnz,
    )
    return RestrictionSystem(matrix=matrix, rhs=rhs, neq=neq, degenerate_rows=degenerate)


def from_dense(A, b, neq: int) -> RestrictionSystem:
    """
    Build a restriction system from a dense ``(m, n)`` coefficient matrix.

    Rows ``1..neq`` are equalities ``A[i] . x = b[i]``; the remaining rows are
    inequalities ``A[i] . x <= b[i]``. Zero coefficients are treated as absent.

    Raises:
        ValueError: If ``A`` is not a non-empty 2D matrix, ``b`` does not have
            one entry per row, or ``neq`` is out of range.
    """

    a_mat = np.asarray(A, dtype=float)
    if a_mat.ndim != 2:
        raise ValueError(f"A must be a 2D matrix, got shape {a_mat.shape}")
    nrows, nvar = a_mat.shape
    if nrows == 0:
        raise ValueError("At least one restriction is required")
    if nvar == 0:
        raise ValueError("A must have at least one column")
    if not np.all(np.isfinite(a_mat)):
        raise ValueError("A must contain only finite values")
    rhs = as_vector(b, "b")
    if rhs.shape[0] != nrows:
        raise ValueError(
            f"b must have one entry per row of A ({nrows}), got {rhs.shape[0]}"
        )
    neq = check_neq(neq, nrows)
    return _finalize(sp.csr_matrix(a_mat), rhs, neq)


def triplets_to_arrays(triplets) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Split ``(row, column, coefficient)`` entries into three arrays.

    ``triplets`` may be any iterable of 3-tuples or a ``(k, 3)`` array.
    """

    if not isinstance(triplets, np.ndarray):
        triplets = list(triplets)
    arr = np.asarray(triplets, dtype=float)
    if arr.size == 0:
        return np.zeros(0), np.zeros(0), np.zeros(0)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(
            f"triplets must be (row, column, coefficient) entries, got shape {arr.shape}"
        )
    return arr[:, 0], arr[:, 1], arr[:, 2]


def from_triplets(
    rows,
    cols,
    coefs,
    b,
    neq: int,
    nvar: Optional[int] = None,
    base: int = 1,
) -> RestrictionSystem:
    """
    Build a restriction system from sparse ``(row, column, coefficient)`` data.

    Args:
        rows: Row index of every entry.
        cols: Column (variable) index of every entry.
        coefs: Coefficient of every entry.
        b: Right-hand side, one entry per restriction. Its length fixes the
            number of restrictions; rows without entries are degenerate.
        neq: Number of leading equality restrictions.
        nvar: Number of variables. Defaults to the largest column index.
        base: Index base of ``rows`` and ``cols`` (1 or 0).

    Raises:
        ValueError: On out-of-range or non-integral indices, mismatched input
            lengths, an empty ``b`` or an invalid ``neq``.
    """

    if base not in (0, 1):
        raise ValueError(f"base must be 0 or 1, got {base}")
    rhs = as_vector(b, "b")
    nrows = rhs.shape[0]
    if nrows == 0:
        raise ValueError("At least one restriction is required")
    neq = check_neq(neq, nrows)

    row_idx = as_index_array(rows, "row", base)
    col_idx = as_index_array(cols, "column", base)
    values = as_vector(coefs, "coef")
    if not row_idx.shape[0] == col_idx.shape[0] == values.shape[0]:
        raise ValueError(
            "rows, cols and coefs must have equal length, got "
            f"{row_idx.shape[0]}, {col_idx.shape[0]} and {values.shape[0]}"
        )
    if row_idx.size and row_idx.max() >= nrows:
        raise ValueError(
            f"row index {int(row_idx.max()) + base} exceeds the number of "
            f"restrictions given by b ({nrows})"
        )

    max_col = int(col_idx.max()) + 1 if col_idx.size else 0
    if nvar is None:
        if max_col == 0:
            raise ValueError("Cannot infer nvar from an empty triplet list")
        nvar = max_col
    else:
        if isinstance(nvar, bool) or int(nvar) != nvar or nvar < 1:
            raise ValueError(f"nvar must be a positive integer, got {nvar}")
        nvar = int(nvar)
        if max_col > nvar:
            raise ValueError(
                f"column index {max_col - 1 + base} exceeds nvar ({nvar})"
            )

    # tocsr() sums duplicate (row, column) entries
    matrix = sp.coo_matrix((values, (row_idx, col_idx)), shape=(nrows, nvar)).tocsr()
    return _finalize(matrix, rhs, neq)


__all__ = ["from_dense", "from_triplets", "triplets_to_arrays"]
