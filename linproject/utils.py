"""
Argument validation shared by the normalizer and the solver entry points.

Every helper raises ``ValueError`` for caller errors; numerical outcomes of a
solve are reported through :class:`linproject.core.Status` instead.
"""

from __future__ import annotations

from typing import Optional

import numpy as np


def as_vector(values, name: str, length: Optional[int] = None) -> np.ndarray:
    """
    Return ``values`` as a finite 1-D float64 array.

    Raises:
        ValueError: If the input is not one-dimensional, has the wrong length
            or contains NaN/inf entries.
    """

    arr = np.asarray(values, dtype=float)
    if arr.ndim != 1:
        raise ValueError(f"{name} must be 1D, got shape {arr.shape}")
    if length is not None and arr.shape[0] != length:
        raise ValueError(f"{name} must have length {length}, got {arr.shape[0]}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} must contain only finite values")
    return arr


def check_weights(w, n: int) -> np.ndarray:
    """Validate a weight vector, defaulting to all ones when ``w`` is None."""

    if w is None:
        return np.ones(n)
    weights = as_vector(w, "w", n)
    if np.any(weights <= 0.0):
        bad = int(np.flatnonzero(weights <= 0.0)[0])
        raise ValueError(
            f"w must be strictly positive, got w[{bad}] = {weights[bad]}"
        )
    return weights


def check_eps(eps: float) -> float:
    eps = float(eps)
    if not np.isfinite(eps) or eps < 0.0:
        raise ValueError(f"eps must be a finite non-negative number, got {eps}")
    return eps


def check_maxiter(maxiter: int) -> int:
    if isinstance(maxiter, bool) or int(maxiter) != maxiter or maxiter < 1:
        raise ValueError(f"maxiter must be a positive integer, got {maxiter}")
    return int(maxiter)


def check_neq(neq: int, nrows: int) -> int:
    if isinstance(neq, bool) or int(neq) != neq:
        raise ValueError(f"neq must be an integer, got {neq}")
    neq = int(neq)
    if neq < 0:
        raise ValueError(f"neq must be non-negative, got {neq}")
    if neq > nrows:
        raise ValueError(
            f"neq ({neq}) cannot exceed the number of restrictions ({nrows})"
        )
    return neq


def as_index_array(values, name: str, base: int = 1) -> np.ndarray:
    """
    Convert 1-based (or ``base``-based) indices to 0-based int64 indices.

    Raises:
        ValueError: If an index is not integral or lies below ``base``.
    """

    raw = np.asarray(values)
    if raw.ndim != 1:
        raise ValueError(f"{name} indices must be 1D, got shape {raw.shape}")
    if raw.size and not np.issubdtype(raw.dtype, np.integer):
        as_float = raw.astype(float)
        if not np.all(np.isfinite(as_float)) or np.any(as_float != np.round(as_float)):
            raise ValueError(f"{name} indices must be integers")
        raw = as_float
    idx = raw.astype(np.int64) - base
    if idx.size and idx.min() < 0:
        raise ValueError(
            f"{name} indices must be >= {base}, got {int(idx.min()) + base}"
        )
    return idx


__all__ = [
    "as_vector",
    "check_weights",
    "check_eps",
    "check_maxiter",
    "check_neq",
    "as_index_array",
]
