import logging
from io import StringIO

import numpy as np
import pytest

import linproject.engine as engine_module
from linproject.core import Status
from linproject.debug_mode import debug_context
from linproject.engine import run_projection
from linproject.logging import configure_logging
from linproject.normalize import from_dense


def _solve(A, b, neq, x, w=None, eps=1e-10, maxiter=1000, divergence_factor=1e10):
    system = from_dense(A, b, neq)
    x = np.asarray(x, dtype=float)
    w = np.ones_like(x) if w is None else np.asarray(w, dtype=float)
    return run_projection(system, x, w, eps, maxiter, divergence_factor)


def test_wedge_equal_weights(wedge):
    A, b = wedge
    res = _solve(A, b, 0, [0.8, -0.2])
    assert res.status is Status.CONVERGED
    assert np.allclose(res.x, [0.5, 0.5], atol=1e-8)
    assert res.tol <= 1e-6
    assert res.iterations <= 2
    assert res.objective == pytest.approx(0.3**2 + 0.7**2)
    assert res.duration >= 0.0


def test_feasible_start_is_returned_unchanged(wedge):
    A, b = wedge
    x0 = np.array([0.2, 2.0])
    res = _solve(A, b, 0, x0)
    assert res.status == 0
    assert res.iterations <= 1
    assert np.array_equal(res.x, x0)
    assert res.objective == pytest.approx(0.0)
    assert res.tol == 0.0


def test_start_vector_is_not_modified(wedge):
    A, b = wedge
    x0 = np.array([0.8, -0.2])
    _solve(A, b, 0, x0)
    assert np.array_equal(x0, [0.8, -0.2])


def test_weights_scale_the_correction(wedge):
    A, b = wedge
    x0 = [0.8, 0.5]
    plain = _solve(A, b, 0, x0)
    weighted = _solve(A, b, 0, x0, w=[1.0, 10.0])
    assert np.allclose(plain.x, [0.65, 0.65])
    # x moves ten times as far as the heavily weighted y
    expected = 0.8 - 0.3 / 1.1
    assert np.allclose(weighted.x, [expected, expected])
    assert abs(weighted.x[1] - 0.5) < abs(weighted.x[0] - 0.8) / 5
    assert not np.allclose(plain.x, weighted.x)
    assert weighted.objective == pytest.approx((0.8 - expected) ** 2 + 10 * (0.5 - expected) ** 2)


def test_iteration_limit_keeps_partial_estimate(wedge):
    A, b = wedge
    res = _solve(A, b, 0, [0.8, -0.2], w=[1.0, 10.0], maxiter=1)
    assert res.status is Status.MAX_ITER
    assert res.iterations == 1
    assert res.x is not None
    assert res.x.shape == (2,)
    assert np.all(np.isfinite(res.x))
    assert res.tol > 1e-10


def test_weighted_wedge_converges_with_more_passes(wedge):
    A, b = wedge
    res = _solve(A, b, 0, [0.8, -0.2], w=[1.0, 10.0], eps=1e-9)
    assert res.status is Status.CONVERGED
    assert res.iterations > 1
    assert np.allclose(res.x, [0.5, 0.5], atol=1e-6)


def test_single_equality_projection():
    res = _solve([[1.0, 1.0, 1.0]], [3.0], 1, [1.0, 2.0, 3.0])
    assert res.status is Status.CONVERGED
    assert np.allclose(res.x, [0.0, 1.0, 2.0])
    assert res.objective == pytest.approx(3.0)


def test_equalities_are_corrected_in_both_directions():
    res = _solve([[1.0, 0.0], [0.0, 1.0]], [1.0, 2.0], 2, [5.0, -5.0])
    assert res.status is Status.CONVERGED
    assert np.allclose(res.x, [1.0, 2.0])


def test_box_restrictions_clip_for_any_weights(rng):
    n = 6
    lower = rng.uniform(-1.0, 0.0, n)
    upper = rng.uniform(0.0, 1.0, n)
    x0 = rng.uniform(-2.0, 2.0, n)
    w = rng.uniform(0.1, 10.0, n)
    A = np.vstack([np.eye(n), -np.eye(n)])
    b = np.concatenate([upper, -lower])
    res = _solve(A, b, 0, x0, w=w)
    assert res.status is Status.CONVERGED
    assert np.allclose(res.x, np.clip(x0, lower, upper))


def test_violated_halfspace_ends_on_boundary(rng):
    a = rng.normal(size=4)
    x0 = rng.normal(size=4)
    b = float(a @ x0) - 1.0
    res = _solve(a[None, :], [b], 0, x0, eps=1e-12)
    assert res.status is Status.CONVERGED
    assert abs(a @ res.x - b) <= 1e-9


def test_contradictory_restrictions_hit_iteration_limit():
    # x1 <= 0 and x1 >= 1
    res = _solve([[1.0, 0.0], [-1.0, 0.0]], [0.0, -1.0], 0, [0.5, 0.0], maxiter=20)
    assert res.status is Status.MAX_ITER
    assert res.iterations == 20
    assert res.tol == pytest.approx(1.0)


def test_divergence_is_detected():
    # tiny weight on x2 makes the first correction explode along x2
    A = [[1.0, 1e-6], [-1.0, 0.0]]
    b = [0.0, -1.0]
    res = _solve(A, b, 0, [1.0, 0.0], w=[1.0, 1e-12], divergence_factor=10.0)
    assert res.status is Status.DIVERGED
    assert res.iterations == 1
    assert res.x is not None
    assert abs(res.x[1]) > 10.0


def test_degenerate_row_is_skipped_but_counted():
    system = from_dense([[1.0, 0.0], [0.0, 0.0]], [0.0, -1.0], 0)
    res = run_projection(system, np.array([1.0, 1.0]), np.ones(2), 1e-8, 5)
    assert res.status is Status.MAX_ITER
    assert res.x[0] == pytest.approx(0.0)
    assert res.tol == pytest.approx(1.0)


def test_satisfied_degenerate_row_does_not_block_convergence():
    system = from_dense([[1.0, 0.0], [0.0, 0.0]], [0.0, 1.0], 0)
    res = run_projection(system, np.array([1.0, 1.0]), np.ones(2), 1e-8, 5)
    assert res.status is Status.CONVERGED


def test_allocation_failure_before_iterating(monkeypatch, wedge):
    def boom(*_args, **_kwargs):
        raise MemoryError

    monkeypatch.setattr(engine_module, "_row_scaling", boom)
    A, b = wedge
    res = _solve(A, b, 0, [0.8, -0.2])
    assert res.status is Status.ALLOCATION_FAILED
    assert res.iterations == 0
    assert np.array_equal(res.x, [0.8, -0.2])
    assert res.objective == 0.0


def test_allocation_failure_while_iterating(monkeypatch, wedge):
    def boom(*_args, **_kwargs):
        raise MemoryError

    monkeypatch.setattr(engine_module, "_sweep", boom)
    A, b = wedge
    res = _solve(A, b, 0, [0.8, -0.2])
    assert res.status == 1
    assert res.x is not None


def test_debug_mode_logs_every_pass(wedge):
    A, b = wedge
    stream = StringIO()
    configure_logging(level=logging.DEBUG, stream=stream)
    try:
        with debug_context(True):
            _solve(A, b, 0, [0.8, -0.2], w=[1.0, 10.0], maxiter=3)
    finally:
        configure_logging(level=logging.WARNING)
    output = stream.getvalue()
    assert "pass 1: max violation" in output
    assert "pass 3: max violation" in output
    assert "Maximum number of iterations reached" in output


def test_inactive_restriction_is_released():
    # x2 >= 1 is hit first, but the closest point to the origin only needs x1 + x2 >= 2
    A = [[0.0, -1.0], [-1.0, -1.0]]
    b = [-1.0, -2.0]
    res = _solve(A, b, 0, [0.0, 0.0], eps=1e-12)
    assert res.status is Status.CONVERGED
    assert np.allclose(res.x, [1.0, 1.0], atol=1e-9)
    assert res.objective == pytest.approx(2.0)


def test_mixed_equalities_and_inequalities():
    # x1 + x2 + x3 = 1, x >= 0
    A = np.vstack([np.ones((1, 3)), -np.eye(3)])
    b = np.array([1.0, 0.0, 0.0, 0.0])
    res = _solve(A, b, 1, [2.0, -1.0, 0.5], eps=1e-12)
    assert res.status is Status.CONVERGED
    # Euclidean projection of (2, -1, 0.5) onto the simplex
    assert np.allclose(res.x, [1.0, 0.0, 0.0], atol=1e-8)


def test_feasible_estimate_at_iteration_limit_is_converged(wedge):
    # one pass of equal-weight corrections lands on the corner of the wedge
    A, b = wedge
    res = _solve(A, b, 0, [0.8, -0.2], eps=1e-8, maxiter=1)
    assert res.status is Status.CONVERGED
    assert res.iterations == 1
    assert np.allclose(res.x, [0.5, 0.5])
    assert res.tol <= 1e-8


def test_iteration_limit_cuts_multiplier_release_short():
    A = [[0.0, -1.0], [-1.0, -1.0]]
    b = [-1.0, -2.0]
    res = _solve(A, b, 0, [0.0, 0.0], maxiter=1)
    # feasible after one pass, but x2 >= 1 has not been released yet
    assert res.status is Status.CONVERGED
    assert np.allclose(res.x, [0.5, 1.5])


def test_contradictory_equalities_hit_iteration_limit():
    res = _solve([[1.0, 0.0], [1.0, 0.0]], [0.0, 1.0], 2, [0.5, 0.0], maxiter=10)
    assert res.status is Status.MAX_ITER
    assert res.iterations == 10
    assert res.tol == pytest.approx(1.0)


def test_large_magnitude_equalities_converge(rng):
    # consistent equalities around 1e8, where rounding noise alone exceeds eps
    for _ in range(20):
        basis, _ = np.linalg.qr(rng.normal(size=(6, 3)))
        A = basis.T * rng.uniform(0.5, 2.0, size=(3, 1))
        target = rng.normal(scale=1e8, size=6)
        b = A @ target
        x0 = target + rng.normal(scale=1e6, size=6)
        res = _solve(A, b, 3, x0, eps=1e-8, maxiter=200)
        assert res.status is Status.CONVERGED
        assert res.iterations < 200
        assert res.tol <= 1e-8
        terms = np.abs(A) @ np.abs(res.x)
        assert np.all(np.abs(A @ res.x - b) <= 1e-12 * terms)


def test_debug_trace_counts_corrections(wedge):
    A, b = wedge
    stream = StringIO()
    configure_logging(level=logging.DEBUG, stream=stream)
    try:
        with debug_context(True):
            _solve(A, b, 0, [0.8, -0.2], maxiter=1)
    finally:
        configure_logging(level=logging.WARNING)
    assert "2 row(s) corrected, 2 active inequality multiplier(s)" in stream.getvalue()
