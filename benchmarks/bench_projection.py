"""Benchmark compiling a sparse restriction system and solving against it."""

import time
from typing import Dict

import numpy as np

import linproject as lp


def _random_triplets(rng: np.random.Generator, n_vars: int, n_rows: int, per_row: int):
    rows = np.repeat(np.arange(1, n_rows + 1), per_row)
    cols = np.concatenate(
        [rng.choice(n_vars, size=per_row, replace=False) + 1 for _ in range(n_rows)]
    )
    coefs = rng.normal(size=rows.shape[0])
    return np.column_stack([rows, cols, coefs])


def benchmark_compiled_projection(
    n_vars: int,
    n_rows: int,
    per_row: int = 5,
    n_records: int = 20,
    seed: int = 0,
) -> Dict[str, float]:
    """Benchmark compile-once/solve-many against repeated one-shot solves.

    Args:
        n_vars: Number of variables.
        n_rows: Number of inequality restrictions.
        per_row: Nonzero coefficients per restriction.
        n_records: Number of start vectors solved.
        seed: RNG seed.

    Returns:
        Dictionary with timing results.
    """
    rng = np.random.default_rng(seed)
    triplets = _random_triplets(rng, n_vars, n_rows, per_row)
    b = rng.uniform(-1.0, 0.0, n_rows)
    records = [rng.normal(size=n_vars) for _ in range(n_records)]

    start = time.perf_counter()
    handle = lp.compile(triplets, b, 0, sparse=True, nvar=n_vars)
    compile_time = time.perf_counter() - start

    start = time.perf_counter()
    compiled = [handle.solve(x, eps=1e-6) for x in records]
    solve_time = time.perf_counter() - start

    start = time.perf_counter()
    for x in records:
        lp.sparse_project(x, triplets, b, 0, eps=1e-6)
    one_shot_time = time.perf_counter() - start

    return {
        "n_vars": n_vars,
        "n_rows": n_rows,
        "nnz": handle.nnz,
        "compile_time_sec": compile_time,
        "time_per_solve_sec": solve_time / n_records,
        "time_per_one_shot_sec": one_shot_time / n_records,
        "mean_passes": float(np.mean([res.iterations for res in compiled])),
        "converged": sum(res.converged for res in compiled),
    }


if __name__ == "__main__":
    print("Benchmarking compiled projection...")
    results = benchmark_compiled_projection(n_vars=100_000, n_rows=5_000)
    print(f"Projection ({results['n_vars']} vars, {results['n_rows']} rows, {results['nnz']} nonzeros):")
    print(f"  Compile time: {results['compile_time_sec']*1e3:.2f} ms")
    print(f"  Time per compiled solve: {results['time_per_solve_sec']*1e3:.2f} ms")
    print(f"  Time per one-shot solve: {results['time_per_one_shot_sec']*1e3:.2f} ms")
    print(f"  Mean passes: {results['mean_passes']:.1f}, converged: {results['converged']}")
