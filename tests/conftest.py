"""Pytest configuration and shared fixtures for linproject tests.

This module provides:
- A deterministic numpy RNG fixture
- The small two-variable restriction system used across test modules
"""

import os

import numpy as np
import pytest


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    return np.random.default_rng(seed)


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Seed numpy's global RNG for every test."""
    np.random.seed(int(os.environ.get("TEST_RNG_SEED", "0")))


@pytest.fixture
def wedge():
    """Restrictions y >= x and x + y >= 1 written as A x <= b."""
    A = np.array([[1.0, -1.0], [-1.0, -1.0]])
    b = np.array([0.0, -1.0])
    return A, b
