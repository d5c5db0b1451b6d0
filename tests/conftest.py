"""Pytest fixtures for identification tests."""

import numpy as np
import pytest
from scipy.signal import lfilter

# True second-order plant: A = 1 - 1.5 z^-1 + 0.7 z^-2, B = z^-1 + 0.5 z^-2
A_TRUE = np.array([1.0, -1.5, 0.7])
B_TRUE = np.array([1.0, 0.5])
C_TRUE = np.array([1.0, 0.4, 0.2])


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def arx_data(rng):
    """Noiseless ARX(2, 2) data started from rest, as (a, b, u, y)."""
    u = rng.standard_normal(400)
    y = lfilter(np.concatenate([[0.], B_TRUE]), A_TRUE, u)
    return A_TRUE, B_TRUE, u, y


@pytest.fixture
def armax_data(rng):
    """ARMAX(2, 2, 2) data with a measured white noise, as (a, b, c, u, e, y)."""
    N = 4000
    u = rng.standard_normal(N)
    e = 0.1*rng.standard_normal(N)
    y = lfilter(np.concatenate([[0.], B_TRUE]), A_TRUE, u) \
        + lfilter(C_TRUE, A_TRUE, e)
    return A_TRUE, B_TRUE, C_TRUE, u, e, y


@pytest.fixture
def step_data():
    """Step response of a pole at 0.5 with gain 0.5."""
    u = np.ones(5)
    y = np.array([0, 0.5, 0.75, 0.875, 0.9375])
    return u, y
