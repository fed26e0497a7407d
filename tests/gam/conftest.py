"""
Synthetic datasets for GAM tests.
"""

import numpy as np
import pytest


@pytest.fixture
def sin_data(rng):
    """y = sin(x) + N(0, 0.3²) on x ∈ [0, 2π], n = 200."""
    n = 200
    x = np.sort(rng.uniform(0.0, 2.0 * np.pi, n))
    y = np.sin(x) + rng.normal(0.0, 0.3, n)
    return {'y': y, 'x': x}


@pytest.fixture
def additive_data(rng):
    """Normal response with one smooth and one linear effect, n = 300."""
    n = 300
    x1 = rng.uniform(-2.0, 2.0, n)
    x2 = rng.normal(0.0, 1.0, n)
    y = 1.0 + np.cos(x1) + 0.5 * x2 + rng.normal(0.0, 0.25, n)
    return {'y': y, 'x1': x1, 'x2': x2}


@pytest.fixture
def poisson_data(rng):
    """Counts with log-mean 0.5 + sin(x), n = 300."""
    n = 300
    x = rng.uniform(0.0, 3.0, n)
    y = rng.poisson(np.exp(0.5 + np.sin(x))).astype(np.float64)
    return {'y': y, 'x': x}


@pytest.fixture
def gamma_data(rng):
    """Positive response with log-mean 1 + 0.5x, shape 5, n = 200."""
    n = 200
    x = rng.uniform(-1.0, 1.0, n)
    mu = np.exp(1.0 + 0.5 * x)
    y = rng.gamma(shape=5.0, scale=mu / 5.0)
    return {'y': y, 'x': x}


@pytest.fixture
def bernoulli_data():
    """n = 2000, x ~ N(0, 1), η = 0.5 + 1.5x, y ~ Bernoulli(logit⁻¹(η))."""
    rng = np.random.default_rng(2024)
    n = 2000
    x = rng.standard_normal(n)
    p = 1.0 / (1.0 + np.exp(-(0.5 + 1.5 * x)))
    y = (rng.uniform(size=n) < p).astype(np.float64)
    return {'y': y, 'x': x}
