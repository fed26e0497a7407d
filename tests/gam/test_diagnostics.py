"""Tests for EDF, GCV and dispersion."""

import numpy as np
import pytest

from pyadditive.gam._basis import build_basis
from pyadditive.gam._diagnostics import compute_diagnostics
from pyadditive.gam._penalty import penalty_matrix
from pyadditive.gam._pirls import assemble_design, penalty_blocks, solve_pirls
from pyadditive.gam.families import IDENTITY, LOG, NORMAL, POISSON


@pytest.fixture
def smooth_design(sin_data):
    basis = build_basis(sin_data['x'], 10, 3, variable='x')
    design = assemble_design(sin_data['y'], [basis.matrix], [True], names=['x'])
    return design, [penalty_matrix(10)]


class TestEDF:

    def test_matches_hat_matrix_trace(self, smooth_design):
        design, penalties = smooth_design
        alpha = np.array([3.0])
        fit = solve_pirls(design, penalties, alpha, NORMAL, IDENTITY)
        diag = compute_diagnostics(fit, design, NORMAL)

        XZ, Z = design.XZ, design.Z
        S = Z.T @ penalty_blocks(design, penalties, alpha) @ Z
        H = XZ @ np.linalg.solve(XZ.T @ XZ + S, XZ.T)
        assert diag.edf == pytest.approx(np.trace(H), rel=1e-8)

    def test_monotone_in_alpha(self, smooth_design):
        design, penalties = smooth_design
        edfs = []
        for a in (1e-3, 1e-1, 1.0, 10.0, 1e3):
            fit = solve_pirls(design, penalties, np.array([a]), NORMAL, IDENTITY)
            edfs.append(compute_diagnostics(fit, design, NORMAL).edf)
        assert all(e1 > e2 for e1, e2 in zip(edfs, edfs[1:]))

    def test_bounds(self, smooth_design):
        design, penalties = smooth_design
        fit = solve_pirls(design, penalties, np.array([0.0]), NORMAL, IDENTITY)
        diag = compute_diagnostics(fit, design, NORMAL)
        # Unpenalized: intercept + k - 1 identifiable smooth coefficients
        assert diag.edf == pytest.approx(10.0, rel=1e-8)

        fit = solve_pirls(design, penalties, np.array([1e6]), NORMAL, IDENTITY)
        diag = compute_diagnostics(fit, design, NORMAL)
        # Heavy penalty leaves the intercept and the linear trend
        assert diag.edf == pytest.approx(2.0, abs=0.1)

    def test_per_term_split(self, smooth_design):
        design, penalties = smooth_design
        fit = solve_pirls(design, penalties, np.array([1.0]), NORMAL, IDENTITY)
        diag = compute_diagnostics(fit, design, NORMAL)
        assert set(diag.edf_per_term) == {'x'}
        # Intercept is orthogonal to the centered block under unit weights
        assert diag.edf - diag.edf_per_term['x'] == pytest.approx(1.0, rel=1e-8)

    def test_linear_model_edf_is_column_count(self, rng):
        n = 40
        x1, x2 = rng.normal(size=n), rng.normal(size=n)
        y = 1.0 + x1 - x2 + rng.normal(size=n)
        design = assemble_design(y, [x1, x2], [False, False], names=['x1', 'x2'])
        fit = solve_pirls(design, [None, None], np.zeros(2), NORMAL, IDENTITY)
        diag = compute_diagnostics(fit, design, NORMAL)
        assert diag.edf == pytest.approx(3.0)
        assert dict(diag.edf_per_term) == pytest.approx({'x1': 1.0, 'x2': 1.0})


class TestGCVAndDispersion:

    def test_gcv_formula(self, smooth_design):
        design, penalties = smooth_design
        fit = solve_pirls(design, penalties, np.array([1.0]), NORMAL, IDENTITY)
        diag = compute_diagnostics(fit, design, NORMAL)
        n = design.n
        assert diag.gcv == pytest.approx(n * fit.deviance / (n - diag.edf) ** 2)
        assert diag.gcv > 0
        assert diag.dispersion == pytest.approx(fit.deviance / (n - diag.edf))
        assert diag.deviance == fit.deviance
        assert diag.converged
        assert diag.n_iter == fit.n_iter

    def test_fixed_dispersion(self, poisson_data):
        basis = build_basis(poisson_data['x'], 8, 3)
        design = assemble_design(poisson_data['y'], [basis.matrix], [True])
        fit = solve_pirls(design, [penalty_matrix(8)], np.array([1.0]),
                          POISSON, LOG)
        diag = compute_diagnostics(fit, design, POISSON)
        assert diag.dispersion == 1.0

    def test_saturated_model(self, rng):
        # n = 3 observations and 3 coefficients: no residual df
        x1 = np.array([0.0, 1.0, 2.0])
        x2 = np.array([1.0, -1.0, 3.0])
        y = rng.normal(size=3)
        design = assemble_design(y, [x1, x2], [False, False])
        fit = solve_pirls(design, [None, None], np.zeros(2), NORMAL, IDENTITY)
        diag = compute_diagnostics(fit, design, NORMAL)
        assert diag.gcv == float('inf')
        assert np.isnan(diag.dispersion)
