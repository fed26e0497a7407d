"""End-to-end tests for fit()."""

import numpy as np
import pandas as pd
import pytest

import pyadditive
from pyadditive.core.exceptions import (
    FamilyMismatchError, InvalidBasisSpec, InvalidInputData,
    UnknownFamilyOrLink, UnsupportedTermError, ValidationError,
)
from pyadditive.gam import (
    FittedGAM, InterceptTerm, LinearTerm, OptimizerConfig, fit, gam, s,
)
from pyadditive.gam._basis import build_basis
from pyadditive.gam.families import BERNOULLI, LOGIT


class TestScenarios:

    def test_sin_smooth(self, sin_data):
        model = fit('y', [s('x', k=10)], sin_data)
        assert isinstance(model, FittedGAM)
        assert 1.0 < model.edf < 10.0
        assert model.gcv > 0
        assert model.converged
        assert model.alpha['x'] > 0
        # A smooth sine, not a straight line
        resid_sd = np.std(sin_data['y'] - model.fitted_values)
        assert resid_sd < 0.4

    def test_bernoulli_logit_recovers_probability(self, bernoulli_data):
        model = fit('y', [s('x', k=20, degree=3)], bernoulli_data,
                    family='bernoulli', link='logit')
        x_new = np.array([-1.0, 0.0, 1.0])
        p_hat = model.predict({'x': x_new})
        p_true = 1.0 / (1.0 + np.exp(-(0.5 + 1.5 * x_new)))
        assert np.all(np.abs(p_hat - p_true) < 0.4)
        assert model.dispersion == 1.0
        assert model.family is BERNOULLI
        assert model.link is LOGIT

    def test_additive_model(self, additive_data):
        model = fit('y', [InterceptTerm(), s('x1', k=8), LinearTerm('x2')],
                    additive_data)
        assert dict(model.coef_index) == {'x1': range(1, 9), 'x2': range(9, 10)}
        assert model.coefficients.shape == (10,)
        assert model.alpha['x2'] == 0.0
        assert model.term_coefficients('x2')[0] == pytest.approx(0.5, abs=0.1)
        assert model.intercept == pytest.approx(
            np.mean(additive_data['y'] - 0.5 * additive_data['x2']), abs=0.2)
        assert model.term_coefficients('x1').sum() == pytest.approx(0.0, abs=1e-10)
        assert set(model.diagnostics.edf_per_term) == {'x1', 'x2'}

    def test_poisson(self, poisson_data):
        model = fit('y', [s('x', k=8)], poisson_data, family='poisson')
        assert model.link_name == 'log'
        assert np.all(model.fitted_values > 0)
        assert model.dispersion == 1.0
        assert model.converged

    def test_gamma(self, gamma_data):
        model = fit('y', [s('x', k=6)], gamma_data, family='gamma')
        assert model.family_name == 'gamma'
        assert np.all(model.fitted_values > 0)
        assert 0.0 < model.dispersion < 1.0

    def test_normal_with_log_link(self, poisson_data):
        model = fit('y', [s('x', k=6)], poisson_data, family='normal', link='log')
        assert np.all(model.fitted_values > 0)

    def test_linear_only_is_ols(self, additive_data):
        model = fit('y', ['x1', 'x2'], additive_data)
        X = np.column_stack([np.ones(300), additive_data['x1'], additive_data['x2']])
        beta = np.linalg.lstsq(X, additive_data['y'], rcond=None)[0]
        np.testing.assert_allclose(model.coefficients, beta, rtol=1e-8, atol=1e-10)
        assert model.edf == pytest.approx(3.0)
        assert dict(model.alpha) == {'x1': 0.0, 'x2': 0.0}
        assert model.info['n_trials'] == 1

    def test_two_knot_linear_smooth_is_unpenalized(self, sin_data):
        # k=2, degree=1 spans straight lines; order-2 penalty is zero
        model = fit('y', [s('x', k=2, degree=1)], sin_data)
        slope, intercept = np.polyfit(sin_data['x'], sin_data['y'], 1)
        np.testing.assert_allclose(
            model.fitted_values, intercept + slope * sin_data['x'],
            rtol=1e-8, atol=1e-8,
        )
        assert model.edf == pytest.approx(2.0)
        assert model.diagnostics.edf_per_term['x'] == pytest.approx(1.0)

    def test_dataframe_input(self, sin_data):
        model = fit('y', [s('x', k=8)], pd.DataFrame(sin_data))
        assert model.n_obs == 200

    def test_gam_alias(self):
        assert gam is fit
        assert pyadditive.fit is fit

    def test_first_order_penalty(self, sin_data):
        model = fit('y', [s('x', k=10)], sin_data, penalty_order=1)
        assert model.params.penalty_order == 1
        assert 1.0 < model.edf < 10.0

    def test_powell_optimizer(self, sin_data):
        model = fit('y', [s('x', k=10)], sin_data,
                    optimizer=OptimizerConfig(method='Powell'))
        assert model.info['optimizer'] == 'Powell'


class TestResultEnvelope:

    def test_info_and_timing(self, sin_data):
        model = fit('y', [s('x', k=8)], sin_data)
        info = model.info
        assert info['method'] == 'GCV'
        assert info['family'] == 'normal'
        assert info['link'] == 'identity'
        assert info['optimizer'] == 'Nelder-Mead'
        assert info['n_trials'] >= info['n_failed_trials']
        assert info['gcv'] == model.gcv
        for section in ('total_seconds', 'basis', 'setup', 'smoothing'):
            assert section in model.timing
        assert model.warnings == ()

    def test_mappings_are_read_only(self, additive_data):
        model = fit('y', [s('x1', k=6), 'x2'], additive_data)
        with pytest.raises(TypeError):
            model.alpha['x1'] = 5.0
        with pytest.raises(TypeError):
            model.coef_index['x2'] = range(0, 1)
        with pytest.raises(TypeError):
            model.diagnostics.edf_per_term['x1'] = 0.0
        assert model.alpha['x1'] > 0

    def test_residuals(self, sin_data):
        model = fit('y', [s('x', k=8)], sin_data)
        np.testing.assert_allclose(model.residuals,
                                   sin_data['y'] - model.fitted_values)

    def test_bases_exposed(self, additive_data):
        model = fit('y', [s('x1', k=7), 'x2'], additive_data)
        assert set(model.bases) == {'x1'}
        assert model.bases['x1'].k == 7
        np.testing.assert_array_equal(model.col_means['x1'],
                                      model.bases['x1'].col_means)


class TestNonConvergence:

    def test_inner_limit_warns(self, poisson_data):
        with pytest.warns(RuntimeWarning, match="PIRLS did not converge"):
            model = fit('y', [s('x', k=8)], poisson_data, family='poisson',
                        max_inner_iter=1)
        assert not model.converged
        assert model.diagnostics.n_iter == 1
        assert any('PIRLS' in w for w in model.warnings)

    def test_outer_limit_warns(self, sin_data):
        with pytest.warns(RuntimeWarning, match="Smoothing parameter search"):
            model = fit('y', [s('x', k=8)], sin_data, max_outer_iter=1)
        assert not model.info['outer_converged']
        assert np.isfinite(model.gcv)


class TestErrors:

    def test_bernoulli_rejects_continuous_before_basis(self, sin_data, monkeypatch):
        calls = []

        def recording_build_basis(*args, **kwargs):
            calls.append(args)
            return build_basis(*args, **kwargs)

        monkeypatch.setattr('pyadditive.gam.solvers.build_basis',
                            recording_build_basis)
        with pytest.raises(FamilyMismatchError) as exc_info:
            fit('y', [s('x', k=10)], sin_data, family='bernoulli')
        assert exc_info.value.family == 'bernoulli'
        assert calls == []

    def test_basis_built_once_per_smooth(self, additive_data, monkeypatch):
        calls = []

        def recording_build_basis(*args, **kwargs):
            calls.append(kwargs.get('variable'))
            return build_basis(*args, **kwargs)

        monkeypatch.setattr('pyadditive.gam.solvers.build_basis',
                            recording_build_basis)
        fit('y', [s('x1', k=6), 'x2'], additive_data)
        assert calls == ['x1']

    def test_unknown_family(self, sin_data):
        with pytest.raises(UnknownFamilyOrLink, match="tweedie"):
            fit('y', [s('x')], sin_data, family='tweedie')

    def test_unknown_link(self, sin_data):
        with pytest.raises(UnknownFamilyOrLink, match="probit"):
            fit('y', [s('x')], sin_data, link='probit')

    def test_missing_column(self, sin_data):
        with pytest.raises(InvalidInputData) as exc_info:
            fit('y', [s('z')], sin_data)
        assert exc_info.value.variable == 'z'

    def test_length_mismatch(self, sin_data):
        data = dict(sin_data, x=sin_data['x'][:-1])
        with pytest.raises(InvalidInputData):
            fit('y', [s('x')], data)

    def test_invalid_basis(self):
        data = {'y': np.arange(30.0), 'x': np.tile([0.0, 1.0, 2.0], 10)}
        with pytest.raises(InvalidBasisSpec) as exc_info:
            fit('y', [s('x', k=5)], data)
        assert exc_info.value.variable == 'x'

    def test_unsupported_term(self, sin_data):
        with pytest.raises(UnsupportedTermError):
            fit('y', [s('x'), 42], sin_data)

    @pytest.mark.parametrize("kwargs", [
        {'max_outer_iter': 0},
        {'max_inner_iter': 0},
        {'outer_tol': 0.0},
        {'inner_tol': -1.0},
    ])
    def test_iteration_settings(self, sin_data, kwargs):
        with pytest.raises(ValidationError):
            fit('y', [s('x')], sin_data, **kwargs)

    def test_penalty_order_above_k(self, sin_data):
        with pytest.raises(ValidationError, match="penalty order"):
            fit('y', [s('x', k=4)], sin_data, penalty_order=5)
