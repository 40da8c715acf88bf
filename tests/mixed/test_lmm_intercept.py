"""Tests for lmm() with a random intercept."""

import json

import numpy as np
import pytest

from pyrichness.core.exceptions import ValidationError
from pyrichness.mixed import lmm


# ═══════════════════════════════════════════════════════════════════════
# Closed-form estimates for the balanced one-way model
# ═══════════════════════════════════════════════════════════════════════


class TestBalancedOneWay:
    """ML and REML estimates match the ANOVA closed forms."""

    def test_ml_estimates(self, balanced_one_way):
        d = balanced_one_way
        J, m = d['n_groups'], d['n_per_group']
        result = lmm(d['y'], d['X'], groups={'group': d['group']})

        sigma_sq = d['ssw'] / (J * (m - 1))
        tau_sq = (d['ssb'] / J - sigma_sq) / m

        np.testing.assert_allclose(result.coefficients[0], d['y'].mean(),
                                   rtol=1e-10)
        np.testing.assert_allclose(result.params.residual_variance, sigma_sq,
                                   rtol=5e-3)
        np.testing.assert_allclose(result.var_components[0].variance, tau_sq,
                                   rtol=5e-3)

    def test_reml_estimates(self, balanced_one_way):
        d = balanced_one_way
        J, m = d['n_groups'], d['n_per_group']
        result = lmm(d['y'], d['X'], groups={'group': d['group']}, reml=True)

        sigma_sq = d['ssw'] / (J * (m - 1))
        tau_sq = (d['ssb'] / (J - 1) - sigma_sq) / m

        np.testing.assert_allclose(result.params.residual_variance, sigma_sq,
                                   rtol=5e-3)
        np.testing.assert_allclose(result.var_components[0].variance, tau_sq,
                                   rtol=5e-3)
        assert result.info['method'] == 'REML'

    def test_intercept_se(self, balanced_one_way):
        """Var(ȳ) = (σ² + m σ_b²) / n for the balanced design."""
        d = balanced_one_way
        n = len(d['y'])
        result = lmm(d['y'], d['X'], groups={'group': d['group']})

        sigma_sq = result.params.residual_variance
        tau_sq = result.var_components[0].variance
        expected = np.sqrt((sigma_sq + d['n_per_group'] * tau_sq) / n)
        np.testing.assert_allclose(result.se[0], expected, rtol=1e-6)


# ═══════════════════════════════════════════════════════════════════════
# General properties
# ═══════════════════════════════════════════════════════════════════════


class TestLMMRandomIntercept:

    def test_basic_fit(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})

        assert result.converged
        assert len(result.coefficients) == 2
        assert not result.singular
        np.testing.assert_allclose(result.coefficients,
                                   [d['beta0'], d['beta1']], atol=1.0)

    def test_fitted_plus_residuals_equals_y(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        np.testing.assert_allclose(
            result.fitted_values + result.residuals, d['y'], atol=1e-8
        )

    def test_ranef_keyed_by_label(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})

        ranef = result.ranef['group']
        assert len(ranef) == d['n_groups']
        assert 'g00' in ranef
        # BLUPs shrink toward zero and roughly centre on it
        assert abs(np.mean(list(ranef.values()))) < 0.5

    def test_fit_statistics(self, random_intercept_simple):
        d = random_intercept_simple
        n = len(d['y'])
        result = lmm(d['y'], d['X'], groups={'group': d['group']})

        assert result.n_params == 4
        np.testing.assert_allclose(result.deviance, -2 * result.log_likelihood)
        np.testing.assert_allclose(result.aic, result.deviance + 2 * 4)
        np.testing.assert_allclose(result.bic,
                                   result.deviance + np.log(n) * 4)

    def test_icc_between_zero_and_one(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        assert 0 < result.icc['group'] < 1

    def test_vcov_symmetric_with_se_diagonal(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        np.testing.assert_allclose(result.vcov, result.vcov.T)
        np.testing.assert_allclose(np.sqrt(np.diag(result.vcov)), result.se)

    def test_timing_and_info(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        assert 'optimization' in result.timing
        assert result.info['method'] == 'ML'
        assert result.info['optimizer'] in ('L-BFGS-B', 'Powell')


class TestLMMOutput:

    def test_summary(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']},
                     coefficient_names=['(Intercept)', 'x'])
        s = result.summary()
        assert 'Linear mixed model fit by maximum likelihood' in s
        assert 'Random effects:' in s
        assert 'Fixed effects:' in s
        assert 'Residual' in s
        assert 'boundary (singular)' not in s

    def test_coef_table(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']},
                     coefficient_names=['(Intercept)', 'x'])
        table = result.coef_table()
        assert list(table.index) == ['(Intercept)', 'x']
        np.testing.assert_allclose(table['estimate'], result.coefficients)

    def test_to_dict_is_json_serialisable(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        out = json.loads(json.dumps(result.to_dict()))
        assert out['method'] == 'ML'
        assert len(out['fixed_effects']) == 2
        assert out['n_groups'] == {'group': d['n_groups']}

    def test_default_coefficient_names(self, random_intercept_simple):
        d = random_intercept_simple
        result = lmm(d['y'], d['X'], groups={'group': d['group']})
        assert tuple(result.fixef) == ('(Intercept)', 'X1')


class TestLMMValidation:

    def test_too_few_observations(self):
        with pytest.raises(ValidationError, match="at least 3"):
            lmm([1.0, 2.0], np.ones((2, 1)), groups={'g': [0, 1]})

    def test_single_group_level(self):
        y = np.arange(6, dtype=float)
        with pytest.raises(ValidationError, match="level"):
            lmm(y, np.ones((6, 1)), groups={'g': np.zeros(6)})

    def test_rank_deficient_X(self):
        y = np.arange(6, dtype=float)
        X = np.column_stack([np.ones(6), np.ones(6)])
        with pytest.raises(ValidationError, match="rank deficient"):
            lmm(y, X, groups={'g': [0, 0, 1, 1, 2, 2]})

    def test_non_finite_response(self):
        y = np.array([1.0, 2.0, np.nan, 4.0, 5.0, 6.0])
        with pytest.raises(ValidationError, match="NaN"):
            lmm(y, np.ones((6, 1)), groups={'g': [0, 0, 1, 1, 2, 2]})

    def test_no_groups(self):
        with pytest.raises(ValidationError, match="grouping factor"):
            lmm(np.arange(6, dtype=float), np.ones((6, 1)), groups={})

    def test_coefficient_names_length(self, random_intercept_simple):
        d = random_intercept_simple
        with pytest.raises(ValidationError, match="coefficient_names"):
            lmm(d['y'], d['X'], groups={'group': d['group']},
                coefficient_names=['only_one'])
