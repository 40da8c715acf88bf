"""Tests for the Penalized Least Squares solver and profiled deviance."""

import numpy as np

from pyrichness.mixed._deviance import deviance_from_pls, profiled_deviance
from pyrichness.mixed._pls import solve_pls
from pyrichness.mixed._random_effects import (
    build_lambda,
    build_z_matrix,
    parse_random_effects,
)


def _setup(d, theta):
    specs = parse_random_effects({'group': d['group']}, len(d['y']))
    Z = build_z_matrix(specs)
    return specs, Z, build_lambda(np.array([theta]), specs)


class TestSolvePLS:

    def test_reconstructs_y(self, random_intercept_simple):
        d = random_intercept_simple
        _, Z, Lambda = _setup(d, 1.0)
        result = solve_pls(d['X'], Z, d['y'], Lambda)

        np.testing.assert_allclose(result.fitted + result.residuals, d['y'],
                                   atol=1e-10)
        assert result.pwrss > 0
        np.testing.assert_allclose(result.sigma_sq, result.pwrss / len(d['y']))

    def test_zero_theta_is_ols(self, random_intercept_simple):
        """With Λ = 0 the random effects vanish and β is OLS."""
        d = random_intercept_simple
        _, Z, Lambda = _setup(d, 0.0)
        result = solve_pls(d['X'], Z, d['y'], Lambda)

        beta_ols, *_ = np.linalg.lstsq(d['X'], d['y'], rcond=None)
        np.testing.assert_allclose(result.beta, beta_ols, rtol=1e-10)
        np.testing.assert_allclose(result.b, 0.0, atol=1e-12)

    def test_reml_divides_by_n_minus_p(self, random_intercept_simple):
        d = random_intercept_simple
        _, Z, Lambda = _setup(d, 1.0)
        result = solve_pls(d['X'], Z, d['y'], Lambda, reml=True)
        n, p = d['X'].shape
        np.testing.assert_allclose(result.sigma_sq, result.pwrss / (n - p))


class TestProfiledDeviance:

    def test_matches_pls_deviance(self, random_intercept_simple):
        d = random_intercept_simple
        specs, Z, Lambda = _setup(d, 0.8)
        pls = solve_pls(d['X'], Z, d['y'], Lambda)
        n, p = d['X'].shape

        dev = profiled_deviance(np.array([0.8]), d['X'], Z, d['y'], specs)
        np.testing.assert_allclose(dev, deviance_from_pls(pls, n, p, False))

    def test_symmetric_in_theta(self, random_intercept_simple):
        """The deviance depends on θ only through θ²."""
        d = random_intercept_simple
        specs, Z, _ = _setup(d, 1.0)
        args = (d['X'], Z, d['y'], specs)
        np.testing.assert_allclose(
            profiled_deviance(np.array([0.7]), *args),
            profiled_deviance(np.array([-0.7]), *args),
            rtol=1e-12,
        )

    def test_ols_log_likelihood_at_zero(self, random_intercept_simple):
        """At θ = 0 the ML deviance is the OLS Gaussian deviance."""
        d = random_intercept_simple
        specs, Z, _ = _setup(d, 0.0)
        n = len(d['y'])
        dev = profiled_deviance(np.array([0.0]), d['X'], Z, d['y'], specs)

        beta_ols, *_ = np.linalg.lstsq(d['X'], d['y'], rcond=None)
        rss = float(np.sum((d['y'] - d['X'] @ beta_ols) ** 2))
        expected = n * (1.0 + np.log(2.0 * np.pi * rss / n))
        np.testing.assert_allclose(dev, expected, rtol=1e-10)
