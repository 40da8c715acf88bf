"""
Profiled deviance for the random-intercept LMM.

The profiled deviance is the objective the outer optimizer minimizes over
θ. β and σ² are analytically profiled out, leaving a function of θ only.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), Sections 2-3.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pyrichness.mixed._random_effects import RandomEffectSpec, build_lambda
from pyrichness.mixed._pls import PLSResult, solve_pls


def log_det_sq(factor: NDArray) -> float:
    """log|F|² for a triangular factor F: 2 × Σ log|diag(F)|."""
    return float(2.0 * np.sum(np.log(np.maximum(np.abs(np.diag(factor)), 1e-20))))


def deviance_from_pls(pls: PLSResult, n: int, p: int, reml: bool) -> float:
    """Profiled deviance (-2 × log-likelihood) at a PLS solution.

    ML:   d(θ) = log|L_θ|² + n × [1 + log(2π × pwrss/n)]

    REML: d(θ) = log|L_θ|² + log|RX|² + (n-p) × [1 + log(2π × pwrss/(n-p))]
    """
    if reml:
        df = n - p
        return (log_det_sq(pls.L)
                + log_det_sq(pls.RX)
                + df * (1.0 + np.log(2.0 * np.pi * pls.pwrss / df)))
    return log_det_sq(pls.L) + n * (1.0 + np.log(2.0 * np.pi * pls.pwrss / n))


def profiled_deviance(
    theta: NDArray,
    X: NDArray,
    Z: NDArray,
    y: NDArray,
    specs: list[RandomEffectSpec],
    reml: bool = False,
) -> float:
    """Compute the profiled ML (or REML) deviance for given θ.

    Args:
        theta: Relative random-intercept SDs, one per grouping factor.
        X: Fixed effects design matrix (n, p).
        Z: Random effects design matrix (n, q).
        y: Response vector (n,).
        specs: Random effect specifications.
        reml: If True, compute REML deviance; if False, ML deviance.

    Returns:
        Profiled deviance value (scalar to minimize).
    """
    n, p = X.shape
    Lambda = build_lambda(theta, specs)
    pls = solve_pls(X, Z, y, Lambda, reml=reml)
    return float(deviance_from_pls(pls, n, p, reml))
