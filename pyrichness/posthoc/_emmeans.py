"""
Estimated marginal means and linear contrasts of a fitted LMM.

With a single treatment-coded factor the marginal mean of level j is
m_j = M_j β̂, where M is level_matrix(k); contrasts between levels are
differences of rows of M. Standard errors come from the fitted model's
covariance of β̂, denominator df from Satterthwaite's approximation.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy import stats as sp_stats

from pyrichness.core.exceptions import (
    UnderdeterminedComparisonError,
    ValidationError,
)
from pyrichness.core.validation import check_conf_level
from pyrichness.mixed._random_effects import parse_random_effects, build_z_matrix
from pyrichness.mixed._satterthwaite import satterthwaite_df
from pyrichness.mixed.design import level_matrix
from pyrichness.mixed.solution import LMMSolution
from pyrichness.posthoc._common import MarginalMean


def factor_levels(model: LMMSolution, min_levels: int = 1) -> tuple[str, ...]:
    """Levels of the model's fixed factor, checked against its design.

    Raises:
        UnderdeterminedComparisonError: Fewer than ``min_levels`` levels.
        ValidationError: X is not the treatment coding of the factor.
    """
    params = model.params
    levels = params.fixed_levels
    if params.fixed_factor is None or len(levels) < min_levels:
        factor = params.fixed_factor
        raise UnderdeterminedComparisonError(
            f"Factor {factor!r} has {len(levels)} level(s); "
            f"at least {min_levels} required",
            factor=factor,
            n_levels=len(levels),
        )
    if params.X.shape[1] != len(levels):
        raise ValidationError(
            f"Model has {params.X.shape[1]} fixed effects but factor "
            f"{params.fixed_factor!r} has {len(levels)} levels; marginal "
            f"means need a pure treatment-coded design"
        )
    return levels


def contrast_df(model: LMMSolution, contrasts: NDArray) -> NDArray:
    """Satterthwaite df for each row of ``contrasts``."""
    params = model.params
    specs = parse_random_effects(params.groups, params.n_obs)
    Z = build_z_matrix(specs)
    return satterthwaite_df(
        params.theta, params.X, Z, params.y, specs,
        reml=params.reml, contrasts=contrasts,
    )


def contrast_estimates(model: LMMSolution, contrasts: NDArray):
    """Return (estimate, se) arrays for each row of ``contrasts``."""
    params = model.params
    est = contrasts @ params.coefficients
    var = np.einsum('ij,jk,ik->i', contrasts, params.vcov, contrasts)
    return est, np.sqrt(np.maximum(var, 0.0))


def marginal_means(
    model: LMMSolution,
    conf_level: float = 0.95,
) -> tuple[MarginalMean, ...]:
    """Estimated marginal mean, SE, df and CI for every factor level.

    Args:
        model: Fitted LMM whose X is the treatment coding of one factor
            (e.g. the full model from fit_habitat_models()).
        conf_level: Confidence level for the per-level intervals.

    Returns:
        One MarginalMean per level, in factor level order.
    """
    check_conf_level(conf_level)
    levels = factor_levels(model, min_levels=1)
    M = level_matrix(len(levels))

    est, se = contrast_estimates(model, M)
    df = contrast_df(model, M)
    t_crit = sp_stats.t.ppf(0.5 + conf_level / 2.0, df)

    return tuple(
        MarginalMean(
            level=level,
            estimate=float(est[j]),
            se=float(se[j]),
            df=float(df[j]),
            ci_lower=float(est[j] - t_crit[j] * se[j]),
            ci_upper=float(est[j] + t_crit[j] * se[j]),
        )
        for j, level in enumerate(levels)
    )
