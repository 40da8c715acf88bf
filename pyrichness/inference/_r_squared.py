"""
Marginal and conditional R² for a random-intercept LMM.

Nakagawa & Schielzeth (2013):

    R²_marginal    = V_fixed / (V_fixed + V_random + V_residual)
    R²_conditional = (V_fixed + V_random) / (V_fixed + V_random + V_residual)

V_fixed is the sample variance (ddof=1, as MuMIn::r.squaredGLMM uses R's
var()) of the fixed-effects linear predictor Xβ̂; V_random is the sum of
the random intercept variances; V_residual is σ².

References:
    Nakagawa, S., & Schielzeth, H. (2013). A general and simple method for
    obtaining R² from generalized linear mixed-effects models.
    Methods in Ecology and Evolution, 4(2), 133-142.
"""

from __future__ import annotations

import numpy as np

from pyrichness.core.exceptions import NumericalError
from pyrichness.core.result import Result
from pyrichness.inference._common import RSquaredParams
from pyrichness.inference.solution import RSquaredSolution
from pyrichness.mixed.solution import LMMSolution


def r_squared(model: LMMSolution) -> RSquaredSolution:
    """Decompose explained variance into fixed and random parts.

    Args:
        model: A fitted LMM.

    Returns:
        RSquaredSolution with marginal and conditional R².

    Raises:
        NumericalError: If the total variance is zero.
    """
    params = model.params

    var_fixed = float(np.var(params.fixed_predictor, ddof=1))
    var_random = float(sum(vc.variance for vc in params.var_components))
    var_residual = float(params.residual_variance)

    total = var_fixed + var_random + var_residual
    if not total > 0:
        raise NumericalError(
            f"Total variance is {total}; R² is undefined for a constant fit"
        )

    marginal = var_fixed / total
    conditional = (var_fixed + var_random) / total
    noise = var_random + var_residual
    icc = var_random / noise if noise > 0 else 0.0

    r2 = RSquaredParams(
        marginal=float(np.clip(marginal, 0.0, 1.0)),
        conditional=float(np.clip(conditional, marginal, 1.0)),
        var_fixed=var_fixed,
        var_random=var_random,
        var_residual=var_residual,
        icc=float(icc),
    )

    warn_list = []
    if params.singular:
        warn_list.append(
            "Model is singular: the random intercept variance is "
            "(near) zero, so conditional R² adds nothing over marginal R²"
        )

    result = Result(
        params=r2,
        info={'method': 'nakagawa', 'ddof_fixed': 1},
        timing=None,
        backend_name='cpu_r2',
        warnings=tuple(warn_list),
    )
    return RSquaredSolution(_result=result)
