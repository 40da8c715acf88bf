"""
Likelihood ratio test between nested linear mixed models.

Matches anova(null, full) for two lme4 fits by ML:

    LR = 2 × (logLik_full - logLik_null),  df = npar_full - npar_null,
    p  = P(χ²_df ≥ LR)

The test is only meaningful when both models were fit to the same
observations, with the same grouping structure and the ML criterion, and
the null fixed-effect space is contained in the full one. Every one of
these preconditions that can be checked from the fitted models is checked.
"""

from __future__ import annotations

import numpy as np
from scipy import stats

from pyrichness.core.exceptions import ModelMismatchError
from pyrichness.core.result import Result
from pyrichness.inference._common import LRTParams
from pyrichness.inference.solution import LRTSolution
from pyrichness.mixed.solution import LMMSolution


def likelihood_ratio_test(
    null: LMMSolution,
    full: LMMSolution,
    *,
    nesting_tol: float = 1e-8,
) -> LRTSolution:
    """Compare a null model against the full model it is nested in.

    Args:
        null: Model with the smaller fixed-effect space (e.g. intercept only).
        full: Model with the larger fixed-effect space (e.g. + habitat).
        nesting_tol: Relative tolerance for the column-space containment
            check of the null design in the full design.

    Returns:
        LRTSolution with statistic, df and p-value.

    Raises:
        ModelMismatchError: The models are not comparable.
    """
    _check_comparable(null, full, nesting_tol)

    pn, pf = null.params, full.params
    df = pf.n_params - pn.n_params

    # Clamp: a larger nested model cannot fit worse, apart from round-off
    statistic = max(2.0 * (pf.log_likelihood - pn.log_likelihood), 0.0)
    p_value = float(stats.chi2.sf(statistic, df))

    warn_list = []
    if pf.log_likelihood < pn.log_likelihood - 1e-6:
        warn_list.append(
            f"Full model log-likelihood ({pf.log_likelihood:.6f}) is below "
            f"the null model's ({pn.log_likelihood:.6f}); the full fit may "
            f"not have reached its maximum"
        )

    params = LRTParams(
        statistic=float(statistic),
        df=int(df),
        p_value=p_value,
        log_likelihood_null=pn.log_likelihood,
        log_likelihood_full=pf.log_likelihood,
        n_params_null=pn.n_params,
        n_params_full=pf.n_params,
        aic_null=pn.aic,
        aic_full=pf.aic,
        bic_null=pn.bic,
        bic_full=pf.bic,
        n_obs=pf.n_obs,
    )

    result = Result(
        params=params,
        info={'method': 'chisq', 'criterion': 'ML'},
        timing=None,
        backend_name='cpu_lrt',
        warnings=tuple(warn_list),
    )
    return LRTSolution(_result=result)


def _check_comparable(null: LMMSolution, full: LMMSolution, tol: float) -> None:
    pn, pf = null.params, full.params

    if pn.n_obs != pf.n_obs:
        raise ModelMismatchError(
            f"Models were fit to different numbers of observations: "
            f"null n={pn.n_obs}, full n={pf.n_obs}",
            reason='n_obs',
        )

    if not np.array_equal(pn.y, pf.y):
        raise ModelMismatchError(
            "Models were fit to different response values",
            reason='response',
        )

    if set(pn.groups) != set(pf.groups) or any(
        not np.array_equal(pn.groups[g], pf.groups[g]) for g in pn.groups
    ):
        raise ModelMismatchError(
            f"Models have different grouping structures: "
            f"null {sorted(pn.groups)}, full {sorted(pf.groups)}",
            reason='groups',
        )

    if pn.reml or pf.reml:
        raise ModelMismatchError(
            "Likelihood ratio tests of fixed effects require ML fits; "
            "refit both models with reml=False",
            reason='reml',
        )

    df = pf.n_params - pn.n_params
    if df <= 0:
        raise ModelMismatchError(
            f"Full model must have more parameters than the null model, "
            f"got {pf.n_params} vs {pn.n_params}",
            reason='df',
        )

    # Null columns must lie in the span of the full columns
    coef, _, _, _ = np.linalg.lstsq(pf.X, pn.X, rcond=None)
    resid = pn.X - pf.X @ coef
    scale = max(float(np.linalg.norm(pn.X)), 1.0)
    if float(np.linalg.norm(resid)) > tol * scale:
        raise ModelMismatchError(
            "Null model fixed effects are not nested in the full model",
            reason='nesting',
        )
