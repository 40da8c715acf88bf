"""
Pairwise comparisons of estimated marginal means.

For a k-level factor every unordered pair (i, j), i < j in level order,
gives the contrast l = M_i - M_j (M = level_matrix(k)), its estimate l'β̂,
SE = sqrt(l' V l) with V the fitted covariance of β̂, and Satterthwaite df.

Single-step (default):
    Adjusted p-values and simultaneous intervals from the joint
    distribution of all contrast t statistics, as multcomp::glht does.
    The standardized contrasts are multivariate t with ν the smallest
    contrast df and the correlation of L β̂. adj p_i = P(max |T| ≥ |t_i|)
    is one minus the probability of the box [-|t_i|, |t_i|]^m, integrated
    by scipy.stats.multivariate_t. Very small tail probabilities use the
    Bonferroni bound instead of the integration noise.

Tukey:
    Tukey-Kramer via the studentized range distribution with each
    contrast's Satterthwaite df.

holm / bonferroni / BH / none:
    Sequential correction of the unadjusted p-values via p_adjust().
    Only Bonferroni adjusts the confidence intervals.
"""

from __future__ import annotations

import numpy as np
from scipy import stats as sp_stats
from scipy.optimize import brentq

from pyrichness.core.config import POSTHOC_METHODS
from pyrichness.core.exceptions import ValidationError
from pyrichness.core.result import Result
from pyrichness.core.timing import Timer
from pyrichness.core.validation import check_conf_level
from pyrichness.mixed.design import level_matrix
from pyrichness.mixed.solution import LMMSolution
from pyrichness.posthoc._common import PairwiseComparison, PairwiseParams
from pyrichness.posthoc._emmeans import (
    factor_levels, contrast_df, contrast_estimates, marginal_means,
)
from pyrichness.posthoc._p_adjust import p_adjust
from pyrichness.posthoc.solution import PairwiseSolution

_TAIL_FLOOR = 1e-4


def pairwise_comparisons(
    model: LMMSolution,
    *,
    method: str = 'single-step',
    conf_level: float = 0.95,
    n_sim: int = 200_000,
    seed: int = 20240101,
) -> PairwiseSolution:
    """All pairwise differences of the fixed factor's marginal means.

    Args:
        model: Fitted LMM whose X is the treatment coding of one factor.
        method: 'single-step' (default), 'tukey', 'holm', 'bonferroni',
            'BH' or 'none'.
        conf_level: Confidence level of the intervals.
        n_sim: Integration points for the single-step multivariate t
            probabilities.
        seed: Seed for the randomized lattice of that integration. The
            same seed gives the same adjusted p-values.

    Returns:
        PairwiseSolution with k(k-1)/2 comparisons.

    Raises:
        UnderdeterminedComparisonError: The factor has fewer than 2 levels.
        ValidationError: Unknown method, bad conf_level or n_sim.
    """
    if method not in POSTHOC_METHODS:
        raise ValidationError(
            f"method must be one of {POSTHOC_METHODS}, got {method!r}"
        )
    check_conf_level(conf_level)
    if method == 'single-step' and n_sim < 1000:
        raise ValidationError(f"n_sim must be >= 1000, got {n_sim}")

    levels = factor_levels(model, min_levels=2)
    k = len(levels)

    timer = Timer()
    timer.start()

    with timer.section('marginal_means'):
        means = marginal_means(model, conf_level=conf_level)

    with timer.section('contrasts'):
        M = level_matrix(k)
        pairs = [(i, j) for i in range(k) for j in range(i + 1, k)]
        L = np.array([M[i] - M[j] for i, j in pairs])
        est, se = contrast_estimates(model, L)
        df = contrast_df(model, L)
        t_vals = est / se
        p_raw = 2.0 * sp_stats.t.sf(np.abs(t_vals), df)

    info = {'method': method, 'n_comparisons': len(pairs)}
    with timer.section('adjustment'):
        if method == 'single-step':
            p_adj, crit, nu, n_bounded = _single_step(
                model.vcov, L, se, t_vals, df, conf_level, n_sim, seed
            )
            info['mvt_df'] = nu
            info['n_bonferroni_bound'] = n_bounded
        elif method == 'tukey':
            q = np.abs(t_vals) * np.sqrt(2.0)
            p_adj = sp_stats.studentized_range.sf(q, k, df)
            crit = sp_stats.studentized_range.ppf(conf_level, k, df) / np.sqrt(2.0)
        else:
            p_adj = p_adjust(p_raw, method)
            alpha = 1.0 - conf_level
            if method == 'bonferroni':
                alpha /= len(pairs)
            crit = sp_stats.t.ppf(1.0 - alpha / 2.0, df)

    # Adjustment can only make a p-value larger
    p_adj = np.clip(np.maximum(p_adj, p_raw), 0.0, 1.0)
    crit = np.broadcast_to(crit, est.shape)

    comparisons = tuple(
        PairwiseComparison(
            level1=levels[i],
            level2=levels[j],
            estimate=float(est[r]),
            se=float(se[r]),
            df=float(df[r]),
            statistic=float(t_vals[r]),
            p_value=float(p_raw[r]),
            p_adjusted=float(p_adj[r]),
            ci_lower=float(est[r] - crit[r] * se[r]),
            ci_upper=float(est[r] + crit[r] * se[r]),
        )
        for r, (i, j) in enumerate(pairs)
    )

    timer.stop()

    params = PairwiseParams(
        method=method,
        factor=model.params.fixed_factor,
        conf_level=conf_level,
        n_sim=n_sim if method == 'single-step' else None,
        seed=seed if method == 'single-step' else None,
        comparisons=comparisons,
        means=means,
    )
    return PairwiseSolution(_result=Result(
        params=params,
        info=info,
        timing=timer.result(),
        backend_name='cpu_posthoc',
    ))


def _single_step(vcov, L, se, t_vals, df, conf_level, n_sim, seed):
    """Joint multivariate t adjustment for the pairwise contrasts.

    The standardized contrasts follow a multivariate t with ν = min(df)
    and correlation R = D^-1/2 L V L' D^-1/2. R is singular (k(k-1)/2
    contrasts of k means span k - 1 dimensions); scipy's quasi-Monte
    Carlo integration accepts it with allow_singular.

    Tail probabilities below _TAIL_FLOOR are at the level of the
    integration error. There the Bonferroni bound m P(|T_i| >= |t_i|) is
    reported; far in the tail it is close to exact because joint
    exceedances of two contrasts are much rarer than single ones.

    Returns (adjusted p-values, critical value, multivariate t df,
    number of p-values set to the Bonferroni bound).
    """
    nu = float(np.min(df))
    m = L.shape[0]
    R = (L @ vcov @ L.T) / np.outer(se, se)
    R = (R + R.T) / 2.0
    np.fill_diagonal(R, 1.0)

    def box_probability(c):
        upper = np.full(m, c)
        return float(sp_stats.multivariate_t.cdf(
            upper, shape=R, df=nu, allow_singular=True, maxpts=n_sim,
            lower_limit=-upper, random_state=seed,
        ))

    abs_t = np.abs(t_vals)
    p_single = 2.0 * sp_stats.t.sf(abs_t, nu)
    p_bonferroni = np.minimum(1.0, m * p_single)

    p_joint = np.array([1.0 - box_probability(a) for a in abs_t])
    in_tail = p_joint < _TAIL_FLOOR
    p_adj = np.where(
        in_tail, p_bonferroni, np.clip(p_joint, p_single, p_bonferroni)
    )

    # P(max |T| < c) = conf_level lies between the per-comparison and the
    # Bonferroni critical values
    alpha = 1.0 - conf_level
    lo = float(sp_stats.t.ppf(1.0 - alpha / 2.0, nu))
    hi = float(sp_stats.t.ppf(1.0 - alpha / (2.0 * m), nu))
    if m == 1 or box_probability(lo) >= conf_level:
        crit = lo
    elif box_probability(hi) <= conf_level:
        crit = hi
    else:
        crit = brentq(lambda c: box_probability(c) - conf_level, lo, hi,
                      xtol=1e-6)
    return p_adj, float(crit), nu, int(np.sum(in_tail))
