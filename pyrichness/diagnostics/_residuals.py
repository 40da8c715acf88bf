"""
Residual diagnostics for a fitted random-intercept LMM.

Produces the quantities a residuals-vs-fitted plot needs. No statistical
decision is made here; the Spearman correlation between |residual| and
fitted value is reported as an indicator of non-constant spread.
"""

from __future__ import annotations

import numpy as np
from scipy import stats as sp_stats

from pyrichness.core.result import Result
from pyrichness.core.timing import Timer
from pyrichness.diagnostics._common import DiagnosticsParams
from pyrichness.diagnostics.solution import DiagnosticsSolution
from pyrichness.mixed.solution import LMMSolution


def residual_diagnostics(model: LMMSolution) -> DiagnosticsSolution:
    """Fitted values, raw and standardized residuals of a fitted model.

    Standardized residuals are Pearson residuals, (y - fitted) / σ̂, as
    lme4's resid(type = 'pearson') returns for a Gaussian LMM.

    Args:
        model: Fitted LMM, e.g. ModelPair.full.

    Returns:
        DiagnosticsSolution; to_frame() gives one row per observation.
    """
    timer = Timer()
    timer.start()

    params = model.params
    fitted = np.asarray(params.fitted_values, dtype=np.float64)
    resid = np.asarray(params.residuals, dtype=np.float64)
    group_name, group = next(iter(params.groups.items()))

    warn_list = []
    with timer.section('residuals'):
        sigma = params.residual_std
        standardized = resid / sigma if sigma > 0 else np.full_like(resid, np.nan)
        resid_mean = float(np.mean(resid))
        resid_sd = float(np.std(resid, ddof=1))

    with timer.section('spread'):
        if _is_constant(fitted) or _is_constant(resid):
            rho, p = np.nan, np.nan
            warn_list.append(
                "Fitted values or residuals are constant; spread "
                "correlation is undefined"
            )
        else:
            rho, p = sp_stats.spearmanr(np.abs(resid), fitted)

    timer.stop()

    diag = DiagnosticsParams(
        fitted=fitted,
        residuals=resid,
        standardized=standardized,
        group=np.asarray(group),
        group_name=group_name,
        residual_mean=resid_mean,
        residual_sd=resid_sd,
        spread_correlation=float(rho),
        spread_p_value=float(p),
    )
    return DiagnosticsSolution(_result=Result(
        params=diag,
        info={'residual_type': 'pearson', 'n_obs': len(resid)},
        timing=timer.result(),
        backend_name='cpu_diagnostics',
        warnings=tuple(warn_list),
    ))


def _is_constant(x: np.ndarray) -> bool:
    return float(np.ptp(x)) <= 1e-10 * max(1.0, float(np.max(np.abs(x))))
