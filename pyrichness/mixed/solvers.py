"""
Solver entry points for the random-intercept linear mixed model.

Public API:
    lmm()                — fit y = Xβ + Zb + ε by ML (or REML)
    fit_habitat_models() — full and null habitat models on one table
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.typing import ArrayLike
from scipy.optimize import minimize
from scipy import stats

from pyrichness.core.config import FitControl
from pyrichness.core.exceptions import (
    ConvergenceError,
    PerfectFitError,
    SingularFitError,
    SingularFitWarning,
    ValidationError,
)
from pyrichness.core.result import Result
from pyrichness.core.timing import Timer
from pyrichness.data.table import ObservationTable

from pyrichness.mixed._common import LMMParams, VarCompSummary
from pyrichness.mixed._random_effects import (
    parse_random_effects, build_z_matrix, build_lambda,
    theta_lower_bounds, theta_start,
)
from pyrichness.mixed._pls import solve_pls
from pyrichness.mixed._deviance import profiled_deviance, deviance_from_pls
from pyrichness.mixed._satterthwaite import satterthwaite_df, compute_C
from pyrichness.mixed.design import MixedDesign, design_matrix
from pyrichness.mixed.solution import LMMSolution


def lmm(
    y: ArrayLike,
    X: ArrayLike,
    groups: dict[str, ArrayLike],
    *,
    reml: bool = False,
    control: FitControl | None = None,
    coefficient_names: Sequence[str] | None = None,
    fixed_factor: str | None = None,
    fixed_levels: Sequence[str] = (),
    compute_satterthwaite: bool = True,
) -> LMMSolution:
    """Fit a linear mixed model with a random intercept per grouping factor.

    Estimates fixed effects β, random intercept variances, residual
    variance and conditional modes (BLUPs) using the profiled deviance
    approach of Bates et al. (2015): β and σ² are profiled out by
    penalized least squares, and the relative SDs θ are found with
    L-BFGS-B under θ ≥ 0.

    Args:
        y: Response vector (n,).
        X: Fixed effects design matrix (n, p). Should include an
            intercept column.
        groups: Dict mapping grouping factor names to label arrays.
            Example: {'locus': locus_labels}.
        reml: If False (default), maximum likelihood. ML is required for
            likelihood ratio tests between models with different fixed
            effects. If True, REML.
        control: Optimizer settings. Default FitControl().
        coefficient_names: Names for the columns of X. Default
            '(Intercept)', 'X1', 'X2', ...
        fixed_factor: Name of the factor X encodes, if any (enables
            post-hoc comparisons).
        fixed_levels: Levels of that factor, baseline first.
        compute_satterthwaite: If True (default), compute Satterthwaite
            denominator df for the coefficient t-tests; otherwise use the
            residual df n - p.

    Returns:
        LMMSolution with fixed effects, variance components, model fit
        statistics and an lme4-style summary().

    Raises:
        ValidationError: Invalid inputs.
        PerfectFitError: y is reproduced exactly by X and the random
            intercepts, so the residual variance would be zero.
        ConvergenceError: The optimizer did not converge.
        SingularFitError: A variance hit zero and
            control.on_singular == 'raise'.
    """
    control = control or FitControl()

    timer = Timer()
    timer.start()

    design = MixedDesign.validate(y, X, groups)

    if coefficient_names is None:
        coef_names = _make_coef_names(design.p)
    else:
        coef_names = tuple(coefficient_names)
        if len(coef_names) != design.p:
            raise ValidationError(
                f"coefficient_names has {len(coef_names)} entries, "
                f"expected {design.p}"
            )

    with timer.section('setup'):
        specs = parse_random_effects(design.groups, design.n)
        Z = build_z_matrix(specs)
        theta0 = theta_start(specs)
        lb = theta_lower_bounds(specs)
        bounds = [(lb[i], None) for i in range(len(theta0))]
        _check_residual_variation(design.X, Z, design.y, control.residual_tol)

    with timer.section('optimization'):
        opt_result, optimizer = _optimize_theta(
            theta0, bounds, design, Z, specs, reml, control
        )

    n_iter = int(opt_result.nit)
    if not opt_result.success:
        raise ConvergenceError(
            f"LMM optimizer did not converge after {n_iter} iterations: "
            f"{opt_result.message}",
            iterations=n_iter,
            final_change=None,
            reason=str(opt_result.message),
            threshold=control.tol,
        )

    theta_hat = np.maximum(np.asarray(opt_result.x, dtype=np.float64), 0.0)

    warn_list = []
    if optimizer != 'L-BFGS-B':
        warn_list.append(
            f"L-BFGS-B stopped early; converged with {optimizer} instead"
        )

    at_boundary = theta_hat <= control.singular_tol
    singular = bool(np.any(at_boundary))
    if singular:
        names = tuple(s.group_name for s, b in zip(specs, at_boundary) if b)
        msg = (
            f"Boundary (singular) fit: random intercept variance for "
            f"{list(names)} estimated at zero"
        )
        if control.on_singular == 'raise':
            raise SingularFitError(
                msg, groups=names, theta=tuple(float(t) for t in theta_hat)
            )
        warnings.warn(msg, SingularFitWarning, stacklevel=2)
        warn_list.append(msg)

    with timer.section('final_solve'):
        Lambda_hat = build_lambda(theta_hat, specs)
        pls = solve_pls(design.X, Z, design.y, Lambda_hat, reml=reml)

    with timer.section('variance_components'):
        var_comps = _extract_var_components(theta_hat, pls.sigma_sq, specs)
        n_groups_dict = {s.group_name: s.n_groups for s in specs}
        random_effs, group_levels = _extract_blups(pls.b, specs)

    with timer.section('inference'):
        vcov = pls.sigma_sq * compute_C(theta_hat, design.X, Z, specs)
        se = np.sqrt(np.maximum(np.diag(vcov), 0.0))

        if compute_satterthwaite:
            df_satt = satterthwaite_df(
                theta_hat, design.X, Z, design.y, specs, reml=reml
            )
        else:
            df_satt = np.full(design.p, float(design.n - design.p))

        t_vals = pls.beta / se
        p_vals = 2.0 * stats.t.sf(np.abs(t_vals), df_satt)

    with timer.section('model_fit'):
        n_params = design.p + len(theta_hat) + 1
        dev = float(deviance_from_pls(pls, design.n, design.p, reml))
        ll = -0.5 * dev
        aic = dev + 2.0 * n_params
        bic = dev + np.log(design.n) * n_params

    timer.stop()

    params = LMMParams(
        coefficients=pls.beta,
        coefficient_names=coef_names,
        se=se,
        vcov=vcov,
        df_satterthwaite=df_satt,
        t_values=t_vals,
        p_values=p_vals,
        var_components=tuple(var_comps),
        residual_variance=float(pls.sigma_sq),
        residual_std=float(np.sqrt(pls.sigma_sq)),
        log_likelihood=float(ll),
        deviance=dev,
        reml=reml,
        aic=float(aic),
        bic=float(bic),
        n_params=n_params,
        n_obs=design.n,
        n_groups=n_groups_dict,
        converged=True,
        n_iter=n_iter,
        singular=singular,
        random_effects=random_effs,
        group_levels=group_levels,
        fitted_values=pls.fitted,
        residuals=pls.residuals,
        fixed_predictor=design.X @ pls.beta,
        X=design.X,
        y=design.y,
        groups=design.groups,
        fixed_factor=fixed_factor,
        fixed_levels=tuple(fixed_levels),
        theta=theta_hat,
    )

    result = Result(
        params=params,
        info={
            'method': 'REML' if reml else 'ML',
            'optimizer': optimizer,
            'converged': True,
            'n_iter': n_iter,
            'deviance': float(opt_result.fun),
            'singular': singular,
        },
        timing=timer.result(),
        backend_name='cpu_lmm',
        warnings=tuple(warn_list),
    )

    return LMMSolution(_result=result)


@dataclass(frozen=True)
class ModelPair:
    """Full and null models fit on the same observation table."""
    full: LMMSolution
    null: LMMSolution
    table: ObservationTable


def fit_habitat_models(
    table: ObservationTable,
    *,
    control: FitControl | None = None,
    compute_satterthwaite: bool = True,
) -> ModelPair:
    """Fit ``response ~ fixed + (1 | group)`` and ``response ~ 1 + (1 | group)``.

    Both models use ML on the identical table, so their likelihoods are
    comparable by likelihood_ratio_test().

    Args:
        table: Validated observation table.
        control: Optimizer settings shared by both fits.
        compute_satterthwaite: Passed through to lmm().

    Returns:
        ModelPair(full, null, table).
    """
    groups = {table.group_name: table.group}

    X_full, names_full = design_matrix(table, include_fixed=True)
    full = lmm(
        table.response, X_full, groups,
        reml=False,
        control=control,
        coefficient_names=names_full,
        fixed_factor=table.fixed_name,
        fixed_levels=table.fixed_levels,
        compute_satterthwaite=compute_satterthwaite,
    )

    X_null, names_null = design_matrix(table, include_fixed=False)
    null = lmm(
        table.response, X_null, groups,
        reml=False,
        control=control,
        coefficient_names=names_null,
        compute_satterthwaite=compute_satterthwaite,
    )

    return ModelPair(full=full, null=null, table=table)


# =====================================================================
# Helpers
# =====================================================================

def _optimize_theta(theta0, bounds, design, Z, specs, reml, control):
    """Minimize the profiled deviance over θ.

    L-BFGS-B is tried first. If it stops without meeting its criteria
    (typically a failed line search on a flat deviance), Powell restarts
    from where it stopped. Returns (OptimizeResult, optimizer_name).
    """
    args = (design.X, Z, design.y, specs, reml)
    opt_result = minimize(
        profiled_deviance,
        theta0,
        args=args,
        method='L-BFGS-B',
        bounds=bounds,
        options={
            'maxiter': control.max_iter,
            'ftol': control.tol,
            'gtol': control.tol * 10,
        },
    )
    if opt_result.success or opt_result.nit >= control.max_iter:
        return opt_result, 'L-BFGS-B'

    retry = minimize(
        profiled_deviance,
        np.maximum(opt_result.x, 0.0),
        args=args,
        method='Powell',
        bounds=bounds,
        options={'maxiter': control.max_iter, 'xtol': 1e-8, 'ftol': control.tol},
    )
    return retry, 'Powell'


def _extract_var_components(
    theta: np.ndarray,
    sigma_sq: float,
    specs: list,
) -> list[VarCompSummary]:
    """Variance of each random intercept: σ²_k = σ² θ_k²."""
    var_comps = []
    for k, spec in enumerate(specs):
        var_k = float(sigma_sq * theta[k] ** 2)
        var_comps.append(VarCompSummary(
            group=spec.group_name,
            name='(Intercept)',
            variance=var_k,
            std_dev=float(np.sqrt(var_k)),
        ))
    return var_comps


def _extract_blups(b: np.ndarray, specs: list):
    """Split the flat b vector into per-group conditional modes."""
    blups = {}
    levels = {}
    offset = 0
    for spec in specs:
        blups[spec.group_name] = b[offset:offset + spec.n_groups].copy()
        levels[spec.group_name] = spec.levels
        offset += spec.n_groups
    return blups, levels


def _make_coef_names(p: int) -> tuple[str, ...]:
    """Generate default coefficient names."""
    return ('(Intercept)',) + tuple(f'X{i}' for i in range(1, p))


def _check_residual_variation(X, Z, y, rtol):
    """Raise PerfectFitError when [X Z] reproduces y exactly.

    The residual variance is then zero and the profiled deviance has no
    minimum: n × log(pwrss) runs to -inf as θ grows.
    """
    if np.ptp(y) == 0.0:
        raise PerfectFitError(
            f"Response is constant (every value is {y[0]:g}); "
            f"no variance to model",
            residual_ss=0.0,
            total_ss=0.0,
        )
    total_ss = float(np.sum((y - y.mean()) ** 2))
    A = np.hstack([X, Z])
    coef, _, _, _ = np.linalg.lstsq(A, y, rcond=None)
    resid = y - A @ coef
    residual_ss = float(resid @ resid)
    if residual_ss <= rtol * total_ss:
        raise PerfectFitError(
            f"Fixed effects plus random intercepts reproduce the response "
            f"exactly (residual SS {residual_ss:.3g}, total SS "
            f"{total_ss:.3g}); the residual variance would be zero and the "
            f"likelihood unbounded",
            residual_ss=residual_ss,
            total_ss=total_ss,
        )
