"""
Solution wrapper for the linear mixed model.

LMMSolution wraps Result[LMMParams] and provides lme4/lmerTest-style
summary output and property accessors for the quantities later stages use.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pyrichness.core.result import Result
from pyrichness.mixed._common import LMMParams, VarCompSummary


def _significance_stars(p: float) -> str:
    """Return significance stars like R."""
    if p < 0.001:
        return '***'
    elif p < 0.01:
        return '**'
    elif p < 0.05:
        return '*'
    elif p < 0.1:
        return '.'
    else:
        return ' '


def _format_pvalue(p: float) -> str:
    """Format p-value like R."""
    if p < 2e-16:
        return '< 2e-16'
    elif p < 0.001:
        return f'{p:.2e}'
    else:
        return f'{p:.4f}'


class LMMSolution:
    """Solution wrapper for a fitted linear mixed model.

    Provides R-style summary output matching lmerTest::summary() and
    property accessors for fixed effects, random effects and fit
    statistics.
    """

    def __init__(self, _result: Result[LMMParams]):
        self._result = _result

    @property
    def params(self) -> LMMParams:
        return self._result.params

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def has_warning(self, substring: str) -> bool:
        return self._result.has_warning(substring)

    # --- Fixed effects ---

    @property
    def coefficients(self) -> NDArray:
        """Fixed effect estimates β̂."""
        return self.params.coefficients

    @property
    def fixef(self) -> dict[str, float]:
        """Fixed effects as name → value dict."""
        return dict(zip(self.params.coefficient_names,
                        (float(c) for c in self.params.coefficients)))

    @property
    def se(self) -> NDArray:
        return self.params.se

    @property
    def vcov(self) -> NDArray:
        """Covariance matrix of the fixed effect estimates."""
        return self.params.vcov

    @property
    def t_values(self) -> NDArray:
        return self.params.t_values

    @property
    def p_values(self) -> NDArray:
        """p-values for fixed effects (Satterthwaite df)."""
        return self.params.p_values

    @property
    def df_satterthwaite(self) -> NDArray:
        return self.params.df_satterthwaite

    # --- Random effects ---

    @property
    def ranef(self) -> dict[str, dict[str, float]]:
        """Conditional modes (BLUPs) as group → {level: value}."""
        return {
            group: dict(zip(self.params.group_levels[group],
                            (float(v) for v in values)))
            for group, values in self.params.random_effects.items()
        }

    @property
    def var_components(self) -> tuple[VarCompSummary, ...]:
        return self.params.var_components

    @property
    def random_variance(self) -> float:
        """Sum of the random intercept variances."""
        return float(sum(vc.variance for vc in self.params.var_components))

    @property
    def icc(self) -> dict[str, float]:
        """Intraclass correlation per grouping factor.

        ICC = σ²_group / (σ²_group + σ²_residual)
        """
        sigma_sq_resid = self.params.residual_variance
        return {
            vc.group: vc.variance / (vc.variance + sigma_sq_resid)
            for vc in self.params.var_components
        }

    @property
    def singular(self) -> bool:
        """True if any random intercept variance is on the zero boundary."""
        return self.params.singular

    # --- Model fit ---

    @property
    def log_likelihood(self) -> float:
        return self.params.log_likelihood

    @property
    def deviance(self) -> float:
        return self.params.deviance

    @property
    def aic(self) -> float:
        return self.params.aic

    @property
    def bic(self) -> float:
        return self.params.bic

    @property
    def n_params(self) -> int:
        return self.params.n_params

    @property
    def fitted_values(self) -> NDArray:
        return self.params.fitted_values

    @property
    def residuals(self) -> NDArray:
        return self.params.residuals

    @property
    def converged(self) -> bool:
        return self.params.converged

    # --- Export ---

    def coef_table(self):
        """Fixed effects table as a pandas DataFrame indexed by term."""
        p = self.params
        return pd.DataFrame(
            {
                'estimate': p.coefficients,
                'std_error': p.se,
                'df': p.df_satterthwaite,
                't_value': p.t_values,
                'p_value': p.p_values,
            },
            index=pd.Index(p.coefficient_names, name='term'),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable summary of the fit."""
        p = self.params
        return {
            'method': 'REML' if p.reml else 'ML',
            'n_obs': p.n_obs,
            'n_groups': dict(p.n_groups),
            'fixed_effects': [
                {
                    'term': name,
                    'estimate': float(p.coefficients[i]),
                    'std_error': float(p.se[i]),
                    'df': float(p.df_satterthwaite[i]),
                    't_value': float(p.t_values[i]),
                    'p_value': float(p.p_values[i]),
                }
                for i, name in enumerate(p.coefficient_names)
            ],
            'random_effects': [
                {'group': vc.group, 'name': vc.name,
                 'variance': vc.variance, 'std_dev': vc.std_dev}
                for vc in p.var_components
            ],
            'residual_variance': p.residual_variance,
            'log_likelihood': p.log_likelihood,
            'deviance': p.deviance,
            'aic': p.aic,
            'bic': p.bic,
            'n_params': p.n_params,
            'singular': p.singular,
            'warnings': list(self.warnings),
        }

    # --- Summary ---

    def summary(self) -> str:
        """R-style summary matching lmerTest::summary(lmer(...))."""
        params = self.params
        method = 'REML' if params.reml else 'maximum likelihood'

        lines = []
        lines.append(f"Linear mixed model fit by {method}")
        lines.append("")
        lines.append(
            f"{'AIC':>10s} {'BIC':>10s} {'logLik':>10s} {'deviance':>10s}"
        )
        lines.append(
            f"{params.aic:10.1f} {params.bic:10.1f} "
            f"{params.log_likelihood:10.1f} {params.deviance:10.1f}"
        )
        lines.append("")

        lines.append("Random effects:")
        lines.append(f" {'Groups':<12s} {'Name':<15s} {'Variance':>10s} "
                     f"{'Std.Dev.':>10s}")
        for vc in params.var_components:
            lines.append(
                f" {vc.group:<12s} {vc.name:<15s} {vc.variance:10.4f} "
                f"{vc.std_dev:10.4f}"
            )
        lines.append(
            f" {'Residual':<12s} {'':<15s} {params.residual_variance:10.4f} "
            f"{params.residual_std:10.4f}"
        )

        group_parts = ', '.join(
            f'{name}, {n}' for name, n in params.n_groups.items()
        )
        lines.append(f"Number of obs: {params.n_obs}, groups:  {group_parts}")
        lines.append("")

        lines.append("Fixed effects:")
        width = max(15, max(len(n) for n in params.coefficient_names))
        header = (f" {'':>{width}s} {'Estimate':>10s} {'Std. Error':>10s} "
                  f"{'df':>10s} {'t value':>10s} {'Pr(>|t|)':>10s} {'':>4s}")
        lines.append(header)

        for i, name in enumerate(params.coefficient_names):
            p_str = _format_pvalue(params.p_values[i])
            stars = _significance_stars(params.p_values[i])
            lines.append(
                f" {name:>{width}s} {params.coefficients[i]:10.4f} "
                f"{params.se[i]:10.4f} {params.df_satterthwaite[i]:10.2f} "
                f"{params.t_values[i]:10.3f} {p_str:>10s} {stars}"
            )

        lines.append("---")
        lines.append("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")

        if params.singular:
            lines.append("")
            lines.append("boundary (singular) fit: see help('isSingular')")

        return '\n'.join(lines)

    def __repr__(self) -> str:
        method = 'REML' if self.params.reml else 'ML'
        return (
            f"LMMSolution({method}, "
            f"n={self.params.n_obs}, "
            f"fixed={len(self.params.coefficients)}, "
            f"random={len(self.params.var_components)} var components)"
        )
