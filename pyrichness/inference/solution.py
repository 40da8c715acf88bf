"""
Solution wrappers for the likelihood ratio test and R² decomposition.
"""

from __future__ import annotations

from typing import Any

from pyrichness.core.result import Result
from pyrichness.inference._common import LRTParams, RSquaredParams


def _format_pvalue(p: float) -> str:
    """Format p-value like R."""
    if p < 2e-16:
        return '< 2e-16'
    elif p < 0.001:
        return f'{p:.2e}'
    else:
        return f'{p:.4f}'


class LRTSolution:
    """Result of likelihood_ratio_test()."""

    def __init__(self, _result: Result[LRTParams]):
        self._result = _result

    @property
    def params(self) -> LRTParams:
        return self._result.params

    @property
    def statistic(self) -> float:
        """Likelihood ratio χ² statistic."""
        return self.params.statistic

    @property
    def df(self) -> int:
        return self.params.df

    @property
    def p_value(self) -> float:
        return self.params.p_value

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def to_dict(self) -> dict[str, Any]:
        p = self.params
        return {
            'statistic': p.statistic,
            'df': p.df,
            'p_value': p.p_value,
            'log_likelihood_null': p.log_likelihood_null,
            'log_likelihood_full': p.log_likelihood_full,
            'n_params_null': p.n_params_null,
            'n_params_full': p.n_params_full,
            'aic_null': p.aic_null,
            'aic_full': p.aic_full,
            'bic_null': p.bic_null,
            'bic_full': p.bic_full,
        }

    def summary(self) -> str:
        """Table in the layout of R's anova(null, full)."""
        p = self.params
        lines = [
            "Likelihood ratio test (models fit by ML)",
            f"{'':>6s} {'npar':>5s} {'AIC':>10s} {'BIC':>10s} "
            f"{'logLik':>10s} {'Chisq':>9s} {'Df':>3s} {'Pr(>Chisq)':>11s}",
            f"{'null':>6s} {p.n_params_null:5d} {p.aic_null:10.2f} "
            f"{p.bic_null:10.2f} {p.log_likelihood_null:10.3f}",
            f"{'full':>6s} {p.n_params_full:5d} {p.aic_full:10.2f} "
            f"{p.bic_full:10.2f} {p.log_likelihood_full:10.3f} "
            f"{p.statistic:9.4f} {p.df:3d} {_format_pvalue(p.p_value):>11s}",
        ]
        return '\n'.join(lines)

    def __repr__(self) -> str:
        return (
            f"LRTSolution(chisq={self.statistic:.4f}, df={self.df}, "
            f"p={self.p_value:.4g})"
        )


class RSquaredSolution:
    """Result of r_squared()."""

    def __init__(self, _result: Result[RSquaredParams]):
        self._result = _result

    @property
    def params(self) -> RSquaredParams:
        return self._result.params

    @property
    def marginal(self) -> float:
        """Variance explained by the fixed effects alone."""
        return self.params.marginal

    @property
    def conditional(self) -> float:
        """Variance explained by fixed and random effects together."""
        return self.params.conditional

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def to_dict(self) -> dict[str, Any]:
        p = self.params
        return {
            'marginal': p.marginal,
            'conditional': p.conditional,
            'var_fixed': p.var_fixed,
            'var_random': p.var_random,
            'var_residual': p.var_residual,
            'icc': p.icc,
        }

    def summary(self) -> str:
        p = self.params
        return '\n'.join([
            "R² for mixed models (Nakagawa & Schielzeth)",
            f"  Marginal R²:    {p.marginal:.4f}",
            f"  Conditional R²: {p.conditional:.4f}",
            f"  Variances: fixed {p.var_fixed:.4f}, random "
            f"{p.var_random:.4f}, residual {p.var_residual:.4f}",
        ])

    def __repr__(self) -> str:
        return (
            f"RSquaredSolution(marginal={self.marginal:.4f}, "
            f"conditional={self.conditional:.4f})"
        )
