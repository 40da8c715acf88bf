"""
Solution wrapper for pairwise comparisons of marginal means.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from pyrichness.core.result import Result
from pyrichness.posthoc._common import (
    MarginalMean,
    PairwiseComparison,
    PairwiseParams,
)

_METHOD_NAMES = {
    'single-step': "single-step (multivariate t) adjustment",
    'tukey': "Tukey method for comparing a family of estimates",
    'holm': "Holm adjustment",
    'bonferroni': "Bonferroni adjustment",
    'BH': "Benjamini-Hochberg (FDR) adjustment",
    'none': "no adjustment",
}


@dataclass
class PairwiseSolution:
    """
    User-facing result for pairwise comparisons.

    Produced by pairwise_comparisons().
    """
    _result: Result[PairwiseParams]

    @property
    def params(self) -> PairwiseParams:
        return self._result.params

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def method(self) -> str:
        return self._result.params.method

    @property
    def comparisons(self) -> tuple[PairwiseComparison, ...]:
        return self._result.params.comparisons

    @property
    def means(self) -> tuple[MarginalMean, ...]:
        return self._result.params.means

    @property
    def conf_level(self) -> float:
        return self._result.params.conf_level

    @property
    def factor(self) -> str:
        return self._result.params.factor

    @property
    def p_values(self) -> np.ndarray:
        """Unadjusted p-values in comparison order."""
        return np.array([c.p_value for c in self.comparisons])

    @property
    def p_adjusted(self) -> np.ndarray:
        return np.array([c.p_adjusted for c in self.comparisons])

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def to_frame(self) -> pd.DataFrame:
        """One row per comparison, in level order."""
        return pd.DataFrame([
            {
                'contrast': f"{c.level1} - {c.level2}",
                'level1': c.level1,
                'level2': c.level2,
                'estimate': c.estimate,
                'se': c.se,
                'df': c.df,
                't_ratio': c.statistic,
                'p_value': c.p_value,
                'p_adjusted': c.p_adjusted,
                'ci_lower': c.ci_lower,
                'ci_upper': c.ci_upper,
            }
            for c in self.comparisons
        ])

    def to_dict(self) -> dict[str, Any]:
        p = self.params
        return {
            'method': p.method,
            'factor': p.factor,
            'conf_level': p.conf_level,
            'n_sim': p.n_sim,
            'seed': p.seed,
            'means': [
                {
                    'level': m.level,
                    'estimate': m.estimate,
                    'se': m.se,
                    'df': m.df,
                    'ci_lower': m.ci_lower,
                    'ci_upper': m.ci_upper,
                }
                for m in p.means
            ],
            'comparisons': self.to_frame().to_dict(orient='records'),
        }

    def summary(self) -> str:
        """Tables in the layout of emmeans' pairs() output."""
        lines = [
            f"Estimated marginal means of {self.factor}",
            "=" * 72,
            f"{'level':<20} {'emmean':>10} {'SE':>10} {'df':>8} "
            f"{'lower.CL':>10} {'upper.CL':>10}",
        ]
        for m in self.means:
            lines.append(
                f"{m.level:<20} {m.estimate:>10.4f} {m.se:>10.4f} "
                f"{m.df:>8.1f} {m.ci_lower:>10.4f} {m.ci_upper:>10.4f}"
            )

        lines += [
            "",
            f"Pairwise comparisons ({_METHOD_NAMES[self.method]})",
            "-" * 72,
            f"{'contrast':<24} {'estimate':>9} {'SE':>8} {'df':>7} "
            f"{'t.ratio':>8} {'p.value':>10}",
        ]
        for c in self.comparisons:
            label = f"{c.level1} - {c.level2}"
            lines.append(
                f"{label:<24} {c.estimate:>9.4f} {c.se:>8.4f} {c.df:>7.1f} "
                f"{c.statistic:>8.3f} {c.p_adjusted:>10.4f} "
                f"{_significance_stars(c.p_adjusted)}"
            )
        lines.append("-" * 72)
        lines.append(f"Confidence level: {self.conf_level:.0%}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"PairwiseSolution(method={self.method!r}, "
            f"n_comparisons={len(self.comparisons)})"
        )


# =====================================================================
# Helpers
# =====================================================================


def _significance_stars(p: float | None) -> str:
    """Return significance stars for a p-value."""
    if p is None or np.isnan(p):
        return ""
    if p < 0.001:
        return "***"
    if p < 0.01:
        return "**"
    if p < 0.05:
        return "*"
    if p < 0.1:
        return "."
    return ""
