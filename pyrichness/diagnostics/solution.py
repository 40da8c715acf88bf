"""
Solution wrapper for residual diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from pyrichness.core.result import Result
from pyrichness.diagnostics._common import DiagnosticsParams


@dataclass
class DiagnosticsSolution:
    """
    User-facing result for residual diagnostics.

    Produced by residual_diagnostics().
    """
    _result: Result[DiagnosticsParams]

    @property
    def params(self) -> DiagnosticsParams:
        return self._result.params

    @property
    def fitted(self) -> np.ndarray:
        return self.params.fitted

    @property
    def residuals(self) -> np.ndarray:
        return self.params.residuals

    @property
    def standardized(self) -> np.ndarray:
        """Pearson residuals."""
        return self.params.standardized

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def to_frame(self) -> pd.DataFrame:
        """Per-observation table for a residuals-vs-fitted plot."""
        p = self.params
        return pd.DataFrame({
            p.group_name: p.group,
            'fitted': p.fitted,
            'residual': p.residuals,
            'standardized': p.standardized,
        })

    def to_dict(self) -> dict[str, Any]:
        p = self.params
        return {
            'n_obs': int(len(p.residuals)),
            'residual_mean': p.residual_mean,
            'residual_sd': p.residual_sd,
            'spread_correlation': _float_or_none(p.spread_correlation),
            'spread_p_value': _float_or_none(p.spread_p_value),
        }

    def summary(self) -> str:
        p = self.params
        q = np.quantile(p.standardized, [0.0, 0.25, 0.5, 0.75, 1.0])
        return "\n".join([
            "Scaled residuals:",
            f"{'Min':>9} {'1Q':>9} {'Median':>9} {'3Q':>9} {'Max':>9}",
            " ".join(f"{v:>9.4f}" for v in q),
            f"Residual mean {p.residual_mean:.4g}, SD {p.residual_sd:.4g}",
            f"Spearman rho(|residual|, fitted) = "
            f"{p.spread_correlation:.4f} (p = {p.spread_p_value:.4g})",
        ])

    def __repr__(self) -> str:
        return f"DiagnosticsSolution(n_obs={len(self.residuals)})"


def _float_or_none(x: float) -> float | None:
    return None if np.isnan(x) else float(x)
