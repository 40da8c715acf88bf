"""
Common data types for model diagnostics.
"""

from dataclasses import dataclass

from numpy.typing import NDArray


@dataclass(frozen=True)
class DiagnosticsParams:
    """Per-observation diagnostics of a fitted LMM plus summary statistics."""
    fitted: NDArray                    # Xβ̂ + Zb̂ (n,)
    residuals: NDArray                 # y - fitted (n,)
    standardized: NDArray              # residuals / σ̂ (n,)
    group: NDArray                     # grouping labels (n,)
    group_name: str
    residual_mean: float
    residual_sd: float
    spread_correlation: float          # Spearman ρ of |residual| vs fitted
    spread_p_value: float
