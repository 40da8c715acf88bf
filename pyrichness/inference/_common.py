"""
Common data types for model-level inference.

Frozen parameter payloads for the likelihood ratio test and the
marginal / conditional R² decomposition.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class LRTParams:
    """Parameter payload for a likelihood ratio test of nested models."""
    statistic: float               # 2 × (logLik_full - logLik_null)
    df: int                        # n_params_full - n_params_null
    p_value: float                 # P(χ²_df ≥ statistic)
    log_likelihood_null: float
    log_likelihood_full: float
    n_params_null: int
    n_params_full: int
    aic_null: float
    aic_full: float
    bic_null: float
    bic_full: float
    n_obs: int


@dataclass(frozen=True)
class RSquaredParams:
    """Parameter payload for the Nakagawa & Schielzeth R² decomposition."""
    marginal: float                # V_fixed / total
    conditional: float             # (V_fixed + V_random) / total
    var_fixed: float               # sample variance of Xβ̂
    var_random: float              # Σ random intercept variances
    var_residual: float            # σ²
    icc: float                     # V_random / (V_random + V_residual)
