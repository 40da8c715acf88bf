"""
Common data types for the linear mixed model.

Contains the frozen parameter payload that goes inside Result[P] envelopes.
The payload is a plain data container without methods. It carries what
the later stages (diagnostics, likelihood ratio test, R², post-hoc
comparisons) read from a fit.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), 1-48.
"""

from dataclasses import dataclass

from numpy.typing import NDArray


@dataclass(frozen=True)
class VarCompSummary:
    """Variance component summary for one random intercept.

    Attributes:
        group: Grouping factor name (e.g. 'locus').
        name: Term name, always '(Intercept)'.
        variance: Estimated variance σ²_b for this component.
        std_dev: Standard deviation (sqrt of variance).
    """
    group: str
    name: str
    variance: float
    std_dev: float


@dataclass(frozen=True)
class LMMParams:
    """
    Parameter payload for a fitted linear mixed model.
    """
    # Fixed effects
    coefficients: NDArray              # β̂ (p,)
    coefficient_names: tuple[str, ...]
    se: NDArray                        # standard errors of β̂ (p,)
    vcov: NDArray                      # Var(β̂) = σ² (X'V*⁻¹X)⁻¹ (p, p)
    df_satterthwaite: NDArray          # Satterthwaite df per fixed effect (p,)
    t_values: NDArray                  # β̂ / se (p,)
    p_values: NDArray                  # from t-distribution with Satt. df (p,)

    # Random effects
    var_components: tuple[VarCompSummary, ...]
    residual_variance: float           # σ²
    residual_std: float                # σ

    # Model fit
    log_likelihood: float
    deviance: float                    # -2 × log-likelihood
    reml: bool
    aic: float
    bic: float
    n_params: int                      # p + n_theta + 1
    n_obs: int
    n_groups: dict[str, int]           # grouping factor → number of levels

    # Convergence
    converged: bool
    n_iter: int
    singular: bool                     # some θ on the zero boundary

    # Random effects conditional modes (BLUPs)
    random_effects: dict[str, NDArray]         # group → (J,)
    group_levels: dict[str, tuple[str, ...]]   # group → labels of the BLUPs

    # Predictions
    fitted_values: NDArray             # Xβ̂ + Zb̂ (n,)
    residuals: NDArray                 # y - fitted (n,)
    fixed_predictor: NDArray           # Xβ̂ (n,)

    # Data the model was fit on
    X: NDArray                         # fixed effects design (n, p)
    y: NDArray                         # response (n,)
    groups: dict[str, NDArray]         # group → labels (n,)

    # Fixed factor coding (None / () for a plain design matrix)
    fixed_factor: str | None
    fixed_levels: tuple[str, ...]

    # Internal
    theta: NDArray                     # converged θ parameters
