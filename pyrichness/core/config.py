"""
Configuration objects for fitting and for the end-to-end analysis.

Both are frozen dataclasses: a configuration is a value that is passed
explicitly to the stage that needs it, never process-wide state.
"""

from dataclasses import dataclass, field

from pyrichness.core.exceptions import ValidationError

POSTHOC_METHODS = ('single-step', 'tukey', 'holm', 'bonferroni', 'BH', 'none')


@dataclass(frozen=True)
class FitControl:
    """Optimizer and boundary settings for a mixed model fit.

    Attributes:
        tol: Convergence tolerance passed to L-BFGS-B (ftol; gtol is 10x).
        max_iter: Maximum optimizer iterations before ConvergenceError.
        singular_tol: θ at or below this value counts as a boundary
            (zero-variance) estimate. Matches lme4's isSingular default.
        on_singular: 'warn' to flag the result and issue a
            SingularFitWarning, 'raise' to raise SingularFitError.
        residual_tol: A residual sum of squares at or below this share of
            the total sum of squares counts as an exact fit
            (PerfectFitError).
    """
    tol: float = 1e-8
    max_iter: int = 500
    singular_tol: float = 1e-4
    on_singular: str = 'warn'
    residual_tol: float = 1e-10

    def __post_init__(self):
        if not self.tol > 0:
            raise ValidationError(f"tol must be positive, got {self.tol}")
        if self.max_iter < 1:
            raise ValidationError(
                f"max_iter must be >= 1, got {self.max_iter}"
            )
        if self.singular_tol < 0:
            raise ValidationError(
                f"singular_tol must be >= 0, got {self.singular_tol}"
            )
        if self.on_singular not in ('warn', 'raise'):
            raise ValidationError(
                f"on_singular must be 'warn' or 'raise', "
                f"got {self.on_singular!r}"
            )
        if self.residual_tol < 0:
            raise ValidationError(
                f"residual_tol must be >= 0, got {self.residual_tol}"
            )


@dataclass(frozen=True)
class AnalysisConfig:
    """Settings for run_analysis().

    Column names describe the roles of the input table; the remaining
    fields control fitting and the post-hoc stage.
    """
    response: str = 'allelic_richness'
    fixed: str = 'habitat'
    group: str = 'locus'
    locality: str = 'locality'
    sep: str = '\t'
    reference: str | None = None
    fit_control: FitControl = field(default_factory=FitControl)
    posthoc_method: str = 'single-step'
    conf_level: float = 0.95
    seed: int = 20240101

    def __post_init__(self):
        roles = [self.response, self.fixed, self.group, self.locality]
        if len(set(roles)) != len(roles):
            raise ValidationError(
                f"response, fixed, group and locality must name distinct "
                f"columns, got {roles}"
            )
        if self.posthoc_method not in POSTHOC_METHODS:
            raise ValidationError(
                f"posthoc_method must be one of {POSTHOC_METHODS}, "
                f"got {self.posthoc_method!r}"
            )
        if not 0.0 < self.conf_level < 1.0:
            raise ValidationError(
                f"conf_level must be in (0, 1), got {self.conf_level}"
            )
