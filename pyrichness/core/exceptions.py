"""
Exception hierarchy for pyrichness.

All exceptions inherit from PyRichnessError to allow catching any
library-specific error. Each analysis stage raises the subclass that
names its failure:

    data loading      ParseError, MissingColumnError,
                      DuplicateObservationError, InconsistentHabitatError
    model fitting     ConvergenceError, SingularFitError, PerfectFitError
    model comparison  ModelMismatchError
    post-hoc tests    UnderdeterminedComparisonError

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class PyRichnessError(Exception):
    """Base exception for all pyrichness errors."""
    pass


class ValidationError(PyRichnessError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class ParseError(ValidationError):
    """
    A cell of the input table could not be parsed.

    Attributes:
        column: Name of the offending column
        row: 1-based data row number (header excluded), if known
        value: The raw text that failed to parse
    """

    def __init__(
        self,
        message: str,
        column: str | None = None,
        row: int | None = None,
        value: str | None = None,
    ):
        super().__init__(message)
        self.column = column
        self.row = row
        self.value = value


class MissingColumnError(ValidationError):
    """
    A required column is absent from the input header.

    Attributes:
        missing: Names of the required columns that were not found
        available: Column names present in the header
    """

    def __init__(
        self,
        message: str,
        missing: tuple[str, ...] = (),
        available: tuple[str, ...] = (),
    ):
        super().__init__(message)
        self.missing = tuple(missing)
        self.available = tuple(available)


class DuplicateObservationError(ValidationError):
    """
    A (locality, locus) pair occurs more than once.

    Attributes:
        locality: The duplicated locality label
        locus: The duplicated locus label
    """

    def __init__(self, message: str, locality: str, locus: str):
        super().__init__(message)
        self.locality = locality
        self.locus = locus


class InconsistentHabitatError(ValidationError):
    """
    A locality is recorded under more than one habitat.

    Attributes:
        locality: The offending locality label
        habitats: The distinct habitat labels seen for it
    """

    def __init__(self, message: str, locality: str, habitats: tuple[str, ...]):
        super().__init__(message)
        self.locality = locality
        self.habitats = tuple(habitats)


class ModelMismatchError(ValidationError):
    """
    Two fitted models cannot be compared by a likelihood ratio test.

    Raised when the models were not fit on the same data, with the same
    grouping structure and likelihood criterion, or are not nested.

    Attributes:
        reason: Short machine-readable tag ('n_obs', 'response',
                'groups', 'reml', 'df', 'nesting')
    """

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason


class UnderdeterminedComparisonError(ValidationError):
    """
    Pairwise comparisons were requested for a factor with fewer than 2 levels.

    Attributes:
        factor: Name of the factor
        n_levels: Number of levels it has
    """

    def __init__(self, message: str, factor: str | None, n_levels: int):
        super().__init__(message)
        self.factor = factor
        self.n_levels = n_levels


class NumericalError(PyRichnessError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class SingularFitError(NumericalError):
    """
    A random-effect variance estimate sits on the boundary (zero).

    Only raised when FitControl(on_singular='raise'); the default path
    issues a SingularFitWarning and flags the result instead.

    Attributes:
        groups: Grouping factors whose variance collapsed
        theta: The converged relative standard deviations
    """

    def __init__(
        self,
        message: str,
        groups: tuple[str, ...] = (),
        theta: tuple[float, ...] = (),
    ):
        super().__init__(message)
        self.groups = tuple(groups)
        self.theta = tuple(theta)


class PerfectFitError(NumericalError):
    """
    The response is reproduced exactly by the model's design.

    With y in the column space of the fixed effects plus the random
    intercepts (a constant response is the simplest case) the residual
    variance is zero and the ML log-likelihood is unbounded.

    Attributes:
        residual_ss: Residual sum of squares of y on [X Z]
        total_ss: Sum of squares of y about its mean
    """

    def __init__(self, message: str, residual_ss: float, total_ss: float):
        super().__init__(message)
        self.residual_ss = residual_ss
        self.total_ss = total_ss


class ConvergenceError(PyRichnessError):
    """
    Iterative algorithm failed to converge.

    Raised when the optimizer over the variance parameters fails to meet
    convergence criteria within the maximum number of iterations.

    Attributes:
        iterations: Number of iterations completed
        final_change: Final parameter or objective change
        reason: Why convergence failed (optimizer message)
        threshold: The convergence threshold that was not met
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        reason: str | None = None,
        threshold: float | None = None
    ):
        super().__init__(message)
        self.iterations = iterations
        self.final_change = final_change
        self.reason = reason
        self.threshold = threshold


class SingularFitWarning(UserWarning):
    """A random-effect variance was estimated at zero (boundary fit)."""
    pass
