"""
Core infrastructure for pyrichness.

Shared abstractions used by every analysis stage:

    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    config: FitControl and AnalysisConfig
    validation: Input validators
    timing: Section timer
"""

from pyrichness.core.result import Result
from pyrichness.core.config import FitControl, AnalysisConfig
from pyrichness.core.exceptions import (
    PyRichnessError,
    ValidationError,
    ParseError,
    MissingColumnError,
    DuplicateObservationError,
    InconsistentHabitatError,
    ModelMismatchError,
    UnderdeterminedComparisonError,
    NumericalError,
    SingularFitError,
    PerfectFitError,
    ConvergenceError,
    SingularFitWarning,
)

__all__ = [
    # Result
    "Result",
    # Config
    "FitControl",
    "AnalysisConfig",
    # Exceptions
    "PyRichnessError",
    "ValidationError",
    "ParseError",
    "MissingColumnError",
    "DuplicateObservationError",
    "InconsistentHabitatError",
    "ModelMismatchError",
    "UnderdeterminedComparisonError",
    "NumericalError",
    "SingularFitError",
    "PerfectFitError",
    "ConvergenceError",
    "SingularFitWarning",
]
