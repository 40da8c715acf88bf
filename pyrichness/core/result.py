"""
Generic result container for all pyrichness computations.

Every analysis stage (model fit, likelihood ratio test, R² decomposition,
post-hoc comparisons, diagnostics) wraps its payload in the same envelope.
This enables shared tooling for timing, warnings and serialization while
allowing each stage to define its own parameter structure.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (converged, iterations, method)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) for reproducibility
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for statistical computations.

    Type Parameters:
        P: The stage-specific parameter payload type

    Attributes:
        params: Stage-specific parameters (coefficients, estimates, etc.)
        info: Structured metadata (method, convergence, diagnostics)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the routine that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=LRTParams(statistic=3.2, df=3, p_value=0.36, ...),
        ...     info={'method': 'chisq'},
        ...     timing=None,
        ...     backend_name='cpu_lrt'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
