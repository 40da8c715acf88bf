"""
Common data types for post-hoc comparisons.

Contains the frozen parameter payloads that go inside Result[P] envelopes.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class MarginalMean:
    """Estimated marginal mean of one factor level."""
    level: str
    estimate: float
    se: float
    df: float
    ci_lower: float
    ci_upper: float


@dataclass(frozen=True)
class PairwiseComparison:
    """One row of a pairwise comparison table: level1 - level2."""
    level1: str
    level2: str
    estimate: float
    se: float
    df: float                  # Satterthwaite df of the contrast
    statistic: float
    p_value: float             # unadjusted
    p_adjusted: float
    ci_lower: float            # simultaneous when the method allows it
    ci_upper: float


@dataclass(frozen=True)
class PairwiseParams:
    """Parameter payload for pairwise comparisons of marginal means."""
    method: str                # 'single-step', 'tukey', 'holm', ...
    factor: str
    conf_level: float
    n_sim: int | None          # integration points (single-step only)
    seed: int | None
    comparisons: tuple[PairwiseComparison, ...]
    means: tuple[MarginalMean, ...]
