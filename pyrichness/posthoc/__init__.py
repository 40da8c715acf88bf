"""
Post-hoc comparisons among the levels of the fixed factor.

Public API:
    marginal_means()       — estimated marginal mean per level
    pairwise_comparisons() — all pairwise differences with FWER adjustment
    p_adjust()             — R's p.adjust() for sequential corrections
    PairwiseSolution       — result wrapper
"""

from pyrichness.posthoc._emmeans import marginal_means
from pyrichness.posthoc._pairwise import pairwise_comparisons
from pyrichness.posthoc._p_adjust import p_adjust
from pyrichness.posthoc.solution import PairwiseSolution

__all__ = [
    "marginal_means",
    "pairwise_comparisons",
    "p_adjust",
    "PairwiseSolution",
]
