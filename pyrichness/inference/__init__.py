"""
Model-level inference for fitted LMMs.

Public API:
    likelihood_ratio_test() — χ² test of a null model against a full model
    r_squared()             — marginal and conditional R²
    LRTSolution             — result wrapper for the test
    RSquaredSolution        — result wrapper for R²
"""

from pyrichness.inference._lrt import likelihood_ratio_test
from pyrichness.inference._r_squared import r_squared
from pyrichness.inference.solution import LRTSolution, RSquaredSolution

__all__ = [
    "likelihood_ratio_test",
    "r_squared",
    "LRTSolution",
    "RSquaredSolution",
]
