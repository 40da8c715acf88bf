"""
Linear mixed models with random intercepts.

Public API:
    lmm()                — fit a linear mixed model (ML or REML)
    fit_habitat_models() — full and null habitat models for one table
    design_matrix()      — treatment-coded fixed effects matrix
    LMMSolution          — result wrapper with summary()
    ModelPair            — (full, null, table) bundle
"""

from pyrichness.mixed.solvers import lmm, fit_habitat_models, ModelPair
from pyrichness.mixed.solution import LMMSolution
from pyrichness.mixed.design import design_matrix

__all__ = [
    "lmm",
    "fit_habitat_models",
    "design_matrix",
    "LMMSolution",
    "ModelPair",
]
