"""
pyrichness: allelic richness vs habitat with linear mixed models.

Fits ``richness ~ habitat + (1 | locus)`` and its intercept-only null by
maximum likelihood, compares them with a likelihood ratio test, reports
Nakagawa R² and adjusts all pairwise habitat comparisons for multiplicity.

Submodules:
    data: Loading and validation of observation tables
    mixed: Random-intercept linear mixed models
    diagnostics: Residuals for model checking
    inference: Likelihood ratio test and R²
    posthoc: Marginal means and pairwise comparisons
    analysis: The end-to-end pipeline
"""

__version__ = "0.1.0"

from pyrichness import data
from pyrichness import mixed
from pyrichness.analysis import AnalysisReport, run_analysis
from pyrichness.core.config import AnalysisConfig, FitControl

__all__ = [
    "__version__",
    "data",
    "mixed",
    "run_analysis",
    "AnalysisReport",
    "AnalysisConfig",
    "FitControl",
]
