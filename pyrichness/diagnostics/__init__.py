"""
Residual diagnostics for fitted mixed models.

Public API:
    residual_diagnostics() — fitted values and residuals for plotting
    DiagnosticsSolution    — result wrapper
"""

from pyrichness.diagnostics._residuals import residual_diagnostics
from pyrichness.diagnostics.solution import DiagnosticsSolution

__all__ = [
    "residual_diagnostics",
    "DiagnosticsSolution",
]
