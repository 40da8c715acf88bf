"""
Data loading: delimited text -> validated ObservationTable.

Public API:
    load_observations()  — read a tab-separated allelic-richness table
    ObservationTable     — immutable, validated in-memory table
"""

from pyrichness.data.loader import load_observations
from pyrichness.data.table import ObservationTable

__all__ = [
    "load_observations",
    "ObservationTable",
]
