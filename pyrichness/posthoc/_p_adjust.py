"""
Sequential multiple testing corrections matching R's p.adjust().

Supports holm, bonferroni, BH (alias fdr) and none. These adjust each
p-value from the ordered set of raw p-values only; the single-step and
Tukey adjustments, which use the joint distribution of the pairwise
statistics, live in _pairwise.py.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray, ArrayLike

from pyrichness.core.exceptions import ValidationError

SEQUENTIAL_METHODS = ("holm", "bonferroni", "BH", "fdr", "none")


def p_adjust(
    p: ArrayLike,
    method: str = "holm",
) -> NDArray[np.floating]:
    """
    Adjust p-values for multiple comparisons. Matches R p.adjust().

    Parameters
    ----------
    p : array-like
        Vector of p-values.
    method : str
        One of "holm" (default), "bonferroni", "BH", "fdr" (alias for
        BH), "none".

    Returns
    -------
    ndarray
        Adjusted p-values, same length as input, clipped to [0, 1].
        NaN positions in input produce NaN in output and do not count
        towards the number of tests.
    """
    if method not in SEQUENTIAL_METHODS:
        raise ValidationError(
            f"method must be one of {SEQUENTIAL_METHODS}, got {method!r}"
        )

    p_arr = np.asarray(p, dtype=np.float64).ravel()
    result = p_arr.copy()
    valid = ~np.isnan(p_arr)
    if method == "none" or not valid.any():
        return result

    pv = p_arr[valid]
    n = len(pv)

    if method == "bonferroni":
        adjusted = pv * n
    elif method == "holm":
        order = np.argsort(pv, kind="stable")
        # p_(i) × (n - i + 1), then running max
        stepped = np.maximum.accumulate(pv[order] * np.arange(n, 0, -1))
        adjusted = np.empty(n)
        adjusted[order] = stepped
    else:
        order = np.argsort(pv, kind="stable")[::-1]
        # p_(i) × n / i from the largest down, then running min
        ranks = np.arange(n, 0, -1, dtype=np.float64)
        stepped = np.minimum.accumulate(pv[order] * n / ranks)
        adjusted = np.empty(n)
        adjusted[order] = stepped

    result[valid] = np.clip(adjusted, 0.0, 1.0)
    return result
