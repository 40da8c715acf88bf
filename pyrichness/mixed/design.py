"""
Design construction and validation for the random-intercept LMM.

MixedDesign validates and organizes the inputs to lmm(): the response y,
fixed effects matrix X and grouping variables. design_matrix() builds X
from an ObservationTable with treatment (reference) coding of the fixed
factor, the coding R uses by default for model formulas.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray

from pyrichness.core.exceptions import ValidationError
from pyrichness.core.validation import check_array, check_finite
from pyrichness.data.table import ObservationTable


@dataclass(frozen=True)
class MixedDesign:
    """Validated design for a mixed model.

    Attributes:
        y: Response vector (n,).
        X: Fixed effects design matrix (n, p).
        groups: Dict of grouping factor name → group labels (n,).
        n: Number of observations.
        p: Number of fixed effect columns.
    """
    y: NDArray
    X: NDArray
    groups: dict[str, NDArray]
    n: int
    p: int

    @staticmethod
    def validate(y, X, groups) -> 'MixedDesign':
        """Validate inputs and create a MixedDesign.

        Args:
            y: Response vector.
            X: Fixed effects design matrix. If 1-D, treated as a single
               column (include the intercept yourself).
            groups: Dict mapping grouping factor names to label arrays.

        Returns:
            Validated MixedDesign.

        Raises:
            ValidationError: On invalid inputs.
        """
        y = check_array(y, 'y').ravel()
        n = len(y)

        if n < 3:
            raise ValidationError(f"Need at least 3 observations, got {n}")

        X = check_array(X, 'X')
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        if X.shape[0] != n:
            raise ValidationError(
                f"X has {X.shape[0]} rows, expected {n} (matching y)"
            )
        p = X.shape[1]

        check_finite(y, 'y')
        check_finite(X, 'X')

        rank = np.linalg.matrix_rank(X)
        if rank < p:
            raise ValidationError(
                f"X is rank deficient: rank {rank} < {p} columns"
            )
        if n <= p:
            raise ValidationError(
                f"Need more observations than fixed effects, got n={n}, p={p}"
            )

        if not groups:
            raise ValidationError("At least one grouping factor required")

        groups_validated = {}
        for name, g in groups.items():
            g = np.asarray(g)
            if g.shape[0] != n:
                raise ValidationError(
                    f"Group '{name}' has {g.shape[0]} elements, expected {n}"
                )
            n_levels = len(np.unique(g))
            if n_levels < 2:
                raise ValidationError(
                    f"Group '{name}' has only {n_levels} level(s), "
                    f"need at least 2"
                )
            groups_validated[name] = g

        return MixedDesign(y=y, X=X, groups=groups_validated, n=n, p=p)


def design_matrix(
    table: ObservationTable,
    include_fixed: bool = True,
) -> tuple[NDArray, tuple[str, ...]]:
    """Build the treatment-coded fixed effects matrix for a table.

    The first entry of ``table.fixed_levels`` is the baseline absorbed in
    the intercept; every other level gets an indicator column named like
    patsy/R does, e.g. 'habitat[T.City]'.

    Args:
        table: Validated observation table.
        include_fixed: If False, return the intercept-only matrix used by
            the null model.

    Returns:
        (X, coefficient_names)
    """
    n = table.n_obs
    columns = [np.ones(n, dtype=np.float64)]
    names = ['(Intercept)']

    if include_fixed:
        for level in table.fixed_levels[1:]:
            columns.append((table.fixed == level).astype(np.float64))
            names.append(f'{table.fixed_name}[T.{level}]')

    return np.column_stack(columns), tuple(names)


def level_matrix(n_levels: int) -> NDArray:
    """Rows mapping treatment-coded β to the mean of each factor level.

    Row 0 (baseline) is [1, 0, ..., 0]; row j is the intercept plus the
    j-th indicator. Returns shape (k, k).
    """
    M = np.zeros((n_levels, n_levels), dtype=np.float64)
    M[:, 0] = 1.0
    for j in range(1, n_levels):
        M[j, j] = 1.0
    return M
