"""
Random intercept specification, Z matrix construction, and Λ_θ.

Only random intercepts are supported: each grouping factor k contributes
J_k indicator columns to Z and a single relative standard deviation
θ_k = σ_k / σ to the parameter vector. Λ_θ is then diagonal, with θ_k
repeated J_k times.

The θ parameterization follows Bates et al. (2015): θ holds the
(relative) Cholesky factor of the random-effect covariance, which for an
intercept is just σ_k / σ.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class RandomEffectSpec:
    """Specification for one grouping factor's random intercept.

    Attributes:
        group_name: Name of the grouping factor (e.g. 'locus').
        group_ids: Integer group labels for each observation, shape (n,).
            Values are 0-indexed consecutive integers.
        levels: Original group labels, in the order of the Z columns.
        Z_block: Indicator matrix for this grouping factor, shape (n, J).
        n_groups: Number of unique groups (J).
    """
    group_name: str
    group_ids: NDArray
    levels: tuple[str, ...]
    Z_block: NDArray
    n_groups: int


def parse_random_effects(
    groups: dict[str, NDArray],
    n: int,
) -> list[RandomEffectSpec]:
    """Build one RandomEffectSpec per grouping factor.

    Args:
        groups: Mapping of grouping factor name → group labels array (n,).
        n: Number of observations.

    Returns:
        List of RandomEffectSpec, in the order of ``groups``.
    """
    specs = []
    for group_name, group_raw in groups.items():
        group_raw = np.asarray(group_raw)
        if group_raw.shape[0] != n:
            raise ValueError(
                f"Group '{group_name}' has {group_raw.shape[0]} elements, "
                f"expected {n}"
            )

        unique_levels, group_ids = np.unique(group_raw, return_inverse=True)
        n_groups = len(unique_levels)

        Z_block = np.zeros((n, n_groups), dtype=np.float64)
        Z_block[np.arange(n), group_ids] = 1.0

        specs.append(RandomEffectSpec(
            group_name=group_name,
            group_ids=group_ids,
            levels=tuple(str(v) for v in unique_levels),
            Z_block=Z_block,
            n_groups=n_groups,
        ))

    return specs


def build_z_matrix(specs: list[RandomEffectSpec]) -> NDArray:
    """Concatenate Z blocks: Z = [Z_1 | Z_2 | ...], shape (n, Σ J_k)."""
    if not specs:
        raise ValueError("At least one random effect specification required")
    return np.hstack([spec.Z_block for spec in specs])


def build_lambda(theta: NDArray, specs: list[RandomEffectSpec]) -> NDArray:
    """Build diagonal Λ_θ: θ_k repeated J_k times on the diagonal."""
    diag = np.concatenate([
        np.full(spec.n_groups, theta[k], dtype=np.float64)
        for k, spec in enumerate(specs)
    ])
    return np.diag(diag)


def theta_lower_bounds(specs: list[RandomEffectSpec]) -> NDArray:
    """Lower bounds for θ: every random intercept SD is ≥ 0."""
    return np.zeros(len(specs), dtype=np.float64)


def theta_start(specs: list[RandomEffectSpec]) -> NDArray:
    """Starting θ: σ_k/σ = 1, an equal split of variance."""
    return np.ones(len(specs), dtype=np.float64)
