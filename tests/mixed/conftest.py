"""
Shared fixtures for mixed model tests.

Provides balanced random-intercept datasets whose ML and REML estimates
have closed forms, for exact checks of the optimizer.
"""

import numpy as np
import pytest


@pytest.fixture
def balanced_one_way(rng):
    """y_ij = 10 + b_j + e_ij, 8 groups of 6, σ_b = 2, σ = 1.

    Also returns the ANOVA sums of squares the closed-form estimates use.
    """
    n_groups = 8
    n_per_group = 6
    n = n_groups * n_per_group

    group = np.repeat(np.arange(n_groups), n_per_group)
    b = rng.normal(0.0, 2.0, size=n_groups)
    y = 10.0 + b[group] + rng.normal(0.0, 1.0, size=n)

    group_means = np.array([y[group == j].mean() for j in range(n_groups)])
    ssw = float(np.sum((y - group_means[group]) ** 2))
    ssb = float(n_per_group * np.sum((group_means - y.mean()) ** 2))

    return {
        'y': y,
        'X': np.ones((n, 1)),
        'group': group,
        'n_groups': n_groups,
        'n_per_group': n_per_group,
        'ssw': ssw,
        'ssb': ssb,
    }


@pytest.fixture
def random_intercept_simple(rng):
    """y ~ x + (1 | group): 20 groups of 10, β = (5, 2), σ_b = 1.5, σ = 1."""
    n_groups = 20
    n_per_group = 10
    n = n_groups * n_per_group

    group = np.repeat(np.arange(n_groups), n_per_group)
    x = rng.normal(0.0, 1.0, size=n)
    b = rng.normal(0.0, 1.5, size=n_groups)
    y = 5.0 + 2.0 * x + b[group] + rng.normal(0.0, 1.0, size=n)

    return {
        'y': y,
        'X': np.column_stack([np.ones(n), x]),
        'group': np.array([f'g{j:02d}' for j in group]),
        'n_groups': n_groups,
        'n_per_group': n_per_group,
        'beta0': 5.0,
        'beta1': 2.0,
    }
