"""
pytest configuration and shared fixtures.

The reference dataset in fixtures/richness_reference.tsv mirrors the
design of the field study: 24 localities in 4 habitats (Natural,
Disturbed, City, Island; 6 localities each), 5 microsatellite loci per
locality. Locus means differ strongly (≈3 to ≈14 alleles) while habitat
shifts are a fraction of an allele.
"""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from pyrichness.data import ObservationTable, load_observations
from pyrichness.mixed import fit_habitat_models

FIXTURES = Path(__file__).parent / 'fixtures'


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(2024)


@pytest.fixture(scope='session')
def reference_path():
    return FIXTURES / 'richness_reference.tsv'


@pytest.fixture(scope='session')
def reference_table(reference_path):
    return load_observations(reference_path)


@pytest.fixture(scope='session')
def reference_models(reference_table):
    """Full and null models on the reference table (fit once)."""
    return fit_habitat_models(reference_table)


def make_frame(habitats, loci, values, localities_per_habitat):
    """Long-format frame: localities nested in habitats, crossed with loci.

    ``values[i, l]`` is the response of the i-th locality at locus l.
    """
    rows = []
    i = 0
    for habitat in habitats:
        for _ in range(localities_per_habitat):
            for l, locus in enumerate(loci):
                rows.append({
                    'locality': f'L{i + 1:02d}',
                    'habitat': habitat,
                    'locus': locus,
                    'allelic_richness': float(values[i, l]),
                })
            i += 1
    return pd.DataFrame(rows)


@pytest.fixture
def simulated_frame(rng):
    """4 habitats x 5 localities x 6 loci with a clear habitat effect."""
    habitats = ['City', 'Disturbed', 'Island', 'Natural']
    loci = [f'Loc{k}' for k in range(1, 7)]
    shift = np.repeat([0.0, 1.0, 1.5, 3.0], 5)
    locus_mean = rng.normal(8.0, 2.5, size=len(loci))
    values = (shift[:, None] + locus_mean[None, :]
              + rng.normal(0.0, 0.6, size=(20, len(loci))))
    return make_frame(habitats, loci, np.maximum(values, 0.1), 5)


@pytest.fixture
def singular_table():
    """Every locus has the same richness profile across localities.

    Each locality carries one value repeated at all 4 loci, so the locus
    means coincide and the between-locus variance is estimated at zero.
    """
    habitats = ['City', 'Disturbed', 'Island', 'Natural']
    loci = ['Loc1', 'Loc2', 'Loc3', 'Loc4']
    per_locality = np.array([
        5.1, 5.9, 4.6,
        6.2, 5.4, 6.8,
        7.3, 6.1, 6.6,
        8.0, 7.2, 8.9,
    ])
    values = np.repeat(per_locality[:, None], len(loci), axis=1)
    return ObservationTable.from_frame(make_frame(habitats, loci, values, 3))


@pytest.fixture
def identical_loci_table():
    """Each locus carries one richness value shared by every locality.

    The locus intercepts reproduce the response exactly, so habitat has
    no effect and no residual variation is left.
    """
    habitats = ['City', 'Disturbed', 'Island', 'Natural']
    loci = ['LocA', 'LocB', 'LocC', 'LocD']
    locus_value = np.array([4.0, 6.5, 9.0, 12.5])
    values = np.tile(locus_value, (8, 1))
    return ObservationTable.from_frame(make_frame(habitats, loci, values, 2))


@pytest.fixture
def one_level_table(rng):
    """A single habitat: nothing to compare pairwise."""
    loci = ['Loc1', 'Loc2', 'Loc3', 'Loc4', 'Loc5']
    locus_mean = np.array([3.0, 5.5, 7.0, 9.5, 12.0])
    values = locus_mean[None, :] + rng.normal(0.0, 0.5, size=(8, 5))
    return ObservationTable.from_frame(
        make_frame(['Natural'], loci, values, 8)
    )


@pytest.fixture
def frame_builder():
    return make_frame
