"""Tests for p_adjust(). Expected values from R's p.adjust()."""

import numpy as np
import pytest

from pyrichness.core.exceptions import ValidationError
from pyrichness.posthoc import p_adjust

P = [0.01, 0.02, 0.03, 0.04, 0.05]


class TestPAdjust:

    def test_bonferroni(self):
        np.testing.assert_allclose(p_adjust(P, 'bonferroni'),
                                   [0.05, 0.10, 0.15, 0.20, 0.25])

    def test_holm(self):
        np.testing.assert_allclose(p_adjust(P, 'holm'),
                                   [0.05, 0.08, 0.09, 0.09, 0.09])

    def test_bh(self):
        np.testing.assert_allclose(p_adjust(P, 'BH'), [0.05] * 5)

    def test_fdr_alias(self):
        np.testing.assert_allclose(p_adjust(P, 'fdr'), p_adjust(P, 'BH'))

    def test_unsorted_input(self):
        p = [0.04, 0.01, 0.03]
        np.testing.assert_allclose(p_adjust(p, 'holm'), [0.06, 0.03, 0.06])
        np.testing.assert_allclose(p_adjust(p, 'BH'), [0.04, 0.03, 0.04])

    def test_none_is_identity(self):
        np.testing.assert_allclose(p_adjust(P, 'none'), P)

    def test_clipped_at_one(self):
        np.testing.assert_allclose(p_adjust([0.5, 0.6], 'bonferroni'), [1, 1])

    def test_nan_not_counted(self):
        out = p_adjust([0.01, np.nan, 0.02], 'bonferroni')
        np.testing.assert_allclose(out[[0, 2]], [0.02, 0.04])
        assert np.isnan(out[1])

    def test_never_below_raw(self):
        p = np.random.default_rng(7).uniform(size=20)
        for method in ('holm', 'bonferroni', 'BH'):
            assert np.all(p_adjust(p, method) >= p - 1e-15)

    def test_unknown_method(self):
        with pytest.raises(ValidationError, match="method"):
            p_adjust(P, 'hommel')
