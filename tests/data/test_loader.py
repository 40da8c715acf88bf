"""Tests for load_observations()."""

import numpy as np
import pytest

from pyrichness.core.exceptions import (
    DuplicateObservationError,
    InconsistentHabitatError,
    MissingColumnError,
    ParseError,
)
from pyrichness.data import load_observations

HEADER = "locality\thabitat\tlocus\tallelic_richness\n"


def _write(tmp_path, text, name='data.tsv'):
    path = tmp_path / name
    path.write_text(text)
    return path


# ═══════════════════════════════════════════════════════════════════════
# Reference file
# ═══════════════════════════════════════════════════════════════════════


class TestReferenceFile:

    def test_shape(self, reference_table):
        assert reference_table.n_obs == 120
        assert reference_table.n_localities == 24
        assert len(reference_table.group_levels) == 5

    def test_levels_sorted(self, reference_table):
        assert reference_table.fixed_levels == (
            'City', 'Disturbed', 'Island', 'Natural'
        )

    def test_response_is_float(self, reference_table):
        assert reference_table.response.dtype == np.float64
        assert np.all(reference_table.response >= 0)

    def test_source_path_recorded(self, reference_table, reference_path):
        assert reference_table.source_path == str(reference_path)

    def test_reference_level_first(self, reference_path):
        table = load_observations(reference_path, reference='Natural')
        assert table.fixed_levels[0] == 'Natural'
        assert sorted(table.fixed_levels[1:]) == [
            'City', 'Disturbed', 'Island'
        ]


# ═══════════════════════════════════════════════════════════════════════
# Layout variations
# ═══════════════════════════════════════════════════════════════════════


class TestLayout:

    def test_column_order_and_extra_columns(self, tmp_path):
        path = _write(tmp_path, (
            "allelic_richness\tnotes\tlocus\tlocality\thabitat\n"
            "4.5\tok\tLoc1\tL01\tCity\n"
            "6.1\t\tLoc2\tL01\tCity\n"
        ))
        table = load_observations(path)
        np.testing.assert_allclose(table.response, [4.5, 6.1])
        assert tuple(table.group) == ('Loc1', 'Loc2')

    def test_custom_names_and_separator(self, tmp_path):
        path = _write(tmp_path, (
            "site,env,marker,ar\n"
            "S1,Forest,M1,3.0\n"
            "S1,Forest,M2,5.0\n"
        ), name='data.csv')
        table = load_observations(
            path, response='ar', fixed='env', group='marker',
            locality='site', sep=',',
        )
        assert table.response_name == 'ar'
        assert table.fixed_levels == ('Forest',)

    def test_header_whitespace_stripped(self, tmp_path):
        path = _write(tmp_path, (
            " locality \thabitat\tlocus\t allelic_richness\n"
            "L01\tCity\tLoc1\t4.0\n"
        ))
        table = load_observations(path)
        assert table.n_obs == 1

    def test_labels_keep_leading_zeros(self, tmp_path):
        path = _write(tmp_path, HEADER + "01\tCity\t007\t4.0\n")
        table = load_observations(path)
        assert table.locality[0] == '01'
        assert table.group[0] == '007'

    def test_label_nan_read_as_text(self, tmp_path):
        """Labels that pandas would read as missing stay labels."""
        path = _write(tmp_path, HEADER + (
            "L01\tCity\tNaN\t4.0\n"
            "L01\tCity\tnan\t5.0\n"
            "L02\tCity\tNA\t4.5\n"
        ))
        table = load_observations(path)
        assert table.group_levels == ('NA', 'NaN', 'nan')


# ═══════════════════════════════════════════════════════════════════════
# Failures
# ═══════════════════════════════════════════════════════════════════════


class TestLoaderErrors:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_observations(tmp_path / 'absent.tsv')

    def test_empty_file(self, tmp_path):
        with pytest.raises(ParseError, match="empty"):
            load_observations(_write(tmp_path, ""))

    def test_missing_column(self, tmp_path):
        path = _write(tmp_path, (
            "locality\thabitat\tallelic_richness\n"
            "L01\tCity\t4.0\n"
        ))
        with pytest.raises(MissingColumnError) as exc_info:
            load_observations(path)
        assert exc_info.value.missing == ('locus',)
        assert 'habitat' in exc_info.value.available

    def test_unparseable_response(self, tmp_path):
        path = _write(tmp_path, HEADER + (
            "L01\tCity\tLoc1\t4.0\n"
            "L01\tCity\tLoc2\tfour\n"
        ))
        with pytest.raises(ParseError) as exc_info:
            load_observations(path)
        err = exc_info.value
        assert err.column == 'allelic_richness'
        assert err.row == 2
        assert err.value == 'four'

    def test_empty_response_cell(self, tmp_path):
        path = _write(tmp_path, HEADER + "L01\tCity\tLoc1\t\n")
        with pytest.raises(ParseError):
            load_observations(path)

    def test_negative_response(self, tmp_path):
        path = _write(tmp_path, HEADER + "L01\tCity\tLoc1\t-1.5\n")
        with pytest.raises(ParseError, match="non-negative"):
            load_observations(path)

    def test_too_many_fields(self, tmp_path):
        path = _write(tmp_path, HEADER + (
            "L01\tCity\tLoc1\t4.0\n"
            "L01\tCity\tLoc2\t4.0\textra\tcells\n"
        ))
        with pytest.raises(ParseError):
            load_observations(path)

    def test_duplicate_pair(self, tmp_path):
        path = _write(tmp_path, HEADER + (
            "L01\tCity\tLoc1\t4.0\n"
            "L01\tCity\tLoc1\t4.2\n"
        ))
        with pytest.raises(DuplicateObservationError) as exc_info:
            load_observations(path)
        assert exc_info.value.locality == 'L01'
        assert exc_info.value.locus == 'Loc1'

    def test_locality_in_two_habitats(self, tmp_path):
        path = _write(tmp_path, HEADER + (
            "L01\tCity\tLoc1\t4.0\n"
            "L01\tNatural\tLoc2\t4.2\n"
        ))
        with pytest.raises(InconsistentHabitatError) as exc_info:
            load_observations(path)
        assert exc_info.value.habitats == ('City', 'Natural')
