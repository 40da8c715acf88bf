"""End-to-end tests for run_analysis() and AnalysisReport."""

import json

import numpy as np
import pytest

from pyrichness import AnalysisConfig, FitControl, run_analysis
from pyrichness.core.exceptions import (
    MissingColumnError,
    PerfectFitError,
    SingularFitError,
    SingularFitWarning,
    UnderdeterminedComparisonError,
)


@pytest.fixture(scope='module')
def report(reference_path):
    return run_analysis(reference_path)


class TestRunAnalysis:

    def test_all_stages_present(self, report):
        assert report.table.n_obs == 120
        assert report.lrt.df == 3
        assert 0 <= report.r2.marginal <= report.r2.conditional <= 1
        assert len(report.posthoc.comparisons) == 6
        assert len(report.diagnostics.residuals) == 120

    def test_from_table(self, reference_table, report):
        from_table = run_analysis(reference_table)
        np.testing.assert_allclose(from_table.full.coefficients,
                                   report.full.coefficients, rtol=1e-6)

    def test_deterministic(self, reference_path, report):
        again = run_analysis(reference_path)
        np.testing.assert_allclose(again.full.coefficients,
                                   report.full.coefficients, rtol=1e-6)
        np.testing.assert_allclose(again.lrt.statistic, report.lrt.statistic,
                                   rtol=1e-6)
        np.testing.assert_allclose(again.posthoc.p_adjusted,
                                   report.posthoc.p_adjusted, rtol=1e-6)

    def test_reference_level(self, reference_path):
        config = AnalysisConfig(reference='Natural', posthoc_method='holm')
        rep = run_analysis(reference_path, config=config)
        assert rep.full.params.coefficient_names[1] == 'habitat[T.City]'
        assert rep.posthoc.method == 'holm'
        assert rep.posthoc.comparisons[0].level1 == 'Natural'

    def test_reference_level_for_table(self, reference_table):
        rep = run_analysis(reference_table,
                           config=AnalysisConfig(reference='Disturbed',
                                                 posthoc_method='none'))
        assert rep.table.fixed_levels[0] == 'Disturbed'

    def test_custom_columns(self, tmp_path, reference_table):
        frame = reference_table.to_frame().rename(columns={
            'locality': 'site', 'habitat': 'env',
            'locus': 'marker', 'allelic_richness': 'ar',
        })
        path = tmp_path / 'renamed.csv'
        frame.to_csv(path, index=False)

        config = AnalysisConfig(response='ar', fixed='env', group='marker',
                                locality='site', sep=',',
                                posthoc_method='bonferroni')
        rep = run_analysis(path, config=config)
        assert rep.full.var_components[0].group == 'marker'
        assert rep.posthoc.factor == 'env'


class TestReportOutput:

    def test_summary_lists_every_output(self, report):
        s = report.summary()
        assert 'Fixed effects:' in s
        assert 'Random effects:' in s
        assert 'Likelihood ratio test' in s
        assert 'Conditional R²' in s
        assert 'Pairwise comparisons' in s
        assert 'Scaled residuals' in s

    def test_to_dict_json(self, report):
        out = json.loads(json.dumps(report.to_dict()))
        assert set(out) == {
            'data', 'full_model', 'null_model', 'likelihood_ratio_test',
            'r_squared', 'posthoc', 'diagnostics', 'warnings',
        }
        assert out['data']['n_localities'] == 24
        assert out['data']['fixed_levels'][0] == 'City'


class TestAnalysisFailures:

    def test_missing_column(self, reference_path):
        with pytest.raises(MissingColumnError):
            run_analysis(reference_path,
                         config=AnalysisConfig(response='richness'))

    def test_one_level_factor(self, one_level_table):
        with pytest.raises(UnderdeterminedComparisonError):
            run_analysis(one_level_table)

    def test_singular_warning_path(self, singular_table):
        with pytest.warns(SingularFitWarning):
            rep = run_analysis(singular_table)
        assert rep.full.singular
        assert any('singular' in w.lower() for w in rep.warnings)
        assert 'Warnings:' in rep.summary()

    def test_singular_strict(self, singular_table):
        config = AnalysisConfig(fit_control=FitControl(on_singular='raise'))
        with pytest.raises(SingularFitError):
            run_analysis(singular_table, config=config)

    def test_identical_richness_per_locus_stops(self, identical_loci_table):
        """No likelihood ratio test is reported for an exact fit."""
        with pytest.raises(PerfectFitError):
            run_analysis(identical_loci_table)
