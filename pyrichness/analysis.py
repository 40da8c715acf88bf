"""
End-to-end allelic richness vs habitat analysis.

run_analysis() chains the stages in a fixed order:

    load_observations -> fit_habitat_models -> residual_diagnostics
                                            -> likelihood_ratio_test
                                            -> r_squared
                                            -> pairwise_comparisons

Every stage receives the immutable outputs of the previous one; nothing
is kept in module state. The first error stops the run.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pyrichness.core.config import AnalysisConfig
from pyrichness.core.exceptions import UnderdeterminedComparisonError
from pyrichness.data import ObservationTable, load_observations
from pyrichness.diagnostics import DiagnosticsSolution, residual_diagnostics
from pyrichness.inference import (
    LRTSolution,
    RSquaredSolution,
    likelihood_ratio_test,
    r_squared,
)
from pyrichness.mixed import LMMSolution, fit_habitat_models
from pyrichness.posthoc import PairwiseSolution, pairwise_comparisons


@dataclass(frozen=True)
class AnalysisReport:
    """Every output of one analysis run."""
    table: ObservationTable
    full: LMMSolution
    null: LMMSolution
    diagnostics: DiagnosticsSolution
    lrt: LRTSolution
    r2: RSquaredSolution
    posthoc: PairwiseSolution
    config: AnalysisConfig

    @property
    def warnings(self) -> tuple[str, ...]:
        """Warnings of all stages, in stage order, without repeats."""
        seen: list[str] = []
        for stage in (self.full, self.null, self.diagnostics, self.lrt,
                      self.r2, self.posthoc):
            for w in stage.warnings:
                if w not in seen:
                    seen.append(w)
        return tuple(seen)

    def summary(self) -> str:
        t = self.table
        header = [
            f"Data: {t.source_path or '<table>'}",
            f"  {t.n_obs} observations, {t.n_localities} localities, "
            f"{len(t.fixed_levels)} {t.fixed_name} levels, "
            f"{len(t.group_levels)} {t.group_name} levels",
            f"  Model: {t.response_name} ~ {t.fixed_name} + "
            f"(1 | {t.group_name})",
        ]
        sections = [
            "\n".join(header),
            self.full.summary(),
            self.lrt.summary(),
            self.r2.summary(),
            self.posthoc.summary(),
            self.diagnostics.summary(),
        ]
        if self.warnings:
            sections.append(
                "Warnings:\n" + "\n".join(f"  - {w}" for w in self.warnings)
            )
        return "\n\n".join(sections)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable dict of every output."""
        t = self.table
        return {
            'data': {
                'source': t.source_path,
                'n_obs': t.n_obs,
                'n_localities': t.n_localities,
                'response': t.response_name,
                'fixed': t.fixed_name,
                'group': t.group_name,
                'fixed_levels': list(t.fixed_levels),
                'group_levels': list(t.group_levels),
            },
            'full_model': self.full.to_dict(),
            'null_model': self.null.to_dict(),
            'likelihood_ratio_test': self.lrt.to_dict(),
            'r_squared': self.r2.to_dict(),
            'posthoc': self.posthoc.to_dict(),
            'diagnostics': self.diagnostics.to_dict(),
            'warnings': list(self.warnings),
        }


def run_analysis(
    source: str | Path | ObservationTable,
    *,
    config: AnalysisConfig | None = None,
) -> AnalysisReport:
    """Run the full analysis on a file or an already loaded table.

    Args:
        source: Path of a delimited text file, or an ObservationTable.
        config: Column names and stage settings. Default AnalysisConfig().

    Returns:
        AnalysisReport with every stage's result.

    Raises:
        ParseError, MissingColumnError: The input could not be loaded.
        ConvergenceError: A model fit did not converge.
        SingularFitError: Boundary fit with on_singular='raise'.
        ModelMismatchError: The two models are not comparable.
        UnderdeterminedComparisonError: Fewer than 2 fixed factor levels.
    """
    config = config or AnalysisConfig()

    if isinstance(source, ObservationTable):
        table = source
        if config.reference is not None:
            table = table.with_reference(config.reference)
    else:
        table = load_observations(
            source,
            response=config.response,
            fixed=config.fixed,
            group=config.group,
            locality=config.locality,
            sep=config.sep,
            reference=config.reference,
        )

    if len(table.fixed_levels) < 2:
        raise UnderdeterminedComparisonError(
            f"{table.fixed_name} has {len(table.fixed_levels)} level(s); "
            f"its effect cannot be tested or compared",
            factor=table.fixed_name,
            n_levels=len(table.fixed_levels),
        )

    models = fit_habitat_models(table, control=config.fit_control)
    diagnostics = residual_diagnostics(models.full)
    lrt = likelihood_ratio_test(models.null, models.full)
    r2 = r_squared(models.full)
    posthoc = pairwise_comparisons(
        models.full,
        method=config.posthoc_method,
        conf_level=config.conf_level,
        seed=config.seed,
    )

    return AnalysisReport(
        table=table,
        full=models.full,
        null=models.null,
        diagnostics=diagnostics,
        lrt=lrt,
        r2=r2,
        posthoc=posthoc,
        config=config,
    )
