"""
Command line entry point: ``python -m pyrichness data.tsv``.

Prints the analysis summary; ``--json OUT`` also writes the full report.
Exit status is 1 when the analysis stops on a pyrichness error.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from pyrichness.analysis import run_analysis
from pyrichness.core.config import POSTHOC_METHODS, AnalysisConfig, FitControl
from pyrichness.core.exceptions import PyRichnessError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='pyrichness',
        description='Allelic richness vs habitat: LMM with a random '
                    'intercept per locus, LR test, R² and post-hoc '
                    'comparisons',
    )
    parser.add_argument('path', type=Path, help='Delimited data file')
    parser.add_argument('--response', default='allelic_richness')
    parser.add_argument('--fixed', default='habitat')
    parser.add_argument('--group', default='locus')
    parser.add_argument('--locality', default='locality')
    parser.add_argument(
        '--sep', default='\t',
        help='Field separator (default: tab)',
    )
    parser.add_argument(
        '--reference', default=None,
        help='Baseline level of the fixed factor (default: first sorted)',
    )
    parser.add_argument(
        '--posthoc', default='single-step', choices=POSTHOC_METHODS,
        help='Multiplicity adjustment for pairwise comparisons',
    )
    parser.add_argument('--conf-level', type=float, default=0.95)
    parser.add_argument('--seed', type=int, default=20240101)
    parser.add_argument(
        '--strict-singular', action='store_true',
        help='Stop with an error on a boundary (singular) fit',
    )
    parser.add_argument(
        '--json', type=Path, default=None, metavar='OUT',
        help='Also write the report as JSON to OUT',
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = AnalysisConfig(
            response=args.response,
            fixed=args.fixed,
            group=args.group,
            locality=args.locality,
            sep=args.sep,
            reference=args.reference,
            fit_control=FitControl(
                on_singular='raise' if args.strict_singular else 'warn'
            ),
            posthoc_method=args.posthoc,
            conf_level=args.conf_level,
            seed=args.seed,
        )
        report = run_analysis(args.path, config=config)
    except (PyRichnessError, FileNotFoundError) as e:
        print(f"error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    print(report.summary())

    if args.json is not None:
        with open(args.json, 'w') as f:
            json.dump(report.to_dict(), f, indent=2)

    return 0


if __name__ == '__main__':
    sys.exit(main())
