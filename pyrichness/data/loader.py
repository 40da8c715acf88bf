"""
Delimited-text loader for allelic-richness tables.

The expected file is tab-separated with a header row naming (at least)
the locality, habitat, locus and allelic-richness columns:

    locality    habitat    locus    allelic_richness
    L01         Natural    Loc1     4.21
    ...
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pandas as pd

from pyrichness.core.exceptions import ParseError
from pyrichness.data.table import ObservationTable


def load_observations(
    path: str | Path,
    *,
    response: str = 'allelic_richness',
    fixed: str = 'habitat',
    group: str = 'locus',
    locality: str = 'locality',
    sep: str = '\t',
    fixed_levels: Sequence[str] | None = None,
    reference: str | None = None,
) -> ObservationTable:
    """Read a delimited text file into an ObservationTable.

    All cells are read as text first so that parse failures in the
    response column are reported with their row and raw value, and factor
    labels such as '01' keep their exact spelling.

    Args:
        path: File to read.
        response: Name of the allelic-richness column.
        fixed: Name of the habitat column.
        group: Name of the locus column.
        locality: Name of the locality column.
        sep: Field separator. Default tab.
        fixed_levels: Optional explicit level order for the habitat factor.
        reference: Optional baseline habitat level.

    Returns:
        Validated ObservationTable.

    Raises:
        FileNotFoundError: If path does not exist.
        MissingColumnError: A required column is absent from the header.
        ParseError: The file is empty or malformed, or a response cell
            cannot be parsed as a number.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"No such data file: {path}")

    try:
        df = pd.read_csv(path, sep=sep, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as e:
        raise ParseError(f"{path}: file is empty, header row required") from e
    except pd.errors.ParserError as e:
        raise ParseError(f"{path}: malformed delimited text: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]

    return ObservationTable.from_frame(
        df,
        response=response,
        fixed=fixed,
        group=group,
        locality=locality,
        fixed_levels=fixed_levels,
        reference=reference,
        source_path=str(path),
    )
