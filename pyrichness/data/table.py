"""
In-memory observation table.

ObservationTable is the validated, immutable form of the input data: one
row per (locality, locus) measurement with a numeric response, a
categorical fixed factor (habitat) and a categorical grouping factor
(locus). Factor levels are whatever values were observed; the first level
of the fixed factor is the baseline of the treatment coding used by the
model fitter.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pyrichness.core.exceptions import (
    DuplicateObservationError,
    InconsistentHabitatError,
    MissingColumnError,
    ParseError,
    ValidationError,
)


@dataclass(frozen=True)
class ObservationTable:
    """Validated observation table.

    Attributes:
        response: Allelic richness values (n,), float64, non-negative.
        fixed: Fixed factor labels (n,), e.g. habitat.
        group: Grouping factor labels (n,), e.g. locus.
        locality: Locality labels (n,).
        fixed_levels: Levels of the fixed factor; the first is the baseline.
        group_levels: Levels of the grouping factor, sorted.
        response_name: Column name of the response.
        fixed_name: Column name of the fixed factor.
        group_name: Column name of the grouping factor.
        locality_name: Column name of the locality identifier.
        source_path: File the table was read from, if any.
    """
    response: NDArray
    fixed: NDArray
    group: NDArray
    locality: NDArray
    fixed_levels: tuple[str, ...]
    group_levels: tuple[str, ...]
    response_name: str = 'allelic_richness'
    fixed_name: str = 'habitat'
    group_name: str = 'locus'
    locality_name: str = 'locality'
    source_path: str | None = None

    @property
    def n_obs(self) -> int:
        return len(self.response)

    @property
    def n_localities(self) -> int:
        return len(np.unique(self.locality))

    def with_reference(self, level: str) -> 'ObservationTable':
        """Return a copy whose fixed factor uses ``level`` as baseline."""
        if level not in self.fixed_levels:
            raise ValidationError(
                f"Reference level {level!r} not found in "
                f"{self.fixed_name} levels: {list(self.fixed_levels)}"
            )
        ordered = (level,) + tuple(
            lev for lev in self.fixed_levels if lev != level
        )
        return replace(self, fixed_levels=ordered)

    def to_frame(self) -> pd.DataFrame:
        """Return the table as a pandas DataFrame with the original names."""
        return pd.DataFrame({
            self.locality_name: self.locality,
            self.fixed_name: pd.Categorical(
                self.fixed, categories=list(self.fixed_levels)
            ),
            self.group_name: pd.Categorical(
                self.group, categories=list(self.group_levels)
            ),
            self.response_name: self.response,
        })

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        *,
        response: str = 'allelic_richness',
        fixed: str = 'habitat',
        group: str = 'locus',
        locality: str = 'locality',
        fixed_levels: Sequence[str] | None = None,
        reference: str | None = None,
        source_path: str | None = None,
    ) -> 'ObservationTable':
        """Validate a DataFrame and build an ObservationTable.

        Column order is irrelevant and extra columns are ignored.

        Args:
            df: Input frame, one row per observation.
            response: Name of the numeric response column.
            fixed: Name of the categorical fixed factor column.
            group: Name of the categorical grouping factor column.
            locality: Name of the locality identifier column.
            fixed_levels: Optional explicit level order for the fixed
                factor. Must list exactly the observed levels.
            reference: Optional baseline level of the fixed factor.
            source_path: Recorded in the table for provenance.

        Returns:
            Validated ObservationTable.

        Raises:
            MissingColumnError: A required column is absent.
            ParseError: A response cell is not a finite non-negative
                number, or a factor cell is empty.
            DuplicateObservationError: A (locality, group) pair repeats.
            InconsistentHabitatError: A locality has several fixed levels.
        """
        available = tuple(str(c) for c in df.columns)
        required = (locality, fixed, group, response)
        missing = tuple(c for c in required if c not in available)
        if missing:
            raise MissingColumnError(
                f"Required column(s) {list(missing)} not found. "
                f"Available: {list(available)}",
                missing=missing,
                available=available,
            )

        if len(df) == 0:
            raise ValidationError("Observation table has no data rows")

        y = _parse_response(df[response], response)

        labels = {}
        for col in (locality, fixed, group):
            labels[col] = _parse_labels(df[col], col)

        frame = pd.DataFrame({
            'locality': labels[locality],
            'fixed': labels[fixed],
            'group': labels[group],
        })
        _check_unique_pairs(frame, locality, group)
        _check_constant_fixed(frame, locality, fixed)

        observed = sorted(set(labels[fixed]))
        if fixed_levels is not None:
            fixed_levels = tuple(str(lev) for lev in fixed_levels)
            if sorted(fixed_levels) != observed:
                raise ValidationError(
                    f"fixed_levels {list(fixed_levels)} must list exactly "
                    f"the observed {fixed} levels {observed}"
                )
            levels = fixed_levels
        else:
            levels = tuple(observed)

        table = cls(
            response=y,
            fixed=labels[fixed],
            group=labels[group],
            locality=labels[locality],
            fixed_levels=levels,
            group_levels=tuple(sorted(set(labels[group]))),
            response_name=response,
            fixed_name=fixed,
            group_name=group,
            locality_name=locality,
            source_path=source_path,
        )
        if reference is not None:
            table = table.with_reference(reference)
        return table


# =====================================================================
# Helpers
# =====================================================================

def _parse_response(series: pd.Series, name: str) -> NDArray:
    """Parse the response column as finite, non-negative float64."""
    if pd.api.types.is_numeric_dtype(series):
        raw = series.astype(str).to_numpy()
        values = series.to_numpy(dtype=np.float64)
    else:
        raw = series.astype(str).str.strip().to_numpy()
        values = pd.to_numeric(
            pd.Series(raw), errors='coerce'
        ).to_numpy(dtype=np.float64)

    bad = np.flatnonzero(~np.isfinite(values))
    if bad.size:
        i = int(bad[0])
        raise ParseError(
            f"Column {name!r}, row {i + 1}: cannot parse {raw[i]!r} "
            f"as a finite number",
            column=name,
            row=i + 1,
            value=str(raw[i]),
        )

    negative = np.flatnonzero(values < 0)
    if negative.size:
        i = int(negative[0])
        raise ParseError(
            f"Column {name!r}, row {i + 1}: allelic richness must be "
            f"non-negative, got {values[i]}",
            column=name,
            row=i + 1,
            value=str(raw[i]),
        )
    return values


def _parse_labels(series: pd.Series, name: str) -> NDArray:
    """Parse a categorical column into stripped string labels.

    Missing cells (NaN or None in an in-memory frame) and blank strings
    are empty. A label spelled 'nan' is an ordinary label.
    """
    missing = series.isna().to_numpy()
    labels = series.astype(str).str.strip().to_numpy(dtype=str)
    empty = np.flatnonzero(missing | (labels == ''))
    if empty.size:
        i = int(empty[0])
        raise ParseError(
            f"Column {name!r}, row {i + 1}: empty label",
            column=name,
            row=i + 1,
            value='',
        )
    return labels


def _check_unique_pairs(frame: pd.DataFrame, locality: str, group: str) -> None:
    dup = frame.duplicated(subset=['locality', 'group'], keep='first')
    if dup.any():
        row = frame[dup].iloc[0]
        raise DuplicateObservationError(
            f"{locality} {row['locality']!r} has more than one observation "
            f"for {group} {row['group']!r}",
            locality=row['locality'],
            locus=row['group'],
        )


def _check_constant_fixed(frame: pd.DataFrame, locality: str, fixed: str) -> None:
    n_levels = frame.groupby('locality', sort=True)['fixed'].nunique()
    offenders = n_levels[n_levels > 1]
    if len(offenders):
        name = offenders.index[0]
        seen = tuple(sorted(frame.loc[frame['locality'] == name, 'fixed'].unique()))
        raise InconsistentHabitatError(
            f"{locality} {name!r} is recorded under several {fixed} "
            f"levels: {list(seen)}",
            locality=name,
            habitats=seen,
        )
