"""
Core Survey Wave Objects

Defines the data structures every other layer of survharm works on.

These are thin containers around pandas objects:
    - LabelledVariable (metadata of one column: labels, missing codes)
    - LabelledVector (one column of codes together with its metadata)
    - SurveyWave (one round of a repeated survey, one file)

ARCHITECTURAL RULE:
    Codes are stored as plain values in the DataFrame.
    Labels and missing-value codes live beside the data, never inside it.
    Conversions (numeric, character, factor) are explicit and never in place.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd


def code_key(value: Any) -> Any:
    """Normalize a code so that 1, 1.0 and numpy.float64(1) compare equal."""
    if isinstance(value, (bool, np.bool_)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return value


def format_code(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def is_nan(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (float, np.floating)):
        return math.isnan(value)
    return value is pd.NaT or value is pd.NA


def _sort_key(code: Any) -> Tuple[int, Any]:
    key = code_key(code)
    if isinstance(key, float):
        return (0, key)
    return (1, str(key))


@dataclass
class LabelledVariable:
    """
    Metadata of a single survey variable.

    This mirrors what a statistical file (SPSS .sav) stores next to a column:
        - a variable label (the question text)
        - value labels (code -> category text)
        - user-missing codes, either discrete or as an inclusive range

    Properties:
        name: Column name (e.g., "q52a")
        label: Variable label (e.g., "Q52a. Trust president")
        labels: Value labels, keyed by code
        na_values: Discrete user-missing codes (e.g., [9, 98])
        na_range: Inclusive (lo, hi) user-missing range, optional

    Example:
        LabelledVariable(
            name="q52a",
            label="Q52a. Trust president",
            labels={0: "Not at all", 3: "A lot", 9: "Don't know"},
            na_values=[9],
        )
    """

    name: str
    label: Optional[str] = None
    labels: Dict[Any, str] = field(default_factory=dict)
    na_values: List[float] = field(default_factory=list)
    na_range: Optional[Tuple[float, float]] = None

    def is_missing_code(self, value: Any) -> bool:
        """
        True if value is a declared user-missing code.

        System missing (NaN) is not a user-missing code.
        """
        key = code_key(value)
        if not isinstance(key, float) or math.isnan(key):
            return False
        if key in {float(v) for v in self.na_values}:
            return True
        if self.na_range is not None:
            lo, hi = self.na_range
            return float(lo) <= key <= float(hi)
        return False

    @property
    def valid_labels(self) -> Dict[Any, str]:
        return {code: lab for code, lab in self.labels.items() if not self.is_missing_code(code)}

    @property
    def na_labels(self) -> Dict[Any, str]:
        return {code: lab for code, lab in self.labels.items() if self.is_missing_code(code)}

    @property
    def is_labelled(self) -> bool:
        return bool(self.labels) or bool(self.na_values) or self.na_range is not None

    def label_for(self, value: Any) -> Optional[str]:
        """Return the value label of a code, or None if the code is unlabelled."""
        key = code_key(value)
        for code, lab in self.labels.items():
            if code_key(code) == key:
                return lab
        return None

    def sorted_labels(self) -> List[Tuple[Any, str]]:
        return sorted(self.labels.items(), key=lambda item: _sort_key(item[0]))

    def copy(self, name: Optional[str] = None) -> LabelledVariable:
        return LabelledVariable(
            name=name if name is not None else self.name,
            label=self.label,
            labels=dict(self.labels),
            na_values=list(self.na_values),
            na_range=tuple(self.na_range) if self.na_range is not None else None,
        )


@dataclass
class LabelledVector:
    """
    One column of a wave, with its labels attached.

    Properties:
        values: pandas Series of codes
        meta: LabelledVariable describing the codes
        id: Identifier of the wave the column came from
        name_orig: Column name in the original file
    """

    values: pd.Series
    meta: LabelledVariable
    id: Optional[str] = None
    name_orig: Optional[str] = None

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, key: Union[int, slice]) -> Any:
        if isinstance(key, slice):
            return LabelledVector(
                values=self.values.iloc[key],
                meta=self.meta,
                id=self.id,
                name_orig=self.name_orig,
            )
        return self.values.iloc[key]

    def as_numeric(self) -> pd.Series:
        """Codes as floats; user-missing codes become NaN."""
        numeric = pd.to_numeric(self.values, errors="coerce").astype(float)
        missing = numeric.map(self.meta.is_missing_code).astype(bool)
        return numeric.mask(missing)

    def as_character(self) -> pd.Series:
        """Codes replaced by their labels; unlabelled codes kept as text."""
        lookup = {code_key(code): lab for code, lab in self.meta.labels.items()}

        def _to_text(value: Any) -> Any:
            if is_nan(value):
                return np.nan
            key = code_key(value)
            if key in lookup:
                return lookup[key]
            return format_code(key)

        return self.values.map(_to_text).astype(object)

    def as_factor(self) -> pd.Series:
        """Labels as an ordered categorical, categories in code order."""
        text = self.as_character()
        categories = list(dict.fromkeys(lab for _, lab in self.meta.sorted_labels()))
        extra = [v for v in pd.unique(text.dropna()) if v not in categories]
        return pd.Series(
            pd.Categorical(text, categories=categories + extra, ordered=True),
            index=self.values.index,
            name=self.values.name,
        )


@dataclass
class SurveyWave:
    """
    Represents one wave of a repeated survey.

    This is the unit every import, merge and harmonization step
    passes around. A list of waves is the "survey collection".

    Properties:
        id:
            Wave identifier (e.g., "Afrobarometer_R6").
            Defaults to the file stem on import.

        data:
            pandas DataFrame of codes, one column per variable

        filename:
            Base name of the file the wave was read from (optional)

        doi:
            Persistent identifier of the source dataset (optional)

        variables:
            LabelledVariable per column. Columns without an entry are
            treated as unlabelled.

    INVARIANTS:
        - Every key in variables is a column of data
        - Column order in data is the authoritative variable order
    """

    id: str
    data: pd.DataFrame = field(default_factory=pd.DataFrame)
    filename: Optional[str] = None
    doi: Optional[str] = None
    variables: Dict[str, LabelledVariable] = field(default_factory=dict)

    @property
    def nrow(self) -> int:
        return len(self.data)

    @property
    def ncol(self) -> int:
        return len(self.data.columns)

    @property
    def columns(self) -> List[str]:
        return [str(c) for c in self.data.columns]

    @property
    def object_size(self) -> int:
        """Deep in-memory size of the data in bytes."""
        return int(self.data.memory_usage(deep=True, index=True).sum())

    def get_variable(self, name: str) -> Optional[LabelledVariable]:
        """
        Retrieve the metadata of a column.

        Args:
            name: Column name

        Returns:
            LabelledVariable (a bare one for unlabelled columns)
            or None if the column does not exist
        """
        if name in self.variables:
            return self.variables[name]
        if name in self.data.columns:
            return LabelledVariable(name=name)
        return None

    def column(self, name: str) -> LabelledVector:
        meta = self.get_variable(name)
        if meta is None:
            raise KeyError(f"Column '{name}' not found in wave {self.id}")
        return LabelledVector(values=self.data[name], meta=meta, id=self.id, name_orig=name)

    def set_column(self, name: str, values: Union[LabelledVector, pd.Series]) -> None:
        """
        Replace or add a column.

        A LabelledVector carries its labels into the wave; a plain Series
        drops any labels the column had before.
        """
        series = values.values if isinstance(values, LabelledVector) else values
        if len(series) != self.nrow and self.ncol > 0:
            raise ValueError(
                f"Column '{name}' has {len(series)} values, wave {self.id} has {self.nrow} rows"
            )
        self.data[name] = pd.Series(series).to_numpy()
        if isinstance(values, LabelledVector):
            self.variables[name] = values.meta.copy(name=name)
        else:
            self.variables.pop(name, None)

    def copy(self) -> SurveyWave:
        return SurveyWave(
            id=self.id,
            data=self.data.copy(deep=True),
            filename=self.filename,
            doi=self.doi,
            variables={name: var.copy() for name, var in self.variables.items()},
        )
