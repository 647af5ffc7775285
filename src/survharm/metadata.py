"""
Wave metadata and documentation tables.

metadata_create() inventories the variables of one wave: names, labels,
value labels split into valid and missing categories. The row-bound
metadata of all waves is the working table for choosing which variables
to merge and how to name them.

document_waves() gives one summary row per wave.

This is read-only: nothing here modifies a wave.
"""

from typing import Iterable, List

import pandas as pd
from pandas.api import types as ptypes

from survharm.model import LabelledVariable, SurveyWave


METADATA_COLUMNS = [
    "filename",
    "id",
    "var_name_orig",
    "class_orig",
    "label_orig",
    "labels",
    "valid_labels",
    "na_labels",
    "na_range",
    "n_labels",
    "n_valid_labels",
    "n_na_labels",
]

DOCUMENTATION_COLUMNS = ["id", "filename", "ncol", "nrow", "object_size"]


def _class_of(series: pd.Series, var: LabelledVariable) -> str:
    if var.is_labelled:
        return "labelled"
    if ptypes.is_bool_dtype(series):
        return "logical"
    if ptypes.is_numeric_dtype(series):
        return "numeric"
    if ptypes.is_datetime64_any_dtype(series):
        return "datetime"
    if isinstance(series.dtype, pd.CategoricalDtype):
        return "factor"
    return "character"


def metadata_create(wave: SurveyWave) -> pd.DataFrame:
    """
    Create the variable-level metadata table of a wave.

    Args:
        wave: SurveyWave to describe

    Returns:
        DataFrame with METADATA_COLUMNS, one row per column of the wave
    """
    rows = []
    for name in wave.data.columns:
        var = wave.get_variable(name)
        labels = dict(var.sorted_labels())
        valid = [lab for code, lab in labels.items() if not var.is_missing_code(code)]
        missing = [lab for code, lab in labels.items() if var.is_missing_code(code)]
        rows.append({
            "filename": wave.filename,
            "id": wave.id,
            "var_name_orig": name,
            "class_orig": _class_of(wave.data[name], var),
            "label_orig": var.label,
            "labels": labels,
            "valid_labels": valid,
            "na_labels": missing,
            "na_range": var.na_range,
            "n_labels": len(labels),
            "n_valid_labels": len(valid),
            "n_na_labels": len(missing),
        })
    return pd.DataFrame(rows, columns=METADATA_COLUMNS)


def metadata_waves_create(waves: Iterable[SurveyWave]) -> pd.DataFrame:
    """Row-bind the metadata of several waves."""
    frames = [metadata_create(wave) for wave in waves]
    if not frames:
        return pd.DataFrame(columns=METADATA_COLUMNS)
    return pd.concat(frames, ignore_index=True)


def _collect(metadata: pd.DataFrame, column: str) -> List[str]:
    found = set()
    for labels in metadata[column]:
        if isinstance(labels, (list, tuple)):
            found.update(str(lab) for lab in labels)
    return sorted(found)


def collect_val_labels(metadata: pd.DataFrame) -> List[str]:
    """Sorted unique valid value labels across a metadata table."""
    return _collect(metadata, "valid_labels")


def collect_na_labels(metadata: pd.DataFrame) -> List[str]:
    """Sorted unique missing-value labels across a metadata table."""
    return _collect(metadata, "na_labels")


def document_waves(waves: Iterable[SurveyWave]) -> pd.DataFrame:
    """One row per wave: id, filename, ncol, nrow, object_size."""
    rows = [
        {
            "id": wave.id,
            "filename": wave.filename,
            "ncol": wave.ncol,
            "nrow": wave.nrow,
            "object_size": wave.object_size,
        }
        for wave in waves
    ]
    return pd.DataFrame(rows, columns=DOCUMENTATION_COLUMNS)


__all__ = [
    "metadata_create",
    "metadata_waves_create",
    "collect_val_labels",
    "collect_na_labels",
    "document_waves",
    "METADATA_COLUMNS",
]
