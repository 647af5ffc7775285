"""
File exporters for survey waves.

Supports multiple formats:
    - SAV: SPSS, with variable labels, value labels and missing codes
    - CSV: codes only
    - RDS: R data frame, codes only
"""

import logging
import os
import warnings
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd
import pyreadr
import pyreadstat

from survharm.merge import merge_waves
from survharm.model import LabelledVariable, SurveyWave


logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

# SPSS stores at most three discrete missing codes, or one range plus one code
_MAX_DISCRETE_MISSING = 3


class ExportFormat(Enum):
    """Output formats for save_waves / export_wave."""
    SAV = "sav"
    CSV = "csv"
    RDS = "rds"

    @classmethod
    def from_path(cls, path: PathLike) -> "ExportFormat":
        suffix = Path(path).suffix.lower().lstrip(".")
        try:
            return cls(suffix)
        except ValueError:
            raise ValueError(f"Cannot infer export format from '{path}'") from None


def _missing_ranges(var: LabelledVariable) -> Optional[List]:
    values = sorted(float(v) for v in var.na_values)
    if not values and var.na_range is None:
        return None
    if var.na_range is None and len(values) <= _MAX_DISCRETE_MISSING:
        return values
    if var.na_range is not None and len(values) <= 1:
        lo, hi = var.na_range
        return [{"lo": float(lo), "hi": float(hi)}] + values

    lows = values + ([float(var.na_range[0])] if var.na_range else [])
    highs = values + ([float(var.na_range[1])] if var.na_range else [])
    warnings.warn(
        f"{var.name}: too many missing codes for SPSS, written as range {min(lows)}-{max(highs)}",
        UserWarning,
    )
    return [{"lo": min(lows), "hi": max(highs)}]


def _write_sav(wave: SurveyWave, path: Path) -> None:
    data = wave.data
    column_labels = []
    value_labels: Dict[str, Dict] = {}
    missing: Dict[str, List] = {}

    for name in data.columns:
        var = wave.variables.get(name)
        column_labels.append(var.label if var is not None else None)
        if var is None:
            continue
        numeric = pd.api.types.is_numeric_dtype(data[name])
        if var.labels and numeric:
            value_labels[name] = {float(k): str(v) for k, v in var.labels.items()}
        ranges = _missing_ranges(var) if numeric else None
        if ranges:
            missing[name] = ranges

    pyreadstat.write_sav(
        data,
        str(path),
        column_labels=column_labels,
        variable_value_labels=value_labels or None,
        missing_ranges=missing or None,
    )


def export_wave(wave: SurveyWave, path: PathLike, fmt: Optional[ExportFormat] = None) -> Path:
    """
    Write one wave to disk.

    Args:
        wave: Wave to write
        path: Destination file
        fmt: Output format (inferred from the suffix when None)

    Returns:
        The written path
    """
    path = Path(path)
    fmt = fmt or ExportFormat.from_path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if fmt == ExportFormat.SAV:
        _write_sav(wave, path)
    elif fmt == ExportFormat.CSV:
        wave.data.to_csv(path, index=False)
    elif fmt == ExportFormat.RDS:
        pyreadr.write_rds(str(path), wave.data)
    else:
        raise ValueError(f"Unknown export format: {fmt}")

    logger.info("Saved wave %s to %s", wave.id, path)
    return path


def save_waves(
    waves: Iterable[SurveyWave],
    directory: PathLike,
    fmt: ExportFormat = ExportFormat.RDS,
    suffix: str = "",
) -> List[Path]:
    """Save every wave as ``<directory>/<id><suffix>.<ext>``."""
    directory = Path(directory)
    return [
        export_wave(wave, directory / f"{wave.id}{suffix}.{fmt.value}", fmt)
        for wave in waves
    ]


def subset_save_surveys(
    waves: Iterable[SurveyWave],
    var_harmonization: pd.DataFrame,
    selection_name: str,
    export_path: PathLike,
    fmt: ExportFormat = ExportFormat.RDS,
) -> List[Path]:
    """
    Merge the selected variables of each wave and save the subsets.

    Files are named ``<id>_<selection_name>.<ext>``.
    """
    subsets = merge_waves(waves, var_harmonization)
    return save_waves(subsets, export_path, fmt=fmt, suffix=f"_{selection_name}")
