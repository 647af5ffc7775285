"""
Survey Wave Import (Layer 1: Files → SurveyWave).

Reads statistical data files into SurveyWave objects.

Supported formats:
    .sav / .zsav  SPSS, via pyreadstat (labels and user-missing codes kept)
    .csv          plain text, unlabelled
    .rds          R data, via pyreadr (unlabelled)

User-missing codes are read as values, never converted to NaN on import.
Whether a code is missing is decided later from LabelledVariable metadata.
"""

import logging
import os
import warnings
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd
import pyreadr
import pyreadstat

from survharm.model import LabelledVariable, SurveyWave


logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]
Reader = Callable[..., SurveyWave]

ROWID_COLUMN = "rowid"
ROWID_LABEL = "Unique identifier"


class SurveyReadError(Exception):
    """Raised when a survey file cannot be read."""
    pass


def add_rowid(wave: SurveyWave) -> SurveyWave:
    """
    Prepend a ``rowid`` column of the form ``<wave id>_<row number>``.

    Row numbers start at 1. An existing ``rowid`` column is left alone.
    """
    if ROWID_COLUMN in wave.data.columns:
        return wave
    rowids = [f"{wave.id}_{i}" for i in range(1, wave.nrow + 1)]
    wave.data.insert(0, ROWID_COLUMN, rowids)
    wave.variables[ROWID_COLUMN] = LabelledVariable(name=ROWID_COLUMN, label=ROWID_LABEL)
    return wave


def _missing_from_ranges(ranges: List[Dict]) -> tuple:
    """Split pyreadstat missing ranges into discrete codes and one inclusive range."""
    na_values = []
    na_range = None
    for rng in ranges or []:
        lo, hi = rng.get("lo"), rng.get("hi")
        if lo is None or hi is None:
            continue
        if lo == hi:
            na_values.append(float(lo))
        else:
            na_range = (float(lo), float(hi))
    return na_values, na_range


def read_spss(path: PathLike, id: Optional[str] = None, doi: Optional[str] = None) -> SurveyWave:
    """
    Read an SPSS file into a SurveyWave.

    Args:
        path: Path to a .sav or .zsav file
        id: Wave identifier (defaults to the file stem)
        doi: Optional persistent identifier of the dataset

    Returns:
        SurveyWave with variable labels, value labels and missing codes

    Raises:
        FileNotFoundError: If the file doesn't exist
        SurveyReadError: If pyreadstat cannot parse the file
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Survey file not found: {path}")

    try:
        df, meta = pyreadstat.read_sav(str(path), user_missing=True)
    except (pyreadstat.ReadstatError, pyreadstat.PyreadstatError) as e:
        raise SurveyReadError(f"Failed to read SPSS file '{path}': {e}") from e

    variables: Dict[str, LabelledVariable] = {}
    column_labels = meta.column_names_to_labels or {}
    value_labels = meta.variable_value_labels or {}
    missing_ranges = getattr(meta, "missing_ranges", None) or {}

    for name in df.columns:
        na_values, na_range = _missing_from_ranges(missing_ranges.get(name, []))
        variables[name] = LabelledVariable(
            name=name,
            label=column_labels.get(name) or None,
            labels=dict(value_labels.get(name, {})),
            na_values=na_values,
            na_range=na_range,
        )

    wave = SurveyWave(
        id=id or path.stem,
        data=df,
        filename=path.name,
        doi=doi,
        variables=variables,
    )
    logger.debug("Read %s: %d rows, %d columns", path.name, wave.nrow, wave.ncol)
    return wave


def read_csv(path: PathLike, id: Optional[str] = None, doi: Optional[str] = None) -> SurveyWave:
    """Read an unlabelled CSV wave."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Survey file not found: {path}")
    try:
        df = pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise SurveyReadError(f"Failed to read CSV file '{path}': {e}") from e
    return SurveyWave(id=id or path.stem, data=df, filename=path.name, doi=doi)


def read_rds(path: PathLike, id: Optional[str] = None, doi: Optional[str] = None) -> SurveyWave:
    """Read a single data frame stored in an R .rds file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Survey file not found: {path}")
    try:
        result = pyreadr.read_r(str(path))
    except (pyreadr.custom_errors.PyreadrError, pyreadr.custom_errors.LibrdataError) as e:
        raise SurveyReadError(f"Failed to read R file '{path}': {e}") from e
    if not result:
        raise SurveyReadError(f"R file '{path}' contains no data frame")
    df = next(iter(result.values()))
    return SurveyWave(id=id or path.stem, data=df, filename=path.name, doi=doi)


READERS: Dict[str, Reader] = {
    ".sav": read_spss,
    ".zsav": read_spss,
    ".csv": read_csv,
    ".rds": read_rds,
}


def _reader_for(path: Path) -> Reader:
    suffix = path.suffix.lower()
    if suffix not in READERS:
        raise SurveyReadError(
            f"Unsupported file type '{suffix}' for {path.name}; "
            f"expected one of {sorted(READERS)}"
        )
    return READERS[suffix]


def read_surveys(
    paths: Union[PathLike, Iterable[PathLike]],
    ids: Optional[Sequence[str]] = None,
    reader: Optional[Reader] = None,
    strict: bool = False,
) -> List[SurveyWave]:
    """
    Read several survey waves.

    Each wave gets a ``rowid`` column unless it already has one.

    Args:
        paths: One path or an iterable of paths
        ids: Optional wave identifiers, one per path
        reader: Reader to use for every file instead of dispatching on suffix
        strict: Raise on the first unreadable file instead of skipping it

    Returns:
        List of SurveyWave objects, in input order, unreadable files left out

    Raises:
        ValueError: If ids and paths differ in length
        SurveyReadError / FileNotFoundError: Only when strict=True
    """
    if isinstance(paths, (str, os.PathLike)):
        paths = [paths]
    paths = [Path(p) for p in paths]

    if ids is not None and len(ids) != len(paths):
        raise ValueError(f"Got {len(ids)} ids for {len(paths)} files")

    waves: List[SurveyWave] = []
    for i, path in enumerate(paths):
        wave_id = ids[i] if ids is not None else None
        try:
            read = reader or _reader_for(path)
            wave = read(path, id=wave_id)
        except (SurveyReadError, FileNotFoundError) as e:
            if strict:
                raise
            warnings.warn(f"Skipping {path}: {e}", UserWarning)
            continue
        waves.append(add_rowid(wave))
        logger.info("Imported wave %s from %s (%d x %d)", wave.id, path.name, wave.nrow, wave.ncol)

    return waves


__all__ = [
    "read_surveys",
    "read_spss",
    "read_csv",
    "read_rds",
    "add_rowid",
    "SurveyReadError",
]
