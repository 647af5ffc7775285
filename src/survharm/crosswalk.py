"""
Crosswalk tables: rename and recode many waves from one table.

A crosswalk table is the long-form alternative to writing a harmonization
function per variable. One row per (wave, variable, value label):

    id, var_name_orig, var_name_target, val_label_orig, val_label_target, val_numeric_target
    R6, q52a, trust_president, Not at all, not_at_all, 0
    R6, q52a, trust_president, Just a little, little, 1
    R6, country, country, , ,

Rows with an empty val_label_orig only rename the variable.

CSV Format:
    Required: id, var_name_orig, var_name_target
    Optional: var_label_target, val_label_orig, val_label_target, val_numeric_target
"""

import csv
import logging
import re
from dataclasses import asdict, dataclass
from io import StringIO
from typing import Iterable, List, Mapping, Optional

import pandas as pd

from survharm.harmonize import (
    DEFAULT_NA_VALUES,
    HarmonizationError,
    HarmonizationRules,
    harmonize_values,
    harmonize_waves,
)
from survharm.labels import val_label_normalize, var_label_normalize
from survharm.merge import merge_waves
from survharm.model import SurveyWave


logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["id", "var_name_orig", "var_name_target"]
CROSSWALK_COLUMNS = REQUIRED_COLUMNS + [
    "var_label_target",
    "val_label_orig",
    "val_label_target",
    "val_numeric_target",
]


class CrosswalkParseError(Exception):
    """Raised when a crosswalk table is malformed."""
    pass


@dataclass
class CrosswalkRow:
    """Parsed crosswalk row."""
    id: str
    var_name_orig: str
    var_name_target: str
    var_label_target: Optional[str] = None
    val_label_orig: Optional[str] = None
    val_label_target: Optional[str] = None
    val_numeric_target: Optional[float] = None


def _parse_rows(csv_content: str) -> List[CrosswalkRow]:
    reader = csv.DictReader(StringIO(csv_content))

    if reader.fieldnames is None:
        raise CrosswalkParseError("Crosswalk CSV is empty")

    fieldnames = [f.strip() for f in reader.fieldnames]
    missing = [col for col in REQUIRED_COLUMNS if col not in fieldnames]
    if missing:
        raise CrosswalkParseError(f"Missing required columns: {missing}")

    rows = []
    seen = set()
    for row_num, raw in enumerate(reader, start=2):  # header is line 1
        row = {(k or "").strip(): (v or "").strip() for k, v in raw.items()}
        numeric = row.get("val_numeric_target", "")
        try:
            parsed = CrosswalkRow(
                id=row["id"],
                var_name_orig=row["var_name_orig"],
                var_name_target=row["var_name_target"],
                var_label_target=row.get("var_label_target") or None,
                val_label_orig=row.get("val_label_orig") or None,
                val_label_target=row.get("val_label_target") or None,
                val_numeric_target=float(numeric) if numeric else None,
            )
        except ValueError as e:
            raise CrosswalkParseError(f"Error parsing row {row_num}: {e}")

        if not parsed.id or not parsed.var_name_orig or not parsed.var_name_target:
            raise CrosswalkParseError(f"Row {row_num}: id, var_name_orig and var_name_target are required")

        key = (parsed.id, parsed.var_name_orig, parsed.val_label_orig)
        if key in seen:
            raise CrosswalkParseError(f"Row {row_num}: duplicate crosswalk entry {key}")
        seen.add(key)
        rows.append(parsed)

    return rows


def parse_crosswalk_string(csv_content: str) -> pd.DataFrame:
    """
    Parse crosswalk CSV content.

    Returns:
        DataFrame with CROSSWALK_COLUMNS

    Raises:
        CrosswalkParseError: On missing columns, bad numbers or duplicates
    """
    rows = _parse_rows(csv_content)
    return pd.DataFrame([asdict(r) for r in rows], columns=CROSSWALK_COLUMNS)


def read_crosswalk_csv(filepath: str) -> pd.DataFrame:
    """
    Parse a crosswalk CSV file.

    Raises:
        FileNotFoundError: If file doesn't exist
        CrosswalkParseError: If parsing fails
    """
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            content = f.read()
    except FileNotFoundError:
        raise FileNotFoundError(f"Crosswalk file not found: {filepath}")
    return parse_crosswalk_string(content)


def crosswalk_table_create(metadata: pd.DataFrame) -> pd.DataFrame:
    """
    Build a crosswalk template from a metadata table.

    Targets are pre-filled with normalized names and labels and the
    original codes, ready to be edited.
    """
    rows = []
    for _, meta in metadata.iterrows():
        base = {
            "id": meta["id"],
            "var_name_orig": meta["var_name_orig"],
            "var_name_target": meta["var_name_orig"],
            "var_label_target": var_label_normalize(meta["label_orig"]),
        }
        labels = meta["labels"] if isinstance(meta["labels"], dict) else {}
        if not labels:
            rows.append({**base, "val_label_orig": None, "val_label_target": None, "val_numeric_target": None})
            continue
        for code, label in labels.items():
            rows.append({
                **base,
                "val_label_orig": label,
                "val_label_target": val_label_normalize(label),
                "val_numeric_target": code,
            })
    return pd.DataFrame(rows, columns=CROSSWALK_COLUMNS)


def _validate_table(table: pd.DataFrame) -> pd.DataFrame:
    missing = [col for col in REQUIRED_COLUMNS if col not in table.columns]
    if missing:
        raise CrosswalkParseError(f"Missing required columns: {missing}")
    return table.reindex(columns=CROSSWALK_COLUMNS)


def _rules_for(rows: pd.DataFrame, na_values: Mapping[str, float]) -> Optional[HarmonizationRules]:
    rows = rows[rows["val_label_orig"].notna()]
    if rows.empty:
        return None
    patterns, targets, codes = [], [], []
    for _, row in rows.iterrows():
        target = row["val_label_target"]
        if not isinstance(target, str) or not target:
            target = val_label_normalize(row["val_label_orig"])
        code = row["val_numeric_target"]
        if pd.isna(code):
            if target not in na_values:
                raise HarmonizationError(
                    f"{row['id']}/{row['var_name_orig']}: no numeric target for '{row['val_label_orig']}'"
                )
            code = na_values[target]
        patterns.append("^" + re.escape(str(row["val_label_orig"]).strip().lower()) + "$")
        targets.append(target)
        codes.append(code)
    return HarmonizationRules(from_patterns=patterns, to=targets, numeric_values=codes)


def crosswalk(
    waves: Iterable[SurveyWave],
    table: pd.DataFrame,
    na_values: Optional[Mapping[str, float]] = None,
) -> SurveyWave:
    """
    Rename, relabel and recode waves according to a crosswalk table,
    then row-bind them.

    Args:
        waves: Wave collection
        table: Crosswalk table (see module docstring)
        na_values: Missing categories, label -> code

    Returns:
        Harmonized SurveyWave (see harmonize_waves)
    """
    table = _validate_table(table)
    na_values = dict(DEFAULT_NA_VALUES if na_values is None else na_values)

    var_harmonization = (
        table[["id", "var_name_orig", "var_name_target", "var_label_target"]]
        .drop_duplicates(subset=["id", "var_name_orig"])
        .rename(columns={"var_name_target": "var_name", "var_label_target": "var_label"})
    )
    merged = merge_waves(waves, var_harmonization)

    def _recode(wave: SurveyWave) -> SurveyWave:
        wave_rows = table[table["id"] == wave.id]
        for target, rows in wave_rows.groupby("var_name_target", sort=False):
            rules = _rules_for(rows, na_values)
            if rules is None or target not in wave.data.columns:
                continue
            wave.set_column(target, harmonize_values(wave.column(target), rules, na_values=na_values))
        return wave

    logger.info("Applying crosswalk with %d rows to %d waves", len(table), len(merged))
    return harmonize_waves(merged, _recode)


__all__ = [
    "crosswalk",
    "crosswalk_table_create",
    "parse_crosswalk_string",
    "read_crosswalk_csv",
    "CrosswalkParseError",
]
