"""
Merge selected variables of several waves under common names.

The selection (a "var_harmonization" table) usually comes from filtering
the row-bound output of metadata_waves_create() and adding target names:

    id                var_name_orig  var_name          var_label
    Afrobarometer_R6  q52a           trust_president   trust president
    Afrobarometer_R7  q43a           trust_president   trust president

After merging, every wave has the same columns in the same order, so the
waves can be row-bound by harmonize_waves().
"""

import logging
import warnings
from typing import Iterable, List

import numpy as np
import pandas as pd

from survharm.model import LabelledVariable, SurveyWave


logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["var_name_orig", "var_name"]


class MergeError(ValueError):
    """Raised when a var_harmonization table cannot be applied."""
    pass


def _key_column(var_harmonization: pd.DataFrame) -> str:
    missing = [c for c in REQUIRED_COLUMNS if c not in var_harmonization.columns]
    if missing:
        raise MergeError(f"Missing required columns in var_harmonization: {missing}")
    for candidate in ("id", "filename"):
        if candidate in var_harmonization.columns:
            return candidate
    raise MergeError("var_harmonization needs an 'id' or a 'filename' column")


def _first_label(var_harmonization: pd.DataFrame, target: str):
    if "var_label" not in var_harmonization.columns:
        return None
    labels = var_harmonization.loc[var_harmonization["var_name"] == target, "var_label"].dropna()
    return str(labels.iloc[0]) if not labels.empty else None


def merge_waves(waves: Iterable[SurveyWave], var_harmonization: pd.DataFrame) -> List[SurveyWave]:
    """
    Subset and rename the variables of each wave.

    Args:
        waves: Wave collection
        var_harmonization: Table with id (or filename), var_name_orig,
            var_name and optionally var_label

    Returns:
        New waves, each with exactly the target columns (first-appearance
        order). Waves not mentioned in var_harmonization are left out.

    Raises:
        MergeError: On missing columns or two originals mapped to one target
    """
    key_col = _key_column(var_harmonization)
    targets = list(dict.fromkeys(var_harmonization["var_name"].astype(str)))
    has_labels = "var_label" in var_harmonization.columns

    merged: List[SurveyWave] = []
    for wave in waves:
        key = wave.id if key_col == "id" else wave.filename
        selection = var_harmonization[var_harmonization[key_col] == key]
        if selection.empty:
            warnings.warn(f"Wave {wave.id} has no variables selected; left out of the merge", UserWarning)
            continue

        duplicated = selection["var_name"][selection["var_name"].duplicated()]
        if not duplicated.empty:
            raise MergeError(
                f"Wave {wave.id}: several variables mapped to {sorted(set(duplicated))}"
            )

        columns = {}
        variables = {}
        for _, row in selection.iterrows():
            orig = row["var_name_orig"]
            target = str(row["var_name"])
            if orig not in wave.data.columns:
                warnings.warn(f"Variable {orig} not found in wave {wave.id}", UserWarning)
                continue
            meta = wave.get_variable(orig).copy(name=target)
            if has_labels and isinstance(row["var_label"], str) and row["var_label"]:
                meta.label = row["var_label"]
            columns[target] = wave.data[orig]
            variables[target] = meta

        for target in targets:
            if target not in columns:
                warnings.warn(
                    f"Variable {target} is missing from wave {wave.id}; filled with NaN",
                    UserWarning,
                )
                columns[target] = pd.Series(np.nan, index=wave.data.index, dtype=float)
                variables[target] = LabelledVariable(
                    name=target, label=_first_label(var_harmonization, target)
                )

        data = pd.DataFrame({t: columns[t] for t in targets}, index=wave.data.index)
        merged.append(SurveyWave(
            id=wave.id,
            data=data.reset_index(drop=True),
            filename=wave.filename,
            doi=wave.doi,
            variables={t: variables[t] for t in targets},
        ))
        logger.debug("Merged wave %s: %d variables", wave.id, len(targets))

    logger.info("Merged %d waves on %d variables", len(merged), len(targets))
    return merged


__all__ = ["merge_waves", "MergeError"]
