"""
Case study: trust in institutions across survey rounds.

Walks through the whole harmonization workflow on several waves of a
repeated public-opinion survey:

    1. read the wave files and document them
    2. create and row-bind variable metadata
    3. select identifiers, weights and every "trust ..." question,
       derive common variable names from the labels
    4. merge the waves on those names
    5. harmonize the trust answers onto a four-point scale
       (not_at_all=0, little=1, somewhat=2, a_lot=3) plus missing codes
    6. tabulate weighted mean trust by country and year, long format
    7. optionally export the harmonized data and the table

Each step is a function so it can be inspected or replaced;
run_trust_casestudy() chains them.
"""

import logging
import re
import warnings
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from survharm.analyzer import WaveReport, analyze_waves
from survharm.backends import export_wave
from survharm.config import CaseStudyConfig
from survharm.harmonize import INVALID_CODE, harmonize_values, harmonize_waves
from survharm.io import ROWID_COLUMN, read_surveys
from survharm.labels import val_label_normalize, var_label_normalize
from survharm.merge import merge_waves
from survharm.metadata import document_waves, metadata_waves_create
from survharm.model import LabelledVector, SurveyWave
from survharm.tables import pivot_longer, weighted_group_means


logger = logging.getLogger(__name__)

UNIQUE_ID = "unique_id"

_DATE_NAMES = {"dateintr", "dateofinterview"}
_WEIGHT_NAMES = {"withinwt"}


@dataclass
class CaseStudyResult:
    """Every intermediate product of the walkthrough."""
    waves: List[SurveyWave]
    documentation: pd.DataFrame
    metadata: pd.DataFrame
    selection: pd.DataFrame
    merged: List[SurveyWave]
    report: WaveReport
    harmonized: SurveyWave
    summary: pd.DataFrame
    exported: List[Path] = field(default_factory=list)


def suggest_var_name(var_name_orig: str, var_label: Optional[str], config: CaseStudyConfig) -> str:
    """Common target name for an original variable."""
    label = var_label or ""
    if var_name_orig == ROWID_COLUMN or label.startswith("unique identifier"):
        return UNIQUE_ID
    if var_name_orig in _DATE_NAMES or label.startswith("date of interview"):
        return config.date_variable
    if var_name_orig in _WEIGHT_NAMES or "weighting" in label:
        return config.weight_variable
    if var_name_orig == "country":
        return config.country_variable
    name = val_label_normalize(label or var_name_orig)
    return re.sub(r"^trust_(the|your)_", "trust_", name)


def select_trust_variables(metadata: pd.DataFrame, config: CaseStudyConfig) -> pd.DataFrame:
    """
    Choose the variables to merge and name them.

    Returns:
        var_harmonization table: id, filename, var_name_orig, label_orig,
        var_label, var_name
    """
    labels = metadata["label_orig"].fillna("")
    mask = (
        metadata["var_name_orig"].isin(config.id_variables)
        | labels.str.contains(config.selection_pattern, case=False, regex=True)
    )
    selection = metadata.loc[mask, ["id", "filename", "var_name_orig", "label_orig"]].copy()
    selection["var_label"] = var_label_normalize(
        selection["label_orig"].fillna(selection["var_name_orig"])
    )
    selection["var_name"] = [
        suggest_var_name(orig, label, config)
        for orig, label in zip(selection["var_name_orig"], selection["var_label"])
    ]
    logger.info("Selected %d variables from %d waves", len(selection), selection["id"].nunique())
    return selection.reset_index(drop=True)


def harmonize_trust(x: LabelledVector, config: Optional[CaseStudyConfig] = None) -> LabelledVector:
    """Recode one trust question onto the common four-point scale."""
    config = config or CaseStudyConfig()
    return harmonize_values(x, harmonize_labels=config.trust_rules, na_values=config.na_values)


def harmonize_trust_wave(wave: SurveyWave, config: Optional[CaseStudyConfig] = None) -> SurveyWave:
    """Harmonize every trust question of a merged wave and parse its interview date."""
    config = config or CaseStudyConfig()
    for name in wave.columns:
        if name.startswith(config.trust_prefix):
            wave.set_column(name, harmonize_trust(wave.column(name), config))
    if config.date_variable in wave.data.columns:
        wave.set_column(
            config.date_variable,
            pd.to_datetime(wave.data[config.date_variable], errors="coerce"),
        )
    return wave


def trust_by_country_year(harmonized: SurveyWave, config: Optional[CaseStudyConfig] = None) -> pd.DataFrame:
    """
    Weighted mean trust per country and year, one row per institution.

    Missing answers (do_not_know, declined, inap) and invalid_label codes
    are excluded. Without a country or date column the key is NA.
    """
    config = config or CaseStudyConfig()
    df = harmonized.data.copy()
    trust_cols = [c for c in harmonized.columns if c.startswith(config.trust_prefix)]
    for col in trust_cols:
        values = harmonized.column(col).as_numeric()
        df[col] = values.mask(values == INVALID_CODE)

    for name in (config.country_variable, config.date_variable):
        if name not in df.columns:
            warnings.warn(f"{harmonized.id}: no {name} column; grouped as NA", UserWarning)
            df[name] = pd.NaT if name == config.date_variable else np.nan

    df["year"] = pd.to_datetime(df[config.date_variable], errors="coerce").dt.year.astype("Int64")
    weight = config.weight_variable if config.weight_variable in df.columns else None

    means = weighted_group_means(df, [config.country_variable, "year"], trust_cols, weight=weight)
    return pivot_longer(
        means,
        trust_cols,
        names_to="institution",
        values_to="trust",
        names_prefix=config.trust_prefix,
    )


def _load(sources: Iterable[Union[SurveyWave, str, Path]]) -> List[SurveyWave]:
    sources = list(sources)
    if all(isinstance(s, SurveyWave) for s in sources):
        return sources
    if any(isinstance(s, SurveyWave) for s in sources):
        raise TypeError("Pass either SurveyWave objects or file paths, not both")
    return read_surveys(sources)


def run_trust_casestudy(
    sources: Iterable[Union[SurveyWave, str, Path]],
    config: Optional[CaseStudyConfig] = None,
) -> CaseStudyResult:
    """
    Run the full walkthrough.

    Args:
        sources: SurveyWave objects or paths of wave files
        config: CaseStudyConfig (defaults when None)

    Returns:
        CaseStudyResult with all intermediate tables
    """
    config = config or CaseStudyConfig()

    waves = _load(sources)
    logger.info("Step 1: %d waves", len(waves))
    documentation = document_waves(waves)

    metadata = metadata_waves_create(waves)
    logger.info("Step 2: metadata for %d variables", len(metadata))

    selection = select_trust_variables(metadata, config)

    merged = merge_waves(waves, selection)
    for wave in merged:
        if config.country_variable in wave.data.columns:
            wave.set_column(config.country_variable, wave.column(config.country_variable).as_character())
    report = analyze_waves(merged)
    for warning in report.warnings:
        logger.info("Merged waves: %s", warning)

    harmonized = harmonize_waves(merged, partial(harmonize_trust_wave, config=config))
    summary = trust_by_country_year(harmonized, config)
    logger.info("Step 6: summary table with %d rows", len(summary))

    exported: List[Path] = []
    if config.export_dir:
        export_dir = Path(config.export_dir)
        fmt = config.export_format
        exported.append(export_wave(harmonized, export_dir / f"{config.export_name}.{fmt.value}", fmt))
        summary_path = export_dir / f"{config.export_name}_summary.csv"
        summary.to_csv(summary_path, index=False)
        exported.append(summary_path)

    return CaseStudyResult(
        waves=waves,
        documentation=documentation,
        metadata=metadata,
        selection=selection,
        merged=merged,
        report=report,
        harmonized=harmonized,
        summary=summary,
        exported=exported,
    )
