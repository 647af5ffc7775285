"""
Configuration of the trust case study.

Defaults reproduce the walkthrough; a YAML file can override any field:

    selection_pattern: "trust "
    id_variables: [rowid, dateintr, dateofinterview, country, withinwt]
    na_values: {do_not_know: 99997, declined: 99998, inap: 99999}
    trust_rules:
      from: ["^not at all", "^just a little", "^somewhat", "^a lot", "^don", "^ref", "^miss"]
      to: [not_at_all, little, somewhat, a_lot, do_not_know, declined, inap]
      numeric_values: [0, 1, 2, 3, 99997, 99998, 99999]
    export_dir: exports
    export_format: csv
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

import yaml

from survharm.backends import ExportFormat
from survharm.harmonize import DEFAULT_NA_VALUES, HarmonizationRules


def default_trust_rules() -> HarmonizationRules:
    return HarmonizationRules(
        from_patterns=[
            "^not at all",
            "^just a little|^a little",
            "^somewhat",
            "^a lot",
            "^don|^do not know|^dk",
            "^ref|^declined",
            "^miss|^not applicable|^inap",
        ],
        to=["not_at_all", "little", "somewhat", "a_lot", "do_not_know", "declined", "inap"],
        numeric_values=[0, 1, 2, 3, 99997, 99998, 99999],
    )


@dataclass
class CaseStudyConfig:
    """
    Settings for run_trust_casestudy().

    Properties:
        selection_pattern: Regex; variables whose label matches are selected
        id_variables: Original names always selected (identifiers, weights)
        trust_prefix: Prefix of the harmonized trust variables
        date_variable / weight_variable / country_variable: Target names
        trust_rules: Value harmonization for trust questions
        na_values: Missing categories of harmonized variables
        export_dir: Where to save results (nothing is saved when None)
        export_format: Format of the saved harmonized data
        export_name: Base file name of the saved results
    """

    selection_pattern: str = "trust "
    id_variables: List[str] = field(
        default_factory=lambda: ["rowid", "dateintr", "dateofinterview", "country", "withinwt"]
    )
    trust_prefix: str = "trust_"
    date_variable: str = "date_of_interview"
    weight_variable: str = "within_country_weighting"
    country_variable: str = "country"
    trust_rules: HarmonizationRules = field(default_factory=default_trust_rules)
    na_values: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_NA_VALUES))
    export_dir: Optional[str] = None
    export_format: ExportFormat = ExportFormat.CSV
    export_name: str = "harmonized_trust"


class ConfigError(ValueError):
    """Raised for unknown or malformed configuration keys."""
    pass


def config_from_dict(d: Dict[str, Any]) -> CaseStudyConfig:
    known = {f.name for f in fields(CaseStudyConfig)}
    unknown = sorted(set(d) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {unknown}")

    values = dict(d)
    if "trust_rules" in values:
        values["trust_rules"] = HarmonizationRules.from_dict(values["trust_rules"])
    if "export_format" in values:
        try:
            values["export_format"] = ExportFormat(str(values["export_format"]).lower())
        except ValueError:
            raise ConfigError(f"Unknown export format: {values['export_format']}") from None
    if "na_values" in values:
        values["na_values"] = {str(k): float(v) for k, v in values["na_values"].items()}
    return CaseStudyConfig(**values)


def load_casestudy_config(path: str) -> CaseStudyConfig:
    """Read a CaseStudyConfig from a YAML file; an empty file gives the defaults."""
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    return config_from_dict(data)
