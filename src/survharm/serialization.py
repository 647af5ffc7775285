"""
Serialization helpers for wave metadata and harmonization rules.

Provides lossless JSON/YAML round-trip via intermediate dict representation.
Data values are not serialized here; use survharm.backends for that.
Value labels are stored as a list of {code, label} pairs so that numeric
codes survive JSON, whose object keys are always strings.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List

import pandas as pd
import yaml

from survharm.harmonize import HarmonizationRules
from survharm.model import LabelledVariable, SurveyWave


def _plain(value: Any) -> Any:
    """Convert numpy scalars to builtins so yaml.safe_dump accepts them."""
    if hasattr(value, "item") and not isinstance(value, (list, dict, str)):
        return value.item()
    return value


def variable_to_dict(v: LabelledVariable) -> Dict[str, Any]:
    return {
        "name": v.name,
        "label": v.label,
        "labels": [{"code": _plain(code), "label": lab} for code, lab in v.sorted_labels()],
        "na_values": [float(c) for c in v.na_values],
        "na_range": [float(x) for x in v.na_range] if v.na_range is not None else None,
    }


def variable_from_dict(d: Dict[str, Any]) -> LabelledVariable:
    na_range = d.get("na_range")
    return LabelledVariable(
        name=d["name"],
        label=d.get("label"),
        labels={item["code"]: item["label"] for item in d.get("labels", [])},
        na_values=[float(c) for c in d.get("na_values", [])],
        na_range=tuple(na_range) if na_range is not None else None,
    )


def wave_metadata_to_dict(w: SurveyWave) -> Dict[str, Any]:
    return {
        "id": w.id,
        "filename": w.filename,
        "doi": w.doi,
        "columns": w.columns,
        "variables": [variable_to_dict(w.get_variable(c)) for c in w.columns],
    }


def wave_metadata_from_dict(d: Dict[str, Any]) -> SurveyWave:
    """Rebuild an empty wave (no rows) carrying the stored metadata."""
    wave = SurveyWave(id=d["id"], filename=d.get("filename"), doi=d.get("doi"))
    wave.data = pd.DataFrame(columns=d.get("columns", []))
    wave.variables = {v["name"]: variable_from_dict(v) for v in d.get("variables", [])}
    return wave


def wave_metadata_to_json(w: SurveyWave) -> str:
    return json.dumps(wave_metadata_to_dict(w), sort_keys=True)


def wave_metadata_from_json(s: str) -> SurveyWave:
    return wave_metadata_from_dict(json.loads(s))


def wave_metadata_to_yaml(w: SurveyWave) -> str:
    return yaml.safe_dump(wave_metadata_to_dict(w))


def wave_metadata_from_yaml(s: str) -> SurveyWave:
    return wave_metadata_from_dict(yaml.safe_load(s))


def rules_to_dict(r: HarmonizationRules) -> Dict[str, List]:
    return r.to_dict()


def rules_from_dict(d: Dict[str, Any]) -> HarmonizationRules:
    return HarmonizationRules.from_dict(d)


def rules_to_yaml(r: HarmonizationRules) -> str:
    return yaml.safe_dump(rules_to_dict(r), sort_keys=False)


def rules_from_yaml(s: str) -> HarmonizationRules:
    return rules_from_dict(yaml.safe_load(s))
