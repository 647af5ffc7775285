"""
Value harmonization (Layer 2: waves → common coding).

harmonize_values() recodes one labelled column onto a target scale by
matching its value labels against regular expressions. harmonize_waves()
applies a per-wave function and row-binds the results.

Example rules for a four-point trust question:

    {
        "from": ["^not at all", "^just a little", "^somewhat", "^a lot",
                 "^don", "^ref", "^miss"],
        "to": ["not_at_all", "little", "somewhat", "a_lot",
               "do_not_know", "declined", "inap"],
        "numeric_values": [0, 1, 2, 3, 99997, 99998, 99999],
    }

Labels are lowercased and stripped before matching; the first pattern
that matches (re.search) wins.
"""

import logging
import re
import warnings
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

from survharm.model import (
    LabelledVariable,
    LabelledVector,
    SurveyWave,
    code_key,
    is_nan,
)


logger = logging.getLogger(__name__)

DEFAULT_NA_VALUES: Dict[str, float] = {
    "do_not_know": 99997,
    "declined": 99998,
    "inap": 99999,
}

INVALID_LABEL = "invalid_label"
INVALID_CODE = 99901


class HarmonizationError(ValueError):
    """Raised for inconsistent harmonization rules or harmonization results."""
    pass


@dataclass
class HarmonizationRules:
    """
    Regex-to-target mapping for value labels.

    Properties:
        from_patterns: Regular expressions, matched against lowercased labels
        to: Target label for each pattern
        numeric_values: Target code for each pattern

    INVARIANTS:
        - The three lists have the same length
        - One target label always has one code, and one code one label
    """

    from_patterns: List[str]
    to: List[str]
    numeric_values: List[float]
    _compiled: List[re.Pattern] = field(default_factory=list, init=False, repr=False, compare=False)

    def __post_init__(self):
        self.from_patterns = [str(p) for p in self.from_patterns]
        self.to = [str(t) for t in self.to]
        self.numeric_values = [float(v) for v in self.numeric_values]

        lengths = {len(self.from_patterns), len(self.to), len(self.numeric_values)}
        if len(lengths) != 1:
            raise HarmonizationError(
                f"from ({len(self.from_patterns)}), to ({len(self.to)}) and "
                f"numeric_values ({len(self.numeric_values)}) must have the same length"
            )
        if not self.from_patterns:
            raise HarmonizationError("Harmonization rules are empty")

        code_by_label: Dict[str, float] = {}
        label_by_code: Dict[float, str] = {}
        for label, code in zip(self.to, self.numeric_values):
            if code_by_label.setdefault(label, code) != code:
                raise HarmonizationError(
                    f"Label '{label}' mapped to both {code_by_label[label]} and {code}"
                )
            if label_by_code.setdefault(code, label) != label:
                raise HarmonizationError(
                    f"Code {code} mapped to both '{label_by_code[code]}' and '{label}'"
                )

        try:
            self._compiled = [re.compile(p) for p in self.from_patterns]
        except re.error as e:
            raise HarmonizationError(f"Invalid pattern in harmonization rules: {e}") from e

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "HarmonizationRules":
        patterns = d.get("from", d.get("from_patterns"))
        if patterns is None or "to" not in d or "numeric_values" not in d:
            raise HarmonizationError(
                "Harmonization rules need 'from', 'to' and 'numeric_values'"
            )
        return cls(from_patterns=list(patterns), to=list(d["to"]), numeric_values=list(d["numeric_values"]))

    def to_dict(self) -> Dict[str, list]:
        return {
            "from": list(self.from_patterns),
            "to": list(self.to),
            "numeric_values": list(self.numeric_values),
        }

    def match(self, label: str) -> Optional[Tuple[float, str]]:
        """Return (code, target label) of the first matching pattern, or None."""
        for pattern, target, code in zip(self._compiled, self.to, self.numeric_values):
            if pattern.search(label):
                return code, target
        return None

    @property
    def target_labels(self) -> Dict[float, str]:
        return dict(zip(self.numeric_values, self.to))


RulesLike = Union[HarmonizationRules, Mapping[str, Any]]


def _as_rules(harmonize_labels: RulesLike) -> HarmonizationRules:
    if isinstance(harmonize_labels, HarmonizationRules):
        return harmonize_labels
    return HarmonizationRules.from_dict(harmonize_labels)


def harmonize_values(
    x: Union[LabelledVector, pd.Series, Iterable],
    harmonize_labels: RulesLike,
    na_values: Optional[Mapping[str, float]] = None,
    na_range: Optional[Tuple[float, float]] = None,
    id: Optional[str] = None,
    name_orig: Optional[str] = None,
    remove: Optional[str] = None,
) -> LabelledVector:
    """
    Recode a labelled column onto a harmonized scale.

    Args:
        x: LabelledVector, or a Series / iterable of labels or codes
        harmonize_labels: HarmonizationRules or a dict with from / to /
            numeric_values
        na_values: Missing categories of the result, label -> code
            (DEFAULT_NA_VALUES when None)
        na_range: Optional inclusive missing range of the result
        id: Wave id recorded on the result (defaults to x.id)
        name_orig: Original column name recorded on the result
        remove: Regex removed from labels before matching

    Returns:
        LabelledVector of float codes with the target labels

    Behaviour:
        - NaN becomes the ``inap`` code when na_values has one
        - A labelled code that no pattern matches becomes INVALID_CODE
          (labelled INVALID_LABEL) and triggers a UserWarning
        - Unlabelled codes already on the target scale are kept
        - Unlabelled user-missing codes become the ``inap`` code
    """
    rules = _as_rules(harmonize_labels)
    na_values = dict(DEFAULT_NA_VALUES if na_values is None else na_values)
    remove_re = re.compile(remove) if remove else None

    if isinstance(x, LabelledVector):
        values = x.values
        meta = x.meta
        id = id if id is not None else x.id
        name_orig = name_orig if name_orig is not None else x.name_orig
    else:
        values = x if isinstance(x, pd.Series) else pd.Series(list(x))
        meta = LabelledVariable(name=str(values.name) if values.name is not None else "x")

    def _match_label(label: Any) -> Optional[Tuple[float, str]]:
        text = str(label).strip().lower()
        if remove_re is not None:
            text = remove_re.sub("", text).strip()
        return rules.match(text)

    code_map: Dict[Any, float] = {}
    unmatched = set()
    for code, label in meta.labels.items():
        target = _match_label(label)
        if target is None:
            unmatched.add(str(label))
            code_map[code_key(code)] = INVALID_CODE
        else:
            code_map[code_key(code)] = target[0]

    target_codes = set(rules.target_labels) | {float(c) for c in na_values.values()}
    inap = na_values.get("inap")

    def _recode(value: Any) -> float:
        if is_nan(value):
            return float(inap) if inap is not None else np.nan
        key = code_key(value)
        if key in code_map:
            return code_map[key]
        if isinstance(key, float) and key in target_codes:
            return key
        if meta.is_missing_code(key) and inap is not None:
            return float(inap)
        target = _match_label(value)
        if target is not None:
            return target[0]
        unmatched.add(str(value))
        return INVALID_CODE

    recoded = values.map(_recode).astype(float)

    labels: Dict[float, str] = dict(rules.target_labels)
    for label, code in na_values.items():
        labels.setdefault(float(code), label)
    if (recoded == INVALID_CODE).any():
        labels[float(INVALID_CODE)] = INVALID_LABEL

    if unmatched:
        warnings.warn(
            f"{name_orig or meta.name}: labels not matched by any harmonization pattern: "
            f"{sorted(unmatched)}",
            UserWarning,
        )

    harmonized = LabelledVariable(
        name=meta.name,
        label=meta.label,
        labels=labels,
        na_values=sorted(float(c) for c in na_values.values()),
        na_range=tuple(na_range) if na_range is not None else None,
    )
    return LabelledVector(values=recoded, meta=harmonized, id=id, name_orig=name_orig)


def _merge_variable(existing: LabelledVariable, other: LabelledVariable, wave_id: str) -> None:
    conflicts = [
        code for code, lab in other.labels.items()
        if existing.label_for(code) is not None and existing.label_for(code) != lab
    ]
    if conflicts or (existing.labels and other.labels and existing.labels != other.labels):
        warnings.warn(
            f"Value labels of {existing.name} in wave {wave_id} differ from earlier waves",
            UserWarning,
        )
    for code, lab in other.labels.items():
        if existing.label_for(code) is None:
            existing.labels[code] = lab
    for code in other.na_values:
        if float(code) not in {float(c) for c in existing.na_values}:
            existing.na_values.append(float(code))
    if existing.na_range is None:
        existing.na_range = other.na_range
    if existing.label is None:
        existing.label = other.label


def harmonize_waves(
    waves: Iterable[SurveyWave],
    f: Optional[Callable[[SurveyWave], SurveyWave]] = None,
    id_column: Optional[str] = None,
) -> SurveyWave:
    """
    Harmonize each wave with f, then row-bind them.

    Args:
        waves: Wave collection, usually the output of merge_waves()
        f: Function taking and returning a SurveyWave; it receives a copy
        id_column: If given, a column of that name records each row's wave id

    Returns:
        One SurveyWave with id "Waves: <id1>; <id2>; ...". Columns are the
        union of all waves' columns, absent ones filled with NaN.

    Raises:
        HarmonizationError: On an empty collection or if f returns something
            other than a SurveyWave, or if id_column is already a column
    """
    processed: List[SurveyWave] = []
    for wave in waves:
        out = f(wave.copy()) if f is not None else wave.copy()
        if not isinstance(out, SurveyWave):
            raise HarmonizationError(
                f"Harmonization function must return a SurveyWave, got {type(out).__name__}"
            )
        if id_column is not None:
            if id_column in out.data.columns:
                raise HarmonizationError(
                    f"Wave {out.id} already has a column named '{id_column}'"
                )
            out.data.insert(0, id_column, out.id)
        processed.append(out)

    if not processed:
        raise HarmonizationError("No waves to harmonize")

    columns = list(dict.fromkeys(c for wave in processed for c in wave.data.columns))
    data = pd.concat([wave.data.reindex(columns=columns) for wave in processed], ignore_index=True)

    variables: Dict[str, LabelledVariable] = {}
    for wave in processed:
        for name, var in wave.variables.items():
            if name not in variables:
                variables[name] = var.copy()
            else:
                _merge_variable(variables[name], var, wave.id)

    harmonized = SurveyWave(
        id="Waves: " + "; ".join(wave.id for wave in processed),
        data=data,
        variables=variables,
    )
    logger.info("Harmonized %d waves into %d rows", len(processed), harmonized.nrow)
    return harmonized


__all__ = [
    "harmonize_values",
    "harmonize_waves",
    "HarmonizationRules",
    "HarmonizationError",
    "DEFAULT_NA_VALUES",
    "INVALID_CODE",
    "INVALID_LABEL",
]
