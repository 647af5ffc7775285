"""
Wave Analyzer: early diagnostics of a wave collection before harmonization.

This module provides lightweight checks across waves:
    - Variable inventory and presence per wave
    - Variables missing from some waves
    - Value label sets that differ between waves
    - Labelled columns holding codes that have no label
    - Warning flags for harmonization risk

IMPORTANT: This does NOT modify the waves.
It only produces read-only reports.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

from survharm.model import SurveyWave, code_key, format_code, is_nan


@dataclass
class WaveReport:
    """Analysis report for a wave collection."""

    total_waves: int = 0
    total_rows: int = 0
    total_variables: int = 0

    # Variable presence
    variable_presence: Dict[str, List[str]] = field(default_factory=dict)
    partial_variables: Set[str] = field(default_factory=set)

    # Labels
    label_conflicts: Dict[str, List[str]] = field(default_factory=dict)
    unlabelled_codes: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)
    labelled_variables: int = 0

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def _label_signature(labels: Dict) -> tuple:
    return tuple(sorted((str(code_key(c)), str(lab).strip().lower()) for c, lab in labels.items()))


def analyze_waves(waves: Iterable[SurveyWave]) -> WaveReport:
    """
    Inventory a wave collection.

    Checks for:
    - Variables that appear in only some waves
    - Variables whose value labels differ between waves
    - Codes present in the data but absent from the value labels

    Returns a WaveReport with metrics and warnings.
    """
    waves = list(waves)
    report = WaveReport(total_waves=len(waves))
    report.total_rows = sum(w.nrow for w in waves)

    presence: Dict[str, List[str]] = defaultdict(list)
    signatures: Dict[str, Dict[tuple, List[str]]] = defaultdict(lambda: defaultdict(list))
    labelled: Set[str] = set()

    for wave in waves:
        for name in wave.columns:
            presence[name].append(wave.id)
            var = wave.get_variable(name)
            if not var.labels:
                continue
            labelled.add(name)
            signatures[name][_label_signature(var.labels)].append(wave.id)

            known = {code_key(c) for c in var.labels}
            stray = sorted(
                {format_code(code_key(v)) for v in wave.data[name] if not is_nan(v) and code_key(v) not in known}
            )
            if stray:
                report.unlabelled_codes.setdefault(name, {})[wave.id] = stray

    report.variable_presence = dict(presence)
    report.total_variables = len(presence)
    report.labelled_variables = len(labelled)

    for name, ids in presence.items():
        if len(ids) < len(waves):
            report.partial_variables.add(name)

    for name, by_signature in signatures.items():
        if len(by_signature) > 1:
            report.label_conflicts[name] = sorted(i for ids in by_signature.values() for i in ids)

    # Warning flags

    if report.partial_variables:
        report.add_warning(
            f"Variables missing from some waves: {', '.join(sorted(report.partial_variables))}"
        )

    for name in sorted(report.label_conflicts):
        report.add_warning(
            f"Value labels of {name} differ across waves: {', '.join(report.label_conflicts[name])}"
        )

    for name in sorted(report.unlabelled_codes):
        for wave_id, codes in report.unlabelled_codes[name].items():
            report.add_warning(f"Unlabelled codes in {name} ({wave_id}): {', '.join(codes)}")

    return report
