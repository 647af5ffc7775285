"""
Tests for the Wave Analyzer.

Tests verify that the analyzer correctly:
    - Inventories variables per wave
    - Detects variables missing from some waves
    - Finds value labels that differ between waves
    - Finds codes without labels
"""

import pandas as pd
import pytest

from survharm.analyzer import analyze_waves
from survharm.merge import merge_waves
from survharm.model import LabelledVariable, SurveyWave


def test_raw_rounds_inventory(example_waves):
    """Renamed questions show up as partial variables."""
    report = analyze_waves(example_waves)

    assert report.total_waves == 3
    assert report.total_rows == 14
    assert report.variable_presence["country"] == ["Afrobarometer_R5", "Afrobarometer_R6", "Afrobarometer_R7"]
    assert report.partial_variables == {
        "dateintr", "dateofinterview", "q59a", "q52a", "q52b", "q43a", "q43b",
    }
    assert report.labelled_variables == 6
    assert report.label_conflicts == {}
    assert report.unlabelled_codes == {}
    assert any("missing from some waves" in w for w in report.warnings)


def test_merged_rounds_label_conflicts(example_waves):
    """After merging, the same target carries differently worded labels."""
    table = pd.DataFrame({
        "id": ["Afrobarometer_R5", "Afrobarometer_R6", "Afrobarometer_R6", "Afrobarometer_R7", "Afrobarometer_R7"],
        "var_name_orig": ["q59a", "q52a", "q52b", "q43a", "q43b"],
        "var_name": ["trust_president", "trust_president", "trust_parliament", "trust_president", "trust_parliament"],
    })
    with pytest.warns(UserWarning):
        merged = merge_waves(example_waves, table)
    report = analyze_waves(merged)

    assert set(report.label_conflicts) == {"trust_president", "trust_parliament"}
    assert report.label_conflicts["trust_president"] == [
        "Afrobarometer_R5", "Afrobarometer_R6", "Afrobarometer_R7",
    ]
    assert report.partial_variables == set()
    assert "Value labels of trust_president differ across waves: " \
        "Afrobarometer_R5, Afrobarometer_R6, Afrobarometer_R7" in report.warnings


def test_unlabelled_codes():
    var = LabelledVariable(name="q", labels={1.0: "Yes", 2.0: "No"})
    wave = SurveyWave(id="W1", data=pd.DataFrame({"q": [1.0, 5.0, None, 7.0]}), variables={"q": var})

    report = analyze_waves([wave])

    assert report.unlabelled_codes == {"q": {"W1": ["5", "7"]}}
    assert "Unlabelled codes in q (W1): 5, 7" in report.warnings


def test_label_case_is_ignored():
    w1 = SurveyWave(
        id="W1",
        data=pd.DataFrame({"q": [1.0]}),
        variables={"q": LabelledVariable(name="q", labels={1: "Yes"})},
    )
    w2 = SurveyWave(
        id="W2",
        data=pd.DataFrame({"q": [1.0]}),
        variables={"q": LabelledVariable(name="q", labels={1.0: "YES "})},
    )
    assert analyze_waves([w1, w2]).label_conflicts == {}


def test_empty_collection():
    report = analyze_waves([])
    assert report.total_waves == 0
    assert report.warnings == []


def test_warnings_deduplicated():
    report = analyze_waves([])
    report.add_warning("x")
    report.add_warning("x")
    assert report.warnings == ["x"]
