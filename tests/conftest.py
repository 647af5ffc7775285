"""Shared fixtures: in-memory example rounds and a small SPSS file."""

import numpy as np
import pandas as pd
import pyreadstat
import pytest

from survharm.examples import build_example_waves


@pytest.fixture
def example_waves():
    return build_example_waves()


@pytest.fixture
def sav_path(tmp_path):
    """A four-row .sav with a labelled trust question and two kinds of missing codes."""
    df = pd.DataFrame({
        "respno": ["A1", "A2", "A3", "A4"],
        "q1": [1.0, 2.0, 9.0, np.nan],
        "q2": [97.0, 1.0, 2.0, 98.0],
    })
    path = tmp_path / "wave1.sav"
    pyreadstat.write_sav(
        df,
        str(path),
        column_labels=["Respondent number", "Q1. Trust president", "Q2. Age group"],
        variable_value_labels={"q1": {1.0: "A lot", 2.0: "Not at all", 9.0: "Don't know"}},
        missing_ranges={"q1": [9.0], "q2": [{"lo": 97.0, "hi": 99.0}]},
    )
    return path
