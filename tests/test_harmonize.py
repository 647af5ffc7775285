"""
Tests for value harmonization.

These tests verify:
    - Rule validation (lengths, conflicting codes, bad regexes)
    - Recoding of labelled codes by regex on their labels
    - Missing values: NaN, user-missing codes, unmatched labels
    - Row-binding harmonized waves
"""

import math

import numpy as np
import pandas as pd
import pytest

from survharm.harmonize import (
    DEFAULT_NA_VALUES,
    INVALID_CODE,
    INVALID_LABEL,
    HarmonizationError,
    HarmonizationRules,
    harmonize_values,
    harmonize_waves,
)
from survharm.model import LabelledVariable, LabelledVector, SurveyWave


TRUST = {
    "from": ["^not at all", "^just a little", "^somewhat", "^a lot", "^don", "^ref", "^miss"],
    "to": ["not_at_all", "little", "somewhat", "a_lot", "do_not_know", "declined", "inap"],
    "numeric_values": [0, 1, 2, 3, 99997, 99998, 99999],
}


class TestHarmonizationRules:

    def test_from_dict(self):
        rules = HarmonizationRules.from_dict(TRUST)
        assert rules.target_labels[3.0] == "a_lot"
        assert rules.to_dict()["from"] == TRUST["from"]

    def test_lengths_must_match(self):
        with pytest.raises(HarmonizationError, match="same length"):
            HarmonizationRules(from_patterns=["^a"], to=["a", "b"], numeric_values=[1])

    def test_empty_rules(self):
        with pytest.raises(HarmonizationError):
            HarmonizationRules(from_patterns=[], to=[], numeric_values=[])

    def test_same_label_two_codes(self):
        with pytest.raises(HarmonizationError, match="inap"):
            HarmonizationRules(from_patterns=["^miss", "^not app"], to=["inap", "inap"], numeric_values=[99999, 99998])

    def test_repeated_label_same_code_is_fine(self):
        rules = HarmonizationRules(from_patterns=["^miss", "^not app"], to=["inap", "inap"], numeric_values=[99999, 99999])
        assert rules.match("not applicable") == (99999.0, "inap")

    def test_invalid_regex(self):
        with pytest.raises(HarmonizationError, match="Invalid pattern"):
            HarmonizationRules(from_patterns=["("], to=["x"], numeric_values=[1])

    def test_missing_keys(self):
        with pytest.raises(HarmonizationError):
            HarmonizationRules.from_dict({"from": ["^a"], "to": ["a"]})

    def test_first_match_wins(self):
        rules = HarmonizationRules(from_patterns=["^a", "^a lot"], to=["first", "second"], numeric_values=[1, 2])
        assert rules.match("a lot") == (1.0, "first")


class TestHarmonizeValues:

    def test_recode_round5_question(self, example_waves):
        x = example_waves[0].column("q59a")
        result = harmonize_values(x, TRUST)
        assert list(result.values) == [3.0, 2.0, 99997.0, 0.0, 1.0, 99999.0]
        assert result.id == "Afrobarometer_R5"
        assert result.name_orig == "q59a"

    def test_result_labels(self, example_waves):
        result = harmonize_values(example_waves[0].column("q59a"), TRUST)
        assert result.meta.labels[0.0] == "not_at_all"
        assert result.meta.labels[99998.0] == "declined"
        assert result.meta.na_values == [99997.0, 99998.0, 99999.0]
        assert result.meta.label == "Q59a. Trust president"
        assert list(result.as_character()) == ["a_lot", "somewhat", "do_not_know", "not_at_all", "little", "inap"]

    def test_as_numeric_after_harmonization(self, example_waves):
        result = harmonize_values(example_waves[0].column("q59a"), TRUST).as_numeric()
        assert list(result.iloc[[0, 1, 3, 4]]) == [3.0, 2.0, 0.0, 1.0]
        assert math.isnan(result.iloc[2])
        assert math.isnan(result.iloc[5])

    def test_different_codes_same_result(self, example_waves):
        r5 = harmonize_values(example_waves[0].column("q59a"), TRUST)
        r7 = harmonize_values(example_waves[2].column("q43a"), TRUST)
        assert r5.meta.labels == r7.meta.labels
        # R7 codes 8 (Refused) and 9 (Don't know)
        assert list(r7.values) == [2.0, 3.0, 99998.0, 99997.0]

    def test_nan_becomes_inap(self):
        var = LabelledVariable(name="q", labels={1.0: "A lot"})
        x = LabelledVector(values=pd.Series([1.0, np.nan]), meta=var)
        assert list(harmonize_values(x, TRUST).values) == [3.0, 99999.0]

    def test_nan_stays_nan_without_inap(self):
        var = LabelledVariable(name="q", labels={1.0: "A lot"})
        x = LabelledVector(values=pd.Series([1.0, np.nan]), meta=var)
        result = harmonize_values(x, TRUST, na_values={"do_not_know": 99997})
        assert result.values.iloc[0] == 3.0
        assert math.isnan(result.values.iloc[1])

    def test_unmatched_label_is_invalid(self):
        var = LabelledVariable(name="q", labels={1.0: "A lot", 5.0: "Completely"})
        x = LabelledVector(values=pd.Series([1.0, 5.0]), meta=var)
        with pytest.warns(UserWarning, match="Completely"):
            result = harmonize_values(x, TRUST)
        assert list(result.values) == [3.0, float(INVALID_CODE)]
        assert result.meta.labels[float(INVALID_CODE)] == INVALID_LABEL

    def test_unlabelled_user_missing_becomes_inap(self):
        var = LabelledVariable(name="q", labels={1.0: "A lot"}, na_values=[-9])
        x = LabelledVector(values=pd.Series([1.0, -9.0]), meta=var)
        assert list(harmonize_values(x, TRUST).values) == [3.0, 99999.0]

    def test_plain_series_of_labels(self):
        result = harmonize_values(pd.Series(["Not at all", "A lot", "Don't know"], name="trust"), TRUST)
        assert list(result.values) == [0.0, 3.0, 99997.0]
        assert result.meta.name == "trust"

    def test_remove_pattern(self):
        var = LabelledVariable(name="q", labels={1.0: "(1) A lot", 2.0: "(2) Not at all"})
        x = LabelledVector(values=pd.Series([1.0, 2.0]), meta=var)
        result = harmonize_values(x, TRUST, remove=r"^\(\d\)")
        assert list(result.values) == [3.0, 0.0]

    def test_default_na_values(self):
        assert DEFAULT_NA_VALUES == {"do_not_know": 99997, "declined": 99998, "inap": 99999}


class TestHarmonizeWaves:

    def make_waves(self):
        var = LabelledVariable(name="trust", labels={1.0: "A lot", 2.0: "Not at all"})
        w1 = SurveyWave(id="W1", data=pd.DataFrame({"trust": [1.0, 2.0]}), variables={"trust": var})
        w2 = SurveyWave(
            id="W2",
            data=pd.DataFrame({"trust": [2.0], "extra": ["x"]}),
            variables={"trust": var.copy()},
        )
        return [w1, w2]

    @staticmethod
    def recode(wave):
        wave.set_column("trust", harmonize_values(wave.column("trust"), TRUST))
        return wave

    def test_row_bind(self):
        result = harmonize_waves(self.make_waves(), self.recode)
        assert result.id == "Waves: W1; W2"
        assert result.nrow == 3
        assert result.columns == ["trust", "extra"]
        assert list(result.data["trust"]) == [3.0, 0.0, 0.0]
        assert pd.isna(result.data["extra"].iloc[0])
        assert result.get_variable("trust").labels[3.0] == "a_lot"

    def test_inputs_not_modified(self):
        waves = self.make_waves()
        harmonize_waves(waves, self.recode)
        assert list(waves[0].data["trust"]) == [1.0, 2.0]

    def test_without_function(self):
        result = harmonize_waves(self.make_waves())
        assert list(result.data["trust"]) == [1.0, 2.0, 2.0]

    def test_id_column(self):
        result = harmonize_waves(self.make_waves(), id_column="wave")
        assert list(result.data["wave"]) == ["W1", "W1", "W2"]

    def test_label_conflict_warns(self):
        waves = self.make_waves()
        waves[1].variables["trust"].labels[2.0] = "Somewhat"
        with pytest.warns(UserWarning, match="differ"):
            harmonize_waves(waves)

    def test_function_must_return_wave(self):
        with pytest.raises(HarmonizationError, match="SurveyWave"):
            harmonize_waves(self.make_waves(), lambda wave: wave.data)

    def test_empty(self):
        with pytest.raises(HarmonizationError):
            harmonize_waves([])

    def test_id_column_already_present(self):
        with pytest.raises(HarmonizationError, match="trust"):
            harmonize_waves(self.make_waves(), id_column="trust")
