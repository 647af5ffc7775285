"""Tests for label normalization."""

import numpy as np
import pandas as pd

from survharm.labels import label_normalize, val_label_normalize, var_label_normalize


class TestLabelNormalize:

    def test_snake_case(self):
        assert label_normalize("Just a little") == "just_a_little"

    def test_symbols(self):
        assert label_normalize("Trust & Confidence (%)") == "trust_and_confidence_pct"
        assert label_normalize("65+") == "65_plus"

    def test_apostrophes_dropped(self):
        assert label_normalize("Haven't heard") == "havent_heard"


class TestVarLabelNormalize:

    def test_question_code_removed(self):
        assert var_label_normalize("Q52a. Trust president") == "trust president"
        assert var_label_normalize("Q43A Trust the President") == "trust the president"

    def test_punctuation_and_whitespace(self):
        assert var_label_normalize("  Within-country   weighting factor ") == "within country weighting factor"

    def test_label_without_code_kept(self):
        assert var_label_normalize("Quality of life") == "quality of life"


class TestValLabelNormalize:

    def test_missing_categories(self):
        assert val_label_normalize("Don't know/Haven't heard enough") == "do_not_know"
        assert val_label_normalize("Don’t know") == "do_not_know"
        assert val_label_normalize("DK") == "do_not_know"
        assert val_label_normalize("Refused to answer") == "declined"
        assert val_label_normalize("Missing") == "inap"
        assert val_label_normalize("Not applicable") == "inap"

    def test_substantive_labels(self):
        assert val_label_normalize("Not at all") == "not_at_all"
        assert val_label_normalize("A lot") == "a_lot"


class TestShapes:

    def test_list_input(self):
        assert val_label_normalize(["A lot", None]) == ["a_lot", None]

    def test_series_input_keeps_missing(self):
        result = var_label_normalize(pd.Series(["Q1. Trust police", np.nan], index=[5, 7]))
        assert list(result.index) == [5, 7]
        assert result.iloc[0] == "trust police"
        assert pd.isna(result.iloc[1])

    def test_none_passthrough(self):
        assert label_normalize(None) is None
