"""
Tests for survey import (files → SurveyWave).

We need to:
1. Keep variable labels, value labels and user-missing codes from SPSS
2. Read user-missing codes as values, not NaN
3. Add a rowid to every imported wave
4. Skip unreadable files with a warning, or raise in strict mode
"""

import math

import pandas as pd
import pytest

from survharm.io import (
    SurveyReadError,
    add_rowid,
    read_csv,
    read_spss,
    read_surveys,
)
from survharm.model import SurveyWave


class TestReadSpss:

    def test_labels_are_read(self, sav_path):
        wave = read_spss(sav_path)
        q1 = wave.get_variable("q1")
        assert q1.label == "Q1. Trust president"
        assert q1.label_for(1) == "A lot"
        assert q1.label_for(9) == "Don't know"
        assert wave.get_variable("respno").label == "Respondent number"

    def test_missing_codes(self, sav_path):
        wave = read_spss(sav_path)
        assert wave.get_variable("q1").na_values == [9.0]
        assert wave.get_variable("q2").na_range == (97.0, 99.0)

    def test_user_missing_kept_as_values(self, sav_path):
        wave = read_spss(sav_path)
        q1 = list(wave.data["q1"])
        assert q1[:3] == [1.0, 2.0, 9.0]
        assert math.isnan(q1[3])

    def test_id_and_filename(self, sav_path):
        wave = read_spss(sav_path, id="R1", doi="10.1234/abc")
        assert wave.id == "R1"
        assert wave.filename == "wave1.sav"
        assert wave.doi == "10.1234/abc"
        assert read_spss(sav_path).id == "wave1"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_spss(tmp_path / "nope.sav")


class TestReadSurveys:

    def test_rowid_added(self, sav_path):
        waves = read_surveys([sav_path])
        assert len(waves) == 1
        wave = waves[0]
        assert wave.columns[0] == "rowid"
        assert list(wave.data["rowid"]) == ["wave1_1", "wave1_2", "wave1_3", "wave1_4"]
        assert wave.get_variable("rowid").label == "Unique identifier"

    def test_single_path(self, sav_path):
        assert len(read_surveys(sav_path)) == 1

    def test_ids(self, sav_path, tmp_path):
        csv_path = tmp_path / "wave2.csv"
        pd.DataFrame({"x": [1, 2]}).to_csv(csv_path, index=False)
        waves = read_surveys([sav_path, csv_path], ids=["R1", "R2"])
        assert [w.id for w in waves] == ["R1", "R2"]
        assert list(waves[1].data["rowid"]) == ["R2_1", "R2_2"]

    def test_ids_length_mismatch(self, sav_path):
        with pytest.raises(ValueError):
            read_surveys([sav_path], ids=["a", "b"])

    def test_unsupported_file_skipped_with_warning(self, sav_path, tmp_path):
        bad = tmp_path / "notes.txt"
        bad.write_text("hello")
        with pytest.warns(UserWarning, match="Unsupported file type"):
            waves = read_surveys([bad, sav_path])
        assert [w.id for w in waves] == ["wave1"]

    def test_strict_raises(self, tmp_path):
        bad = tmp_path / "notes.txt"
        bad.write_text("hello")
        with pytest.raises(SurveyReadError):
            read_surveys([bad], strict=True)
        with pytest.raises(FileNotFoundError):
            read_surveys([tmp_path / "nope.sav"], strict=True)

    def test_custom_reader(self, tmp_path):
        path = tmp_path / "anything.dat"
        path.write_text("")

        def reader(p, id=None):
            return SurveyWave(id=id or "custom", data=pd.DataFrame({"a": [1]}))

        waves = read_surveys([path], reader=reader)
        assert waves[0].id == "custom"


class TestOtherReaders:

    def test_read_csv(self, tmp_path):
        path = tmp_path / "plain.csv"
        pd.DataFrame({"a": [1, 2], "b": ["x", "y"]}).to_csv(path, index=False)
        wave = read_csv(path)
        assert wave.id == "plain"
        assert wave.nrow == 2
        assert not wave.get_variable("a").is_labelled

    def test_add_rowid_keeps_existing(self):
        wave = SurveyWave(id="w", data=pd.DataFrame({"rowid": ["keep"], "a": [1]}))
        add_rowid(wave)
        assert list(wave.data["rowid"]) == ["keep"]
