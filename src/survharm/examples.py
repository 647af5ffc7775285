"""
Example survey waves for demos and tests.

Builds three small Afrobarometer-style rounds asking about trust in
institutions. The rounds differ the way real waves do:
    - question numbers change (q59a, q52a, q43a)
    - the interview date variable is renamed in round 7
    - round 5 has no parliament question
    - missing-value codes and their wording differ
"""
import pandas as pd

from survharm.io import add_rowid
from survharm.model import LabelledVariable, SurveyWave


COUNTRY_LABELS = {1.0: "Benin", 2.0: "Botswana"}

TRUST_LABELS_R5 = {
    -1.0: "Missing",
    0.0: "Not at all",
    1.0: "Just a little",
    2.0: "Somewhat",
    3.0: "A lot",
    9.0: "Don't know/Haven't heard enough",
    98.0: "Refused to answer",
}

TRUST_LABELS_R7 = {
    -1.0: "Missing",
    0.0: "Not at all",
    1.0: "Just a little",
    2.0: "Somewhat",
    3.0: "A lot",
    8.0: "Refused",
    9.0: "Don't know",
}


def _trust(name: str, label: str, labels: dict, na_values: list) -> LabelledVariable:
    return LabelledVariable(name=name, label=label, labels=dict(labels), na_values=list(na_values))


def _common(name_date: str) -> dict:
    return {
        "respno": LabelledVariable(name="respno", label="Respondent number"),
        "country": LabelledVariable(name="country", label="Country", labels=dict(COUNTRY_LABELS)),
        name_date: LabelledVariable(name=name_date, label="Date of interview"),
        "withinwt": LabelledVariable(name="withinwt", label="Within-country weighting factor"),
    }


def build_round5() -> SurveyWave:
    data = pd.DataFrame({
        "respno": ["BEN0001", "BEN0002", "BEN0003", "BOT0001", "BOT0002", "BOT0003"],
        "country": [1.0, 1.0, 1.0, 2.0, 2.0, 2.0],
        "dateintr": ["2011-03-01", "2011-03-01", "2011-03-02", "2012-05-02", "2012-05-02", "2012-05-03"],
        "withinwt": [1.0, 1.0, 2.0, 1.0, 1.0, 1.0],
        "q59a": [3.0, 2.0, 9.0, 0.0, 1.0, -1.0],
    })
    variables = _common("dateintr")
    variables["q59a"] = _trust("q59a", "Q59a. Trust president", TRUST_LABELS_R5, [-1, 9, 98])
    return SurveyWave(id="Afrobarometer_R5", data=data, filename="afrobarometer_r5.sav", variables=variables)


def build_round6() -> SurveyWave:
    data = pd.DataFrame({
        "respno": ["BEN0001", "BEN0002", "BOT0001", "BOT0002"],
        "country": [1.0, 1.0, 2.0, 2.0],
        "dateintr": ["2014-06-01", "2014-06-01", "2014-06-02", "2014-06-03"],
        "withinwt": [1.0, 3.0, 1.0, 1.0],
        "q52a": [3.0, 1.0, 2.0, 98.0],
        "q52b": [0.0, 0.0, 3.0, 3.0],
    })
    variables = _common("dateintr")
    variables["q52a"] = _trust("q52a", "Q52a. Trust president", TRUST_LABELS_R5, [-1, 9, 98])
    variables["q52b"] = _trust("q52b", "Q52b. Trust parliament", TRUST_LABELS_R5, [-1, 9, 98])
    return SurveyWave(id="Afrobarometer_R6", data=data, filename="afrobarometer_r6.sav", variables=variables)


def build_round7() -> SurveyWave:
    data = pd.DataFrame({
        "respno": ["BEN0001", "BOT0001", "BEN0002", "BOT0002"],
        "country": [1.0, 2.0, 1.0, 2.0],
        "dateofinterview": ["2018-01-15", "2018-02-20", "2018-01-16", "2018-02-21"],
        "withinwt": [1.0, 1.0, 1.0, 1.0],
        "q43a": [2.0, 3.0, 8.0, 9.0],
        "q43b": [1.0, -1.0, 2.0, 0.0],
    })
    variables = _common("dateofinterview")
    variables["q43a"] = _trust("q43a", "Q43A Trust the President", TRUST_LABELS_R7, [-1, 8, 9])
    variables["q43b"] = _trust("q43b", "Q43B Trust Parliament", TRUST_LABELS_R7, [-1, 8, 9])
    return SurveyWave(id="Afrobarometer_R7", data=data, filename="afrobarometer_r7.sav", variables=variables)


def build_example_waves():
    """Rounds 5, 6 and 7, each with a rowid column as read_surveys would add."""
    return [add_rowid(build()) for build in (build_round5, build_round6, build_round7)]
