"""
Label normalization helpers.

Survey waves rarely spell the same thing the same way: "Don't know",
"DK", "Dont know/Haven't heard enough" all mean one missing category,
and "Q52a. Trust president" and "Q43A Trust the President" name one
question. These functions rewrite labels onto a canonical form with
regular expressions so that they can be compared across waves.

Every function accepts a single string, a list or a pandas Series and
returns the same shape. Missing input (None / NaN) is passed through.
"""

import re
from typing import Any, Callable

import pandas as pd

from survharm.model import is_nan


_APOSTROPHE_RE = re.compile(r"['’`]")
_NON_WORD_RE = re.compile(r"[\W_]+")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")
# Leading question numbers such as "Q52a.", "q43A:", "Q1)"
_QUESTION_CODE_RE = re.compile(r"^\s*q\d+[a-z]?\d*\s*[\.\:\)]?\s+")

_MISSING_LABELS = [
    (re.compile(r"^(do not|dont|don't) know|^dk\b|^d\.k\.|^do_not_know"), "do_not_know"),
    (re.compile(r"^refus|^declined|^no answer"), "declined"),
    (re.compile(r"^not applicable|^inap|^missing|^n/a$"), "inap"),
]


def _apply(func: Callable[[str], str], x: Any) -> Any:
    if isinstance(x, str):
        return func(x)
    if isinstance(x, pd.Series):
        return x.map(lambda v: v if is_nan(v) else func(str(v)))
    if isinstance(x, (list, tuple)):
        return [v if is_nan(v) else func(str(v)) for v in x]
    if is_nan(x):
        return x
    return func(str(x))


def _label_normalize(text: str) -> str:
    text = text.strip().lower()
    text = text.replace("&", " and ").replace("%", " pct ").replace("+", " plus ")
    text = _APOSTROPHE_RE.sub("", text)
    text = _NON_WORD_RE.sub("_", text)
    return text.strip("_")


def _var_label_normalize(text: str) -> str:
    text = text.strip().lower()
    text = _QUESTION_CODE_RE.sub("", text)
    text = text.replace("&", " and ").replace("%", " pct ")
    text = _APOSTROPHE_RE.sub("", text)
    text = _PUNCTUATION_RE.sub(" ", text)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip()


def _val_label_normalize(text: str) -> str:
    low = _APOSTROPHE_RE.sub("'", text.strip().lower())
    for pattern, canonical in _MISSING_LABELS:
        if pattern.search(low):
            return canonical
    return _label_normalize(text)


def label_normalize(x: Any) -> Any:
    """Lowercase snake_case form of a label.

    >>> label_normalize("Trust & Confidence (%)")
    'trust_and_confidence_pct'
    """
    return _apply(_label_normalize, x)


def var_label_normalize(x: Any) -> Any:
    """Normalize variable labels: drop question codes and punctuation, keep spaces.

    >>> var_label_normalize("Q52a. Trust president")
    'trust president'
    """
    return _apply(_var_label_normalize, x)


def val_label_normalize(x: Any) -> Any:
    """Normalize value labels, mapping the usual missing categories to
    ``do_not_know``, ``declined`` and ``inap``.

    >>> val_label_normalize("Don't know/Haven't heard enough")
    'do_not_know'
    """
    return _apply(_val_label_normalize, x)


__all__ = [
    "label_normalize",
    "var_label_normalize",
    "val_label_normalize",
]
