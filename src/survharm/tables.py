"""
Tabulation helpers for harmonized data: the group/summarise and
pivot-longer steps of a descriptive analysis.
"""

import re
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd


def weighted_group_means(
    df: pd.DataFrame,
    by: Union[str, Sequence[str]],
    value_cols: Iterable[str],
    weight: Optional[str] = None,
) -> pd.DataFrame:
    """
    Mean of each value column per group, skipping NaN.

    With a weight column the mean is sum(w * x) / sum(w) over rows where
    both x and w are present. A group with no usable rows gets NaN.
    Groups with a missing key are kept.
    """
    by = [by] if isinstance(by, str) else list(by)
    value_cols = list(value_cols)

    rows = []
    for keys, group in df.groupby(by, dropna=False, sort=True):
        keys = keys if isinstance(keys, tuple) else (keys,)
        row = dict(zip(by, keys))
        for col in value_cols:
            values = pd.to_numeric(group[col], errors="coerce")
            if weight is None:
                row[col] = values.mean()
                continue
            w = pd.to_numeric(group[weight], errors="coerce")
            usable = values.notna() & w.notna()
            total = w[usable].sum()
            row[col] = (values[usable] * w[usable]).sum() / total if total else np.nan
        rows.append(row)

    return pd.DataFrame(rows, columns=by + value_cols)


def pivot_longer(
    df: pd.DataFrame,
    cols: Union[str, Sequence[str]],
    names_to: str = "name",
    values_to: str = "value",
    id_cols: Optional[Sequence[str]] = None,
    names_prefix: Optional[str] = None,
) -> pd.DataFrame:
    """
    Reshape wide columns into name/value pairs.

    Args:
        df: Wide table
        cols: Column names, or a prefix selecting every column starting with it
        names_to: Name of the new column holding former column names
        values_to: Name of the new column holding the values
        id_cols: Columns kept as identifiers (default: all other columns)
        names_prefix: Prefix stripped from the former column names
    """
    if isinstance(cols, str):
        cols = [c for c in df.columns if str(c).startswith(cols)]
    cols: List[str] = list(cols)
    if id_cols is None:
        id_cols = [c for c in df.columns if c not in cols]

    long = df.melt(id_vars=list(id_cols), value_vars=cols, var_name=names_to, value_name=values_to)
    if names_prefix:
        long[names_to] = long[names_to].str.replace("^" + re.escape(names_prefix), "", regex=True)
    return long
