"""
Group counts and 0/1-recoded percentages over long survey tables.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from ..loading.csv_loader import LOGICAL_MAP


class UnknownLabelError(ValueError):
    """Raised when a label is not in a strict RecodeMap."""


def label_key(label) -> str:
    """
    Canonical text for a recode label or a typed cell.

    Loaded answers arrive as 1.0 or True while configured labels are "1" or
    "TRUE"; both sides go through this before lookup.
    """
    if isinstance(label, (bool, np.bool_)):
        return "TRUE" if label else "FALSE"
    text = str(label)
    if text in LOGICAL_MAP:
        return "TRUE" if LOGICAL_MAP[text] else "FALSE"
    try:
        number = float(text)
    except ValueError:
        return text
    if not math.isfinite(number):
        return text
    return str(int(number)) if number.is_integer() else repr(number)


@dataclass(frozen=True)
class RecodeMap:
    """
    Explicit label -> {0, 1} recode.

    `default` is the code for labels not in `mapping`; None makes such labels
    an error, so every answer option has to be listed.
    """
    mapping: Dict[str, int] = field(default_factory=dict)
    default: Optional[int] = 0

    def __post_init__(self):
        object.__setattr__(self, "mapping", {label_key(k): v for k, v in self.mapping.items()})
        bad = {k: v for k, v in self.mapping.items() if v not in (0, 1)}
        if bad:
            raise ValueError(f"Recode values must be 0 or 1: {bad}")
        if self.default not in (0, 1, None):
            raise ValueError(f"Recode default must be 0, 1 or None, got {self.default!r}")

    @classmethod
    def from_labels(cls, positive: Iterable[str], negative: Iterable[str] = (), default: Optional[int] = 0):
        positive = list(positive)
        mapping = {label_key(label): 0 for label in negative}
        overlap = [str(label) for label in positive if label_key(label) in mapping]
        if overlap:
            raise ValueError(f"Labels listed as both positive and negative: {overlap}")
        mapping.update({label_key(label): 1 for label in positive})
        return cls(mapping=mapping, default=default)

    @property
    def positive_labels(self) -> List[str]:
        return sorted(k for k, v in self.mapping.items() if v == 1)

    def code(self, label) -> int:
        key = label_key(label)
        if key in self.mapping:
            return self.mapping[key]
        if self.default is None:
            raise UnknownLabelError(f"Label {label!r} is not in the recode map (known: {sorted(self.mapping)})")
        return self.default


def _sort_key(s: pd.Series) -> pd.Series:
    # long tables can mix numbers and labels in one column
    if pd.api.types.is_numeric_dtype(s) or pd.api.types.is_bool_dtype(s):
        return s
    return s.astype(str)


def count_responses(df: pd.DataFrame, group_cols: List[str], value_col: Optional[str] = None) -> pd.DataFrame:
    """
    Rows per group as `count`.

    When `value_col` is given, rows with a missing value are excluded first.
    """
    missing = [c for c in group_cols if c not in df.columns]
    if missing:
        raise KeyError(f"Group columns not found: {missing}")
    data = df.dropna(subset=[value_col]) if value_col else df
    counts = data.groupby(list(group_cols), dropna=False, observed=True, sort=False).size().reset_index(name="count")
    return counts.sort_values(list(group_cols), kind="stable", key=_sort_key).reset_index(drop=True)


def recode_binary(series: pd.Series, recode: RecodeMap) -> pd.Series:
    """0/1 codes for `series`; missing values stay missing."""
    return series.map(lambda v: pd.NA if pd.isna(v) else recode.code(v)).astype("Int64")


def percent_positive(
    df: pd.DataFrame,
    group_cols: List[str],
    value_col: str,
    recode: RecodeMap,
) -> pd.DataFrame:
    """
    Share of positively recoded answers per group.

    Returns group columns plus `n` (non-missing answers) and `pct` (0..1),
    highest share first.
    """
    missing = [c for c in list(group_cols) + [value_col] if c not in df.columns]
    if missing:
        raise KeyError(f"Columns not found: {missing}")

    data = df.dropna(subset=[value_col]).copy()
    data["_code"] = recode_binary(data[value_col], recode).astype(float)
    out = (
        data.groupby(list(group_cols), dropna=False, observed=True, sort=False)
        .agg(n=("_code", "size"), pct=("_code", "mean"))
        .reset_index()
    )
    return out.sort_values(
        ["pct"] + list(group_cols), ascending=[False] + [True] * len(group_cols), kind="stable", key=_sort_key
    ).reset_index(drop=True)
