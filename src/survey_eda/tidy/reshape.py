"""
Wide -> long reshaping for survey question blocks and multi-select fields.
"""

from typing import Iterable, List, Optional
import pandas as pd


MATCH_MODES = {"prefix", "contains"}


def select_columns(columns: Iterable[str], patterns: Iterable[str], match: str = "prefix") -> List[str]:
    """
    Pick column names starting with (`prefix`) or containing (`contains`) any
    of `patterns`, keeping the original column order.
    """
    if match not in MATCH_MODES:
        raise ValueError(f"match must be one of {sorted(MATCH_MODES)}, got {match!r}")
    patterns = [str(p) for p in patterns if p]
    if match == "prefix":
        return [c for c in columns if any(str(c).startswith(p) for p in patterns)]
    return [c for c in columns if any(p in str(c) for p in patterns)]


def add_row_id(df: pd.DataFrame, id_col: str = "respondent_id") -> pd.DataFrame:
    """Add a 1-based respondent id column when the export has none."""
    if id_col in df.columns:
        return df
    out = df.copy()
    out.insert(0, id_col, range(1, len(out) + 1))
    return out


def to_long(
    df: pd.DataFrame,
    columns: List[str],
    id_col: str,
    key_col: str = "question",
    value_col: str = "response",
) -> pd.DataFrame:
    """
    Melt `columns` into (id, key, value) rows and drop missing values.

    One output row per non-missing cell among `columns`; nothing is filled in.
    """
    if id_col not in df.columns:
        raise KeyError(f"Identifier column not found: {id_col}")
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(f"Columns not found: {missing}")

    if not columns:
        return pd.DataFrame(columns=[id_col, key_col, value_col])

    long_df = df[[id_col] + list(columns)].melt(
        id_vars=[id_col],
        value_vars=list(columns),
        var_name=key_col,
        value_name=value_col,
    )
    return long_df.dropna(subset=[value_col]).reset_index(drop=True)


# ---------------------------------------------------
# Multi-select fields
# ---------------------------------------------------

def split_multi(value, delimiter: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, float) and pd.isna(value):
        return []
    return [part.strip() for part in str(value).split(delimiter) if part.strip()]


def split_multiselect(
    df: pd.DataFrame,
    column: str,
    delimiter: str = ",",
    id_col: Optional[str] = None,
) -> pd.DataFrame:
    """
    One row per selected option of a multi-select column.

    Respondents who skipped the question contribute no rows.
    """
    if column not in df.columns:
        raise KeyError(f"Column not found: {column}")
    keep = [id_col, column] if id_col else [column]
    if id_col and id_col not in df.columns:
        raise KeyError(f"Identifier column not found: {id_col}")

    out = df[keep].copy()
    out[column] = out[column].map(lambda v: split_multi(v, delimiter))
    out = out.explode(column)
    return out.dropna(subset=[column]).reset_index(drop=True)


def count_multiselect(df: pd.DataFrame, column: str, delimiter: str = ",") -> pd.DataFrame:
    """Count how often each option of a multi-select column was chosen."""
    options = split_multiselect(df, column, delimiter)[column]
    counts = options.value_counts().rename_axis("option").reset_index(name="count")
    return counts.sort_values(["count", "option"], ascending=[False, True]).reset_index(drop=True)
