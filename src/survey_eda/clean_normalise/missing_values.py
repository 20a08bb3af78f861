"""
Missing Value Normalisation & Audit

Purpose:
- Turn blank / placeholder answers into real missing values
- Summarise missingness per column for the EDA report

Run this after loading and before any reshaping, so that placeholders never
reach the counts.
"""

from typing import Iterable, Optional
import pandas as pd


# ============================================================
# NORMALISATION
# ============================================================

def normalise_missing(df: pd.DataFrame, extra_tokens: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """
    Replace whitespace-only strings (and any `extra_tokens`, matched after
    stripping, case-insensitive) with missing values in text columns.

    Numeric and logical columns are returned unchanged.
    """
    tokens = {str(t).strip().lower() for t in (extra_tokens or [])}
    out = df.copy()
    for col in out.columns:
        s = out[col]
        if not (pd.api.types.is_object_dtype(s) or pd.api.types.is_string_dtype(s)):
            continue
        stripped = s.where(s.isna(), s.astype(str).str.strip())
        blank = stripped.fillna("x").eq("")
        if tokens:
            blank |= stripped.str.lower().isin(tokens)
        out[col] = s.mask(blank)
    return out


# ============================================================
# AUDIT
# ============================================================

def missing_summary(df: pd.DataFrame, columns: Optional[list] = None) -> pd.DataFrame:
    """
    Count missing values per column.

    Returns a frame with column, total_rows, missing_count, missing_pct,
    sorted by missing_count (descending), ties in column order.
    """
    columns = list(df.columns) if columns is None else list(columns)
    total_rows = len(df)
    rows = []
    for col in columns:
        if col not in df.columns:
            raise KeyError(f"Column not found: {col}")
        missing = int(df[col].isna().sum())
        rows.append({
            "column": col,
            "total_rows": total_rows,
            "missing_count": missing,
            "missing_pct": round(missing / total_rows, 4) if total_rows else 0.0,
        })

    summary = pd.DataFrame(rows, columns=["column", "total_rows", "missing_count", "missing_pct"])
    return summary.sort_values("missing_count", ascending=False, kind="stable").reset_index(drop=True)
