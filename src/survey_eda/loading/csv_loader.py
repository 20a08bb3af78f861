"""
Survey CSV Loader

Purpose:
- Read a survey export with every cell as text
- Guess each column's type from the first `guess_rows` rows
- Coerce the whole column to the guessed type, best effort
- Report every cell (and every over-long line) that did not fit,
  instead of aborting the load

A column whose first rows are all missing is guessed `logical`. On wide
survey exports this is the usual reason a numeric column comes back full of
problems; reload with a larger `guess_rows` (or `None` for the whole column).
"""

import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

import pandas as pd


DEFAULT_NA_VALUES = ["", "NA"]

LOGICAL_MAP = {
    "TRUE": True, "True": True, "true": True, "T": True,
    "FALSE": False, "False": False, "false": False, "F": False,
}

COLUMN_TYPES = ("logical", "numeric", "text")

# C engine: "Skipping line 7: expected 3 fields, saw 4"
# Python engine: "Skipping line 7: Expected 3 fields in line 7, saw 4"
BAD_LINE_PATTERN = re.compile(r"Skipping line (\d+): [Ee]xpected (\d+) fields(?: in line \d+)?, saw (\d+)")


class ParseProblem(NamedTuple):
    """
    One value or line that did not fit.

    Cell problems carry the 0-based row of `LoadResult.data` (its index), so
    `data.loc[row, column]` is the cell that became missing. Once an
    over-long line has been skipped, later rows no longer map to file line
    minus two. Skipped lines carry their 1-based file line and no column.
    """
    row: Optional[int]
    column: Optional[str]
    expected: str
    actual: str


@dataclass
class LoadResult:
    data: pd.DataFrame
    column_types: Dict[str, str] = field(default_factory=dict)
    problems: List[ParseProblem] = field(default_factory=list)

    @property
    def has_problems(self) -> bool:
        return bool(self.problems)

    def problems_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.problems, columns=list(ParseProblem._fields))

    def problem_columns(self) -> List[str]:
        seen = []
        for p in self.problems:
            if p.column is not None and p.column not in seen:
                seen.append(p.column)
        return seen


def infer_column_type(values: pd.Series, guess_rows: Optional[int] = None) -> str:
    """
    Guess `logical`, `numeric` or `text` from the first `guess_rows` values.

    Missing values are ignored; an all-missing sample is guessed `logical`.
    """
    sample = values if guess_rows is None else values.iloc[:guess_rows]
    sample = sample.dropna()
    if sample.empty:
        return "logical"
    if sample.isin(list(LOGICAL_MAP)).all():
        return "logical"
    if pd.to_numeric(sample, errors="coerce").notna().all():
        return "numeric"
    return "text"


def coerce_column(values: pd.Series, column_type: str):
    """
    Coerce raw strings to `column_type`.

    Returns (coerced, failed) where `failed` flags non-missing cells that
    could not be converted and are now missing.
    """
    if column_type == "numeric":
        coerced = pd.to_numeric(values, errors="coerce")
    elif column_type == "logical":
        coerced = values.map(LOGICAL_MAP).astype("boolean")
    elif column_type == "text":
        return values, pd.Series(False, index=values.index)
    else:
        raise ValueError(f"Unknown column type {column_type!r}; expected one of {COLUMN_TYPES}.")
    failed = values.notna() & coerced.isna()
    return coerced, failed


def _read_raw(path: Path, na_values: List[str], encoding: str):
    bad_lines = []
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        df = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            na_values=na_values,
            encoding=encoding,
            on_bad_lines="warn",
        )

    for w in caught:
        if issubclass(w.category, pd.errors.ParserWarning):
            for m in BAD_LINE_PATTERN.finditer(str(w.message)):
                line_no, expected, saw = m.groups()
                bad_lines.append(ParseProblem(int(line_no), None, f"{expected} fields", f"{saw} fields"))
        else:
            warnings.warn(w.message, w.category)

    return df, bad_lines


def load_survey(
    path,
    guess_rows: Optional[int] = 1000,
    na_values: Optional[List[str]] = None,
    encoding: str = "utf-8",
) -> LoadResult:
    """
    Load a survey CSV with sampled type inference.

    Args:
        path: CSV file with a header row
        guess_rows: Rows sampled per column to guess its type (None = all rows)
        na_values: Cell values read as missing (default: "" and "NA")
        encoding: File encoding

    Returns:
        LoadResult with the typed table, the guessed type per column and the
        list of ParseProblem(row, column, expected, actual). Cell problems use
        the 0-based data row; skipped lines use the 1-based file line.
    """
    if guess_rows is not None and guess_rows < 1:
        raise ValueError(f"guess_rows must be a positive integer or None, got {guess_rows!r}.")

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Input CSV not found: {p}")
    if not p.is_file():
        raise FileNotFoundError(f"Input CSV is not a file: {p}")

    na_values = DEFAULT_NA_VALUES if na_values is None else list(na_values)
    try:
        raw, problems = _read_raw(p, na_values, encoding)
    except pd.errors.EmptyDataError as exc:
        raise ValueError(f"Input CSV is empty: {p}") from exc
    except UnicodeDecodeError as exc:
        raise ValueError(f"Input CSV {p} is not valid {encoding} text ({exc.reason} at byte {exc.start}); set loader.encoding.") from exc
    except OSError as exc:
        raise FileNotFoundError(f"Input CSV could not be read: {p} ({exc.strerror or exc})") from exc

    columns = {}
    column_types = {}
    for col in raw.columns:
        column_type = infer_column_type(raw[col], guess_rows)
        coerced, failed = coerce_column(raw[col], column_type)
        columns[col] = coerced
        column_types[col] = column_type
        for row in failed[failed].index:
            problems.append(ParseProblem(int(row), col, column_type, str(raw.at[row, col])))
    data = pd.DataFrame(columns, index=raw.index)

    if problems:
        n_cols = len({pr.column for pr in problems if pr.column is not None})
        warnings.warn(
            f"{len(problems)} parsing problems in {p.name} ({n_cols} columns affected); "
            "inspect LoadResult.problems or reload with a larger guess_rows.",
            UserWarning,
        )

    return LoadResult(data=data, column_types=column_types, problems=problems)
