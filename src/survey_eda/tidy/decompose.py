"""
Compound question key decomposition.

Survey exports name grid questions by gluing a category onto an aspect,
e.g. `JobFactorRemote` or `WorkChallengeFrequencyPolitics`. Given the known
categories, each key is split into (category, aspect). Keys with no known
category are returned separately rather than silently lost.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Tuple

import pandas as pd


UNMATCHED_POLICIES = {"drop", "error"}


class UnmatchedKeyError(ValueError):
    """Raised when keys match no known category and the policy is `error`."""

    def __init__(self, keys: List[str]):
        self.keys = list(keys)
        preview = ", ".join(self.keys[:10])
        more = f" (+{len(self.keys) - 10} more)" if len(self.keys) > 10 else ""
        super().__init__(f"{len(self.keys)} keys match no known category: {preview}{more}")


@dataclass
class DecompositionResult:
    decomposed: pd.DataFrame
    unmatched: pd.DataFrame

    @property
    def unmatched_count(self) -> int:
        return len(self.unmatched)

    def unmatched_keys(self, key_col: str = "question") -> List[str]:
        if self.unmatched.empty:
            return []
        return sorted(self.unmatched[key_col].astype(str).unique())


def build_prefix_pattern(prefixes: Iterable[str]) -> Pattern:
    """
    Compile `^(p1|p2|...)(.*)$` for the known category prefixes.

    Longest prefixes are tried first, so `WorkChallengeFrequency` wins over
    `WorkChallenge` for `WorkChallengeFrequencyPolitics`.
    """
    unique = sorted({str(p) for p in prefixes if p}, key=lambda p: (-len(p), p))
    if not unique:
        raise ValueError("At least one category prefix is required.")
    alternation = "|".join(re.escape(p) for p in unique)
    return re.compile(rf"^({alternation})(.*)$", re.DOTALL)


def decompose_key(key, pattern: Pattern) -> Optional[Tuple[str, str]]:
    """(category, aspect) for a key, or None when no category matches."""
    if key is None:
        return None
    m = pattern.match(str(key))
    if not m:
        return None
    return m.group(1), m.group(2)


def decompose(
    long_df: pd.DataFrame,
    prefixes: Iterable[str],
    key_col: str = "question",
    category_col: str = "category",
    aspect_col: str = "aspect",
    on_unmatched: str = "drop",
) -> DecompositionResult:
    """
    Split `key_col` of a long table into `category_col` / `aspect_col`.

    Rows whose key matches no prefix go to `unmatched`; with
    `on_unmatched="error"` they raise UnmatchedKeyError instead. An empty
    aspect (key equal to a prefix) is kept as "".
    """
    if on_unmatched not in UNMATCHED_POLICIES:
        raise ValueError(f"on_unmatched must be one of {sorted(UNMATCHED_POLICIES)}, got {on_unmatched!r}")
    if key_col not in long_df.columns:
        raise KeyError(f"Key column not found: {key_col}")

    pattern = build_prefix_pattern(prefixes)
    parts = long_df[key_col].astype(str).str.extract(pattern)
    matched = parts[0].notna()

    unmatched = long_df.loc[~matched].reset_index(drop=True)
    if on_unmatched == "error" and not unmatched.empty:
        raise UnmatchedKeyError(sorted(unmatched[key_col].astype(str).unique()))

    decomposed = long_df.loc[matched].copy()
    decomposed.insert(decomposed.columns.get_loc(key_col) + 1, category_col, parts.loc[matched, 0])
    decomposed.insert(decomposed.columns.get_loc(category_col) + 1, aspect_col, parts.loc[matched, 1].fillna(""))

    return DecompositionResult(decomposed=decomposed.reset_index(drop=True), unmatched=unmatched)
