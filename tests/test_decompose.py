"""
Tests for (category, aspect) decomposition of compound question keys.
"""

import itertools

import pandas as pd
import pytest

from survey_eda.tidy.decompose import (
    DecompositionResult,
    UnmatchedKeyError,
    build_prefix_pattern,
    decompose,
    decompose_key,
)


def _long(keys):
    return pd.DataFrame({
        "respondent_id": range(1, len(keys) + 1),
        "question": keys,
        "response": ["x"] * len(keys),
    })


class TestDecomposeKey:

    def test_documented_example(self):
        pattern = build_prefix_pattern({"JobFactor", "WorkChallenge"})
        keys = ["JobFactorDiversity", "JobFactorRemote", "WorkChallengeTools"]
        assert [decompose_key(k, pattern) for k in keys] == [
            ("JobFactor", "Diversity"),
            ("JobFactor", "Remote"),
            ("WorkChallenge", "Tools"),
        ]

    def test_recovers_any_prefix_suffix_pair(self):
        prefixes = ["JobFactor", "LearningPlatformUsefulness", "WorkChallengeFrequency"]
        suffixes = ["", "Remote", "Dirty Data", "Q1_a", "JobFactor", "123"]
        pattern = build_prefix_pattern(prefixes)
        for prefix, suffix in itertools.product(prefixes, suffixes):
            assert decompose_key(prefix + suffix, pattern) == (prefix, suffix)

    def test_longest_prefix_wins(self):
        pattern = build_prefix_pattern(["WorkChallenge", "WorkChallengeFrequency"])
        assert decompose_key("WorkChallengeFrequencyPolitics", pattern) == ("WorkChallengeFrequency", "Politics")
        assert decompose_key("WorkChallengesSelect", pattern) == ("WorkChallenge", "sSelect")

    def test_empty_remainder_is_empty_string(self):
        pattern = build_prefix_pattern(["JobFactor"])
        assert decompose_key("JobFactor", pattern) == ("JobFactor", "")

    def test_unmatched_is_none(self):
        pattern = build_prefix_pattern(["JobFactor"])
        assert decompose_key("Country", pattern) is None
        assert decompose_key("xJobFactorRemote", pattern) is None
        assert decompose_key(None, pattern) is None

    def test_prefixes_are_literal(self):
        pattern = build_prefix_pattern(["Q1.(a)"])
        assert decompose_key("Q1.(a)x", pattern) == ("Q1.(a)", "x")
        assert decompose_key("Q1X(a)x", pattern) is None

    def test_no_prefixes(self):
        with pytest.raises(ValueError):
            build_prefix_pattern([])


class TestDecompose:

    def test_splits_and_orders_columns(self):
        result = decompose(_long(["JobFactorRemote", "WorkChallengeFrequencyPolitics"]),
                           ["JobFactor", "WorkChallengeFrequency"])
        assert isinstance(result, DecompositionResult)
        out = result.decomposed
        assert list(out.columns) == ["respondent_id", "question", "category", "aspect", "response"]
        assert out["category"].tolist() == ["JobFactor", "WorkChallengeFrequency"]
        assert out["aspect"].tolist() == ["Remote", "Politics"]
        assert result.unmatched_count == 0
        assert result.unmatched_keys() == []

    def test_unmatched_rows_are_kept_aside(self):
        long_df = _long(["JobFactorRemote", "Country", "Country", "Age"])
        result = decompose(long_df, ["JobFactor"])
        assert len(result.decomposed) == 1
        assert result.unmatched_count == 3
        assert result.unmatched_keys() == ["Age", "Country"]
        assert len(result.decomposed) + result.unmatched_count == len(long_df)

    def test_error_policy(self):
        with pytest.raises(UnmatchedKeyError) as excinfo:
            decompose(_long(["JobFactorRemote", "Country"]), ["JobFactor"], on_unmatched="error")
        assert excinfo.value.keys == ["Country"]
        assert isinstance(excinfo.value, ValueError)

    def test_error_policy_all_matched(self):
        result = decompose(_long(["JobFactorRemote"]), ["JobFactor"], on_unmatched="error")
        assert result.unmatched_count == 0

    def test_empty_aspect_kept(self):
        result = decompose(_long(["JobFactor"]), ["JobFactor"])
        assert result.decomposed["aspect"].tolist() == [""]

    def test_custom_columns(self):
        df = _long(["JobFactorRemote"]).rename(columns={"question": "key"})
        result = decompose(df, ["JobFactor"], key_col="key", category_col="block", aspect_col="item")
        assert result.decomposed[["block", "item"]].values.tolist() == [["JobFactor", "Remote"]]

    def test_bad_policy_and_key(self):
        with pytest.raises(ValueError, match="on_unmatched"):
            decompose(_long(["JobFactorRemote"]), ["JobFactor"], on_unmatched="log")
        with pytest.raises(KeyError):
            decompose(_long(["JobFactorRemote"]), ["JobFactor"], key_col="nope")
