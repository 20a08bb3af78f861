"""
Tests for wide -> long reshaping and multi-select splitting.
"""

import pandas as pd
import pytest

from survey_eda.tidy.reshape import (
    add_row_id,
    count_multiselect,
    select_columns,
    split_multi,
    split_multiselect,
    to_long,
)


class TestSelectColumns:

    def test_prefix(self, wide_df):
        assert select_columns(wide_df.columns, ["JobFactor"]) == ["JobFactorRemote", "JobFactorSalary"]

    def test_contains(self, wide_df):
        assert select_columns(wide_df.columns, ["Challenge"], match="contains") == ["WorkChallengeFrequencyPolitics"]

    def test_prefix_does_not_match_inside(self, wide_df):
        assert select_columns(wide_df.columns, ["Factor"]) == []

    def test_bad_mode(self, wide_df):
        with pytest.raises(ValueError, match="match must be one of"):
            select_columns(wide_df.columns, ["Job"], match="regex")


class TestToLong:

    def test_row_count_equals_non_missing_cells(self, wide_df):
        cols = ["JobFactorRemote", "JobFactorSalary", "WorkChallengeFrequencyPolitics"]
        long_df = to_long(wide_df, cols, id_col="respondent_id")
        assert len(long_df) == int(wide_df[cols].notna().sum().sum()) == 8
        assert list(long_df.columns) == ["respondent_id", "question", "response"]
        assert long_df["response"].notna().all()

    def test_values_are_not_invented(self, wide_df):
        long_df = to_long(wide_df, ["JobFactorSalary"], id_col="respondent_id", key_col="q", value_col="a")
        assert long_df["respondent_id"].tolist() == [3, 4]
        assert long_df["a"].tolist() == ["Somewhat important", "Very Important"]
        assert set(long_df["q"]) == {"JobFactorSalary"}

    def test_no_columns(self, wide_df):
        long_df = to_long(wide_df, [], id_col="respondent_id")
        assert long_df.empty
        assert list(long_df.columns) == ["respondent_id", "question", "response"]

    def test_unknown_columns(self, wide_df):
        with pytest.raises(KeyError, match="Identifier column"):
            to_long(wide_df, ["JobFactorRemote"], id_col="ID")
        with pytest.raises(KeyError, match="Columns not found"):
            to_long(wide_df, ["JobFactorNope"], id_col="respondent_id")


class TestAddRowId:

    def test_adds_one_based_id_first(self):
        out = add_row_id(pd.DataFrame({"a": ["x", "y"]}), "rid")
        assert list(out.columns) == ["rid", "a"]
        assert out["rid"].tolist() == [1, 2]

    def test_existing_id_kept(self, wide_df):
        assert add_row_id(wide_df, "respondent_id") is wide_df


class TestMultiselect:

    @pytest.fixture
    def multi_df(self):
        return pd.DataFrame({
            "id": [1, 2, 3],
            "LearningPlatformSelect": ["Kaggle,Blogs", None, " Blogs, Podcasts,"],
        })

    def test_split_multi(self):
        assert split_multi("a, b,,c ", ",") == ["a", "b", "c"]
        assert split_multi(float("nan"), ",") == []
        assert split_multi(None, ",") == []

    def test_one_row_per_selected_option(self, multi_df):
        out = split_multiselect(multi_df, "LearningPlatformSelect", ",", id_col="id")
        assert out["id"].tolist() == [1, 1, 3, 3]
        assert out["LearningPlatformSelect"].tolist() == ["Kaggle", "Blogs", "Blogs", "Podcasts"]

    def test_other_delimiter(self):
        df = pd.DataFrame({"langs": ["Python;R", "SQL"]})
        assert split_multiselect(df, "langs", ";")["langs"].tolist() == ["Python", "R", "SQL"]

    def test_counts(self, multi_df):
        counts = count_multiselect(multi_df, "LearningPlatformSelect")
        assert counts["option"].tolist() == ["Blogs", "Kaggle", "Podcasts"]
        assert counts["count"].tolist() == [2, 1, 1]

    def test_missing_column(self, multi_df):
        with pytest.raises(KeyError):
            split_multiselect(multi_df, "WorkToolsSelect")
