import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest


SURVEY_CSV = """\
GenderSelect,Age,LearningPlatformSelect,JobFactorRemote,JobFactorSalary,WorkChallengeFrequencyPolitics,WorkChallengeFrequencyTalent,WorkChallengesSelect
Female,,"Kaggle,Blogs",Very Important,,Often,Rarely,"Politics,Talent"
Male,,Kaggle,Not important,Somewhat important,,Most of the time,
Male,31,"Blogs, Podcasts,",Very Important,Very Important,Sometimes,Often,Talent
Female,45,,,Very Important,Often,Often,Politics
Male,unknown,"Kaggle,Online courses",Somewhat important,Not important,Rarely,,
"""


@pytest.fixture
def survey_csv(tmp_path):
    path = tmp_path / "survey.csv"
    path.write_text(SURVEY_CSV, encoding="utf-8")
    return path


@pytest.fixture
def wide_df():
    return pd.DataFrame({
        "respondent_id": [1, 2, 3, 4],
        "JobFactorRemote": ["Very Important", None, "Not important", "Very Important"],
        "JobFactorSalary": [None, None, "Somewhat important", "Very Important"],
        "WorkChallengeFrequencyPolitics": ["Often", "Rarely", None, "Most of the time"],
        "Country": ["Spain", "India", "Canada", None],
    })
