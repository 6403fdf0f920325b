import numpy as np
import pandas as pd
import pytest

from referendum_survey.eda import (
    clean_age,
    clean_survey,
    describe_sample,
    load_data,
    missingness_summary,
    n_complete_cases,
    recode_gender,
    recode_referendum,
    run_statistical_tests,
)


def test_recode_referendum_labels():
    raw = pd.Series(["Yes", "no", " Y ", "1", 0, "Don't know", None, "maybe"])
    with pytest.warns(UserWarning, match="1 unrecognised referendum"):
        out = recode_referendum(raw)
    expected = [1.0, 0.0, 1.0, 1.0, 0.0, np.nan, np.nan, np.nan]
    np.testing.assert_array_equal(out.values, expected)


def test_recode_gender_other_answers_missing():
    raw = pd.Series(["Male", "F", "woman", "M", "non-binary", np.nan])
    with pytest.warns(UserWarning, match="unrecognised gender"):
        out = recode_gender(raw)
    assert out.iloc[:4].tolist() == ["Male", "Female", "Female", "Male"]
    assert out.iloc[4:].isna().all()


def test_clean_age_drops_junk_and_out_of_range():
    raw = pd.Series(["34", "17", "abc", "101", 45, None], dtype=object)
    with pytest.warns(UserWarning):
        out = clean_age(raw)
    np.testing.assert_array_equal(out.values, [34.0, np.nan, np.nan, np.nan, 45.0, np.nan])


def test_clean_survey_requires_columns():
    with pytest.raises(ValueError, match="missing required columns"):
        clean_survey(pd.DataFrame({"referendum": ["Yes"], "age": [30]}))
    with pytest.raises(ValueError, match="no rows"):
        clean_survey(pd.DataFrame(columns=["referendum", "age", "gender"]))


def test_load_data(small_csv):
    df = load_data(small_csv)
    np.testing.assert_array_equal(df["referendum"].values, [1.0, 0.0, np.nan, np.nan])
    np.testing.assert_array_equal(df["age"].values, [25.0, np.nan, 40.0, 70.0])
    assert df["female"].tolist() == [0.0, 1.0, 1.0, 0.0]
    assert df["vote"].iloc[0] == "Yes"
    assert df["age_group"].iloc[0] == "25-34"
    assert df["age_group"].iloc[2] == "35-44"
    assert df["age_group"].iloc[3] == "65+"


def test_missingness_summary(small_csv):
    df = load_data(small_csv)
    summary = missingness_summary(df).set_index("variable")
    assert summary.loc["referendum", "n_missing"] == 2
    assert summary.loc["age", "n_missing"] == 1
    assert summary.loc["gender", "n_missing"] == 0
    assert summary.loc["any (complete cases)", "n_observed"] == 1
    assert n_complete_cases(df) == 1


def test_describe_sample(small_csv):
    desc = describe_sample(load_data(small_csv))
    ages = desc["age_by_gender"].set_index("gender")
    assert desc["n"] == 4
    assert ages.loc["All", "n"] == 3
    assert ages.loc["Male", "n"] == 2
    assert ages.loc["Female", "mean"] == pytest.approx(40.0)
    assert desc["gender_counts"]["n"].sum() == 4
    assert list(desc["age_group_counts"]["age_group"])[0] == "18-24"


def test_statistical_tests_on_simulated(survey):
    tests = run_statistical_tests(survey)
    assert list(tests["test"]) == ["Chi-square", "Chi-square", "Welch t", "Mann-Whitney U"]
    assert tests["p"].between(0, 1).all()


def test_statistical_tests_skip_small_groups(small_csv):
    with pytest.warns(UserWarning, match="Age-by-vote tests skipped"):
        tests = run_statistical_tests(load_data(small_csv))
    assert "Welch t" not in tests["test"].tolist()
