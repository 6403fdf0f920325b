import numpy as np
import pandas as pd
import pytest
from scipy.stats import norm

from referendum_survey.proportion import proportion_by_group, sample_proportion


def test_sample_proportion_wilson():
    df = pd.DataFrame({"referendum": [1.0, 1.0, 1.0, 0.0, np.nan]})
    res = sample_proportion(df)
    assert res["count"] == 3
    assert res["n"] == 4
    assert res["p"] == pytest.approx(0.75)
    assert res["se"] == pytest.approx(np.sqrt(0.75 * 0.25 / 4))
    assert res["ci_low"] < 0.75 < res["ci_high"]
    assert res["z"] == pytest.approx(1.0)
    assert res["p_value"] == pytest.approx(2 * norm.sf(1.0))


def test_sample_proportion_normal_interval():
    df = pd.DataFrame({"referendum": [1.0] * 30 + [0.0] * 70})
    res = sample_proportion(df, alpha=0.05, method="normal")
    half = norm.ppf(0.975) * np.sqrt(0.3 * 0.7 / 100)
    assert res["ci_low"] == pytest.approx(0.3 - half)
    assert res["ci_high"] == pytest.approx(0.3 + half)
    assert res["p_value"] < 0.05


def test_sample_proportion_no_answers():
    with pytest.raises(ValueError):
        sample_proportion(pd.DataFrame({"referendum": [np.nan, np.nan]}))


def test_proportion_by_gender(survey):
    by_gender = proportion_by_group(survey, "gender")
    assert set(by_gender["gender"]) == {"Male", "Female"}
    assert by_gender["n"].sum() <= survey["referendum"].notna().sum()
    assert by_gender["p"].between(0, 1).all()
