import numpy as np
import pandas as pd
import pytest

from referendum_survey.eda import n_complete_cases
from referendum_survey.models import (
    coefficient_table,
    fit_logit,
    formula_variables,
    predicted_probabilities,
)


def test_formula_variables_exact_names():
    cols = ["referendum", "age", "age_group", "female", "gender"]
    assert formula_variables("referendum ~ age + female", cols) == ["referendum", "age", "female"]


def test_complete_case_fit(large_survey):
    fit = fit_logit(large_survey)
    assert fit.converged
    assert fit.n == n_complete_cases(large_survey)
    table = coefficient_table(fit.result)
    assert list(table["term"]) == ["Intercept", "age", "female"]
    age = table.set_index("term").loc["age"]
    assert age["estimate"] < 0
    assert age["odds_ratio"] == pytest.approx(np.exp(age["estimate"]))
    assert age["or_low"] < age["odds_ratio"] < age["or_high"]
    assert (table["se"] > 0).all()


def test_perfect_separation_is_flagged():
    age = np.arange(20, 80, dtype=float)
    df = pd.DataFrame({
        "referendum": (age > 50).astype(float),
        "age": age,
        "female": np.tile([0.0, 1.0], len(age) // 2),
    })
    with pytest.warns(UserWarning, match="did not converge"):
        fit = fit_logit(df)
    assert not fit.converged


def test_single_outcome_value_is_flagged():
    df = pd.DataFrame({"referendum": [1.0] * 10, "age": np.arange(10) + 30.0, "female": [0.0, 1.0] * 5})
    with pytest.warns(UserWarning, match="single value"):
        fit = fit_logit(df)
    assert not fit.converged
    assert fit.result is None
    assert fit.n == 10


def test_no_complete_rows_rejected():
    df = pd.DataFrame({"referendum": [1.0, np.nan], "age": [np.nan, 30.0], "female": [0.0, 1.0]})
    with pytest.raises(ValueError, match="No complete rows"):
        fit_logit(df)


def test_predicted_probabilities(large_survey):
    fit = fit_logit(large_survey)
    pred = predicted_probabilities(fit.result, ages=[20, 40, 60, 80])
    assert len(pred) == 8
    assert set(pred["gender"]) == {"Male", "Female"}
    assert ((pred["ci_low"] <= pred["p_yes"]) & (pred["p_yes"] <= pred["ci_high"])).all()
    male = pred[pred["gender"] == "Male"]["p_yes"].values
    assert np.all(np.diff(male) < 0)


def test_predicted_probabilities_interval_level(large_survey):
    fit = fit_logit(large_survey)
    wide = predicted_probabilities(fit.result, ages=[30, 60], alpha=0.01)
    narrow = predicted_probabilities(fit.result, ages=[30, 60], alpha=0.2)
    np.testing.assert_allclose(wide["p_yes"], narrow["p_yes"])
    assert ((wide["ci_high"] - wide["ci_low"]) > (narrow["ci_high"] - narrow["ci_low"])).all()
