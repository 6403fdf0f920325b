import warnings

import pytest

from referendum_survey.eda import missingness_summary
from referendum_survey.imputation import run_multiple_imputation
from referendum_survey.models import coefficient_table, fit_logit, predicted_probabilities
from referendum_survey.plots import (
    plot_age_by_gender_box,
    plot_age_distribution,
    plot_gender_counts,
    plot_missingness,
    plot_odds_ratio_forest,
    plot_predicted_probability,
    plot_support_by_age_group,
    plot_vote_by_gender,
)
from referendum_survey.proportion import proportion_by_group, sample_proportion


def _assert_saved(png_path):
    assert png_path.exists()
    assert png_path.with_suffix(".pdf").exists()


@pytest.mark.parametrize(
    "plot",
    [plot_age_distribution, plot_gender_counts, plot_age_by_gender_box, plot_vote_by_gender],
)
def test_descriptive_plots(survey, tmp_path, plot):
    _assert_saved(plot(survey, tmp_path))


def test_missingness_and_support_plots(survey, tmp_path):
    _assert_saved(plot_missingness(missingness_summary(survey), tmp_path))
    by_age = proportion_by_group(survey, "age_group")
    _assert_saved(plot_support_by_age_group(by_age, sample_proportion(survey), tmp_path / "figs"))


def test_model_plots(survey, tmp_path):
    fit = fit_logit(survey)
    cc = coefficient_table(fit.result)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        mi = run_multiple_imputation(survey, m=3, seed=2)
    _assert_saved(plot_odds_ratio_forest(cc, mi.pooled, tmp_path))
    pred = predicted_probabilities(fit.result, ages=range(18, 90))
    _assert_saved(plot_predicted_probability(pred, tmp_path))
