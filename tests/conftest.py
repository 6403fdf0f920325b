import warnings

import pytest

from referendum_survey.eda import clean_survey
from referendum_survey.simulate import simulate_survey


@pytest.fixture(scope="session")
def raw_survey():
    return simulate_survey(n=600, seed=7)


@pytest.fixture(scope="session")
def survey(raw_survey):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        return clean_survey(raw_survey)


@pytest.fixture(scope="session")
def large_survey():
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        return clean_survey(simulate_survey(n=2000, seed=11))


@pytest.fixture
def small_csv(tmp_path):
    path = tmp_path / "survey.csv"
    path.write_text(
        "referendum,age,gender\n"
        "Yes,25,Male\n"
        "No,N/A,Female\n"
        ",40,F\n"
        "Don't know,70,M\n"
    )
    return path
