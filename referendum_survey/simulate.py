"""
Synthetic referendum responses in the raw survey format.

The vote follows a logistic model in age and gender, and whether the vote is
recorded depends on age (missing at random given age), so complete-case and
multiply-imputed estimates can differ in a realistic way. A small share of
messy labels ("Y", "woman", "Don't know", "abc") exercises the recoding.
"""
import numpy as np
import pandas as pd
from scipy.special import expit

from .survey_utils import AGE_COL, GENDER_COL, RANDOM_SEED, REFERENDUM_COL

# True log-odds of a Yes vote
TRUE_INTERCEPT = 1.2
TRUE_AGE = -0.025
TRUE_FEMALE = 0.4


def simulate_survey(n=800, seed=RANDOM_SEED, missing_rate=0.2, messy_rate=0.03):
    """Return a raw survey DataFrame with columns respondent_id, referendum, age, gender."""
    if n <= 0:
        raise ValueError("n must be positive")
    rng = np.random.default_rng(seed)

    age = np.clip(np.round(rng.normal(47, 16, n)), 18, 95)
    female = rng.binomial(1, 0.52, n)
    p_yes = expit(TRUE_INTERCEPT + TRUE_AGE * age + TRUE_FEMALE * female)
    yes = rng.binomial(1, p_yes)

    referendum = np.where(yes == 1, "Yes", "No").astype(object)
    gender = np.where(female == 1, "Female", "Male").astype(object)
    age_raw = age.astype(object)

    # Younger respondents skip the vote question more often
    p_skip = np.clip(missing_rate * 2 * expit(-(age - 45) / 10), 0, 0.95)
    skip = rng.random(n) < p_skip
    referendum[skip] = rng.choice(["", "Don't know", "Prefer not to say"], size=skip.sum())

    miss_age = rng.random(n) < missing_rate / 4
    age_raw[miss_age] = np.nan
    miss_gender = rng.random(n) < missing_rate / 4
    gender[miss_gender] = np.nan

    # Alternate spellings that the recoding has to understand
    messy = rng.random(n) < messy_rate
    referendum[messy & (yes == 1) & ~skip] = "Y"
    referendum[messy & (yes == 0) & ~skip] = "n"
    gender[messy & (female == 1) & ~miss_gender] = "woman"
    gender[messy & (female == 0) & ~miss_gender] = "M"
    junk = rng.random(n) < messy_rate / 3
    age_raw[junk] = "abc"

    return pd.DataFrame(
        {
            "respondent_id": np.arange(1, n + 1),
            REFERENDUM_COL: referendum,
            AGE_COL: age_raw,
            GENDER_COL: gender,
        }
    )
