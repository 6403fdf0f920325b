"""
Load, clean and describe the referendum survey.

Recoding:
- referendum: Yes -> 1, No -> 0, don't know / refused / blank -> missing
- gender: Male / Female; other answers -> missing (counted in a warning)
- age: numeric, outside [AGE_MIN, AGE_MAX] -> missing
Derived: female indicator, vote label (Yes/No), age_group bins.
"""
import warnings

import numpy as np
import pandas as pd
from scipy.stats import chi2_contingency, mannwhitneyu, ttest_ind

from .survey_utils import (
    AGE_BINS,
    AGE_COL,
    AGE_GROUP_COL,
    AGE_LABELS,
    AGE_MAX,
    AGE_MIN,
    FEMALE_COL,
    FEMALE_LABELS,
    GENDER_COL,
    MALE_LABELS,
    NA_VALUES,
    NO_LABELS,
    NON_RESPONSE_LABELS,
    REFERENDUM_COL,
    REQUIRED_COLUMNS,
    VOTE_COL,
    YES_LABELS,
)

MIN_GROUP_SIZE = 3


def _label(x):
    if pd.isna(x):
        return np.nan
    if isinstance(x, (int, float, np.number)) and float(x).is_integer():
        return str(int(x))
    return str(x).strip().lower()


def _warn_unrecognised(labels, known, name):
    unknown = labels.notna() & (labels != "") & ~labels.isin(known)
    if unknown.any():
        examples = sorted(labels[unknown].unique())[:5]
        warnings.warn(f"{int(unknown.sum())} unrecognised {name} answers set to missing: {examples}")


def recode_referendum(series: pd.Series) -> pd.Series:
    labels = series.map(_label)
    out = pd.Series(np.nan, index=series.index, dtype=float)
    out[labels.isin(YES_LABELS)] = 1.0
    out[labels.isin(NO_LABELS)] = 0.0
    _warn_unrecognised(labels, YES_LABELS | NO_LABELS | NON_RESPONSE_LABELS, REFERENDUM_COL)
    return out


def recode_gender(series: pd.Series) -> pd.Series:
    labels = series.map(_label)
    out = pd.Series(np.nan, index=series.index, dtype=object)
    out[labels.isin(MALE_LABELS)] = "Male"
    out[labels.isin(FEMALE_LABELS)] = "Female"
    _warn_unrecognised(labels, MALE_LABELS | FEMALE_LABELS | NON_RESPONSE_LABELS, GENDER_COL)
    return out


def clean_age(series: pd.Series) -> pd.Series:
    age = pd.to_numeric(series, errors="coerce").astype(float)
    unparseable = series.notna() & age.isna()
    if unparseable.any():
        warnings.warn(f"{int(unparseable.sum())} non-numeric ages set to missing")
    out_of_range = age.notna() & ((age < AGE_MIN) | (age > AGE_MAX))
    if out_of_range.any():
        warnings.warn(f"{int(out_of_range.sum())} ages outside [{AGE_MIN}, {AGE_MAX}] set to missing")
    return age.mask(out_of_range)


def add_age_group(df: pd.DataFrame) -> pd.DataFrame:
    df[AGE_GROUP_COL] = pd.cut(df[AGE_COL], bins=AGE_BINS, labels=AGE_LABELS, ordered=True)
    return df


def clean_survey(raw: pd.DataFrame) -> pd.DataFrame:
    """Recode the raw survey columns and add the derived analysis columns."""
    missing = [c for c in REQUIRED_COLUMNS if c not in raw.columns]
    if missing:
        raise ValueError(f"Survey data is missing required columns: {missing}")
    if raw.empty:
        raise ValueError("Survey data has no rows")

    df = raw.copy().reset_index(drop=True)
    df[REFERENDUM_COL] = recode_referendum(df[REFERENDUM_COL])
    df[AGE_COL] = clean_age(df[AGE_COL])
    df[GENDER_COL] = recode_gender(df[GENDER_COL])
    df[FEMALE_COL] = df[GENDER_COL].map({"Female": 1.0, "Male": 0.0}).astype(float)
    df[VOTE_COL] = df[REFERENDUM_COL].map({1.0: "Yes", 0.0: "No"})
    return add_age_group(df)


def load_data(path) -> pd.DataFrame:
    """Read the survey CSV and return the cleaned frame."""
    raw = pd.read_csv(path, na_values=NA_VALUES, skipinitialspace=True)
    return clean_survey(raw)


def n_complete_cases(df: pd.DataFrame) -> int:
    return int(df[[REFERENDUM_COL, AGE_COL, GENDER_COL]].notna().all(axis=1).sum())


def missingness_summary(df: pd.DataFrame) -> pd.DataFrame:
    n = len(df)
    rows = []
    for col in [REFERENDUM_COL, AGE_COL, GENDER_COL]:
        n_missing = int(df[col].isna().sum())
        rows.append({
            "variable": col,
            "n_observed": n - n_missing,
            "n_missing": n_missing,
            "pct_missing": 100 * n_missing / n if n else np.nan,
        })
    n_cc = n_complete_cases(df)
    rows.append({
        "variable": "any (complete cases)",
        "n_observed": n_cc,
        "n_missing": n - n_cc,
        "pct_missing": 100 * (n - n_cc) / n if n else np.nan,
    })
    return pd.DataFrame(rows)


def describe_sample(df: pd.DataFrame) -> dict:
    """Age summary by gender, gender counts and age-group counts."""
    agg = dict(n="count", mean="mean", sd="std", median="median", min="min", max="max")
    by_gender = df.groupby(GENDER_COL)[AGE_COL].agg(**agg)
    overall = df[AGE_COL].agg(list(agg.values()))
    overall.index = list(agg.keys())
    by_gender.loc["All"] = overall
    by_gender["n"] = by_gender["n"].astype(int)

    gender_counts = (
        df[GENDER_COL].fillna("Missing").value_counts().rename_axis(GENDER_COL).reset_index(name="n")
    )
    gender_counts["pct"] = 100 * gender_counts["n"] / len(df)

    age_group_counts = (
        df[AGE_GROUP_COL].value_counts().reindex(AGE_LABELS, fill_value=0)
        .rename_axis(AGE_GROUP_COL).reset_index(name="n")
    )
    age_group_counts["pct"] = 100 * age_group_counts["n"] / len(df)

    return {
        "n": len(df),
        "age_by_gender": by_gender.reset_index(),
        "gender_counts": gender_counts,
        "age_group_counts": age_group_counts,
    }


def _chi_square(df, col):
    table = pd.crosstab(df[VOTE_COL], df[col])
    table = table.loc[table.sum(axis=1) > 0, table.sum(axis=0) > 0]
    if table.shape[0] < 2 or table.shape[1] < 2:
        return None
    chi2, p, dof, _ = chi2_contingency(table)
    return {"test": "Chi-square", "variables": f"vote x {col}", "stat": chi2, "df": dof,
            "p": p, "n": int(table.values.sum())}


def run_statistical_tests(df: pd.DataFrame) -> pd.DataFrame:
    """Chi-square of vote by gender and age group; Welch t and Mann-Whitney of age by vote."""
    results = []
    for col in [GENDER_COL, AGE_GROUP_COL]:
        res = _chi_square(df, col)
        if res is None:
            warnings.warn(f"Chi-square vote x {col} skipped: fewer than two levels observed")
        else:
            results.append(res)

    sub = df.dropna(subset=[AGE_COL, REFERENDUM_COL])
    yes_ages = sub.loc[sub[REFERENDUM_COL] == 1, AGE_COL]
    no_ages = sub.loc[sub[REFERENDUM_COL] == 0, AGE_COL]
    if len(yes_ages) >= MIN_GROUP_SIZE and len(no_ages) >= MIN_GROUP_SIZE:
        t, p_t = ttest_ind(yes_ages, no_ages, equal_var=False)
        u, p_u = mannwhitneyu(yes_ages, no_ages, alternative="two-sided")
        results.append({"test": "Welch t", "variables": "age by vote", "stat": t, "df": np.nan,
                        "p": p_t, "n": len(sub)})
        results.append({"test": "Mann-Whitney U", "variables": "age by vote", "stat": u, "df": np.nan,
                        "p": p_u, "n": len(sub)})
    else:
        warnings.warn("Age-by-vote tests skipped: too few Yes or No answers with a valid age")

    return pd.DataFrame(results, columns=["test", "variables", "stat", "df", "p", "n"])
