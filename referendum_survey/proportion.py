"""Share of valid referendum answers that are Yes, overall and by group."""
import numpy as np
import pandas as pd
from statsmodels.stats.proportion import proportion_confint, proportions_ztest

from .survey_utils import ALPHA, REFERENDUM_COL

NULL_PROPORTION = 0.5


def sample_proportion(df: pd.DataFrame, alpha: float = ALPHA, method: str = "wilson") -> dict:
    """
    Proportion voting Yes among respondents with a valid Yes/No answer.

    Returns count, n, p, standard error sqrt(p(1-p)/n), a (1 - alpha) interval
    from `proportion_confint` and a two-sided z-test of p = 0.5 (null variance).
    """
    valid = df[REFERENDUM_COL].dropna()
    n = len(valid)
    if n == 0:
        raise ValueError("No valid referendum answers to compute a proportion from")
    count = int(valid.sum())
    p = count / n
    se = np.sqrt(p * (1 - p) / n)
    ci_low, ci_high = proportion_confint(count, n, alpha=alpha, method=method)
    z, p_value = proportions_ztest(count, n, value=NULL_PROPORTION, prop_var=NULL_PROPORTION)
    return {
        "count": count,
        "n": n,
        "p": p,
        "se": se,
        "ci_low": ci_low,
        "ci_high": ci_high,
        "ci_method": method,
        "alpha": alpha,
        "z": z,
        "p_value": p_value,
    }


def proportion_by_group(df: pd.DataFrame, group: str, alpha: float = ALPHA, method: str = "wilson") -> pd.DataFrame:
    rows = []
    for name, grp in df.groupby(group, observed=True):
        if grp[REFERENDUM_COL].notna().sum() == 0:
            continue
        res = sample_proportion(grp, alpha=alpha, method=method)
        rows.append({group: name, **res})
    return pd.DataFrame(rows)
