"""
Complete-case logistic regression of the referendum vote on age and gender.

Rows missing any model variable are dropped. Non-convergence (iteration limit,
perfect separation, singular Hessian) is reported with warnings.warn and
flagged on the returned LogitFit instead of raised.
"""
import re
import warnings
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from scipy.special import expit
from statsmodels.tools.sm_exceptions import ConvergenceWarning, PerfectSeparationError

from .survey_utils import ALPHA, MODEL_FORMULA, sig_stars

MAXITER = 100


@dataclass
class LogitFit:
    formula: str
    n: int
    converged: bool
    result: Optional[object] = None
    messages: List[str] = field(default_factory=list)


def formula_variables(formula: str, columns) -> List[str]:
    """Columns of the frame that appear as names in `formula`."""
    return [c for c in columns if re.search(rf"(?<![\w.]){re.escape(str(c))}(?![\w.])", formula)]


def _is_convergence_problem(w) -> bool:
    return issubclass(w.category, ConvergenceWarning) or "PerfectSeparation" in w.category.__name__


def fit_logit(df: pd.DataFrame, formula: str = MODEL_FORMULA, maxiter: int = MAXITER) -> LogitFit:
    variables = formula_variables(formula, df.columns)
    sub = df.dropna(subset=variables)
    outcome = formula.split("~")[0].strip()
    if len(sub) == 0:
        raise ValueError(f"No complete rows for model '{formula}'")
    if outcome in sub.columns and sub[outcome].nunique() < 2:
        # degenerate separation: every complete row gives the same answer
        message = f"Outcome '{outcome}' has a single value among complete rows"
        warnings.warn(f"Logistic regression '{formula}' did not converge (n={len(sub)}): {message}")
        return LogitFit(formula=formula, n=len(sub), converged=False, messages=[message])

    result = None
    messages = []
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            result = smf.logit(formula, data=sub).fit(disp=0, maxiter=maxiter)
        except (PerfectSeparationError, np.linalg.LinAlgError) as e:
            messages.append(f"{type(e).__name__}: {e}")

    for w in caught:
        if _is_convergence_problem(w):
            messages.append(f"{w.category.__name__}: {w.message}")
        else:
            warnings.warn(str(w.message), w.category)

    converged = result is not None and not messages
    if result is not None:
        converged = converged and bool(result.mle_retvals.get("converged", True))
        converged = converged and bool(np.all(np.isfinite(result.bse)))
    if not converged:
        warnings.warn(f"Logistic regression '{formula}' did not converge (n={len(sub)}): "
                      + ("; ".join(messages) or "non-finite standard errors"))

    return LogitFit(formula=formula, n=len(sub), converged=converged, result=result, messages=messages)


def coefficient_table(result, alpha: float = ALPHA) -> pd.DataFrame:
    """Per-term log-odds estimate, SE, z, p, CI and odds ratios."""
    ci = result.conf_int(alpha=alpha)
    table = pd.DataFrame({
        "term": result.params.index,
        "estimate": result.params.values,
        "se": result.bse.values,
        "z": result.tvalues.values,
        "p": result.pvalues.values,
        "ci_low": ci[0].values,
        "ci_high": ci[1].values,
    })
    table["odds_ratio"] = np.exp(table["estimate"])
    table["or_low"] = np.exp(table["ci_low"])
    table["or_high"] = np.exp(table["ci_high"])
    table["sig"] = table["p"].apply(sig_stars)
    return table


def predicted_probabilities(result, ages, genders=("Male", "Female"), alpha: float = ALPHA) -> pd.DataFrame:
    """P(Yes) with a delta-method interval on the logit scale over an age x gender grid."""
    grid = pd.DataFrame(
        [(a, g) for g in genders for a in ages], columns=["age", "gender"]
    )
    grid["female"] = (grid["gender"] == "Female").astype(float)
    frame = result.get_prediction(grid, which="linear").summary_frame(alpha=alpha)
    grid["p_yes"] = expit(frame["predicted"].values)
    grid["ci_low"] = expit(frame["ci_lower"].values)
    grid["ci_high"] = expit(frame["ci_upper"].values)
    return grid
