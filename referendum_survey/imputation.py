"""
Multiple imputation of the analysis columns and pooling with Rubin's rules.

impute_datasets() builds m completed copies of (referendum, age, female):
- "pmm": chained equations with predictive mean matching (statsmodels MICEData).
  Copies are snapshots of one chain, taken after n_burn cycles and then every
  N_SKIP cycles. Imputed values are drawn from observed donors, so binaries stay 0/1.
- "iterative": sklearn IterativeImputer with posterior sampling, one random_state
  per copy; binaries rounded to 0/1, age bounded by its observed range.
Observed values are never changed. Rows with none of the analysis columns observed carry
nothing to impute from and are left out of every copy.

pool_rubin() combines per-copy estimates Q_i and variances U_i:
    Q = mean(Q_i), U = mean(U_i), B = var(Q_i), T = U + (1 + 1/m) B
with Barnard-Rubin degrees of freedom when the complete-data df is known.
"""
import warnings
from dataclasses import dataclass, field
from typing import List

import numpy as np
import pandas as pd
from scipy.stats import norm, t as t_dist
from sklearn.experimental import enable_iterative_imputer  # noqa: F401
from sklearn.impute import IterativeImputer
from statsmodels.imputation.mice import MICEData

from .eda import add_age_group
from .models import LogitFit, fit_logit
from .survey_utils import (
    ALPHA,
    ANALYSIS_COLUMNS,
    FEMALE_COL,
    GENDER_COL,
    IMPUTATION_METHODS,
    MODEL_FORMULA,
    N_BURN,
    N_IMPUTATIONS,
    RANDOM_SEED,
    REFERENDUM_COL,
    VOTE_COL,
    sig_stars,
)

N_SKIP = 5
K_PMM = 20
BINARY_COLUMNS = [REFERENDUM_COL, FEMALE_COL]


@dataclass
class MIResult:
    pooled: pd.DataFrame
    fits: List[LogitFit]
    datasets: List[pd.DataFrame]
    method: str
    m: int
    n_dropped: int = 0
    per_copy: pd.DataFrame = field(default_factory=pd.DataFrame)


def _impute_pmm(data, m, seed, n_burn):
    np.random.seed(seed)
    imp = MICEData(data, k_pmm=K_PMM)
    imp.update_all(n_burn)
    completed = []
    for i in range(m):
        if i > 0:
            imp.update_all(N_SKIP)
        completed.append(imp.data.copy().set_index(data.index))
    return completed


def _impute_iterative(data, m, seed, n_burn):
    lo = data.min().values
    hi = data.max().values
    completed = []
    for i in range(m):
        imputer = IterativeImputer(
            sample_posterior=True,
            max_iter=n_burn,
            random_state=seed + i,
            min_value=lo,
            max_value=hi,
        )
        comp = pd.DataFrame(imputer.fit_transform(data), columns=data.columns)
        for col in BINARY_COLUMNS:
            if col in comp.columns:
                comp[col] = comp[col].round().clip(0, 1)
        completed.append(comp.where(data.isna(), data))
    return completed


def impute_datasets(df: pd.DataFrame, m: int = N_IMPUTATIONS, method: str = "pmm",
                    seed: int = RANDOM_SEED, n_burn: int = N_BURN,
                    columns=ANALYSIS_COLUMNS) -> List[pd.DataFrame]:
    """Return m completed copies of `df`; derived columns are rebuilt from the imputed ones."""
    if m < 2:
        raise ValueError(f"Multiple imputation needs at least 2 imputations, got m={m}")
    if method not in IMPUTATION_METHODS:
        raise ValueError(f"Unknown imputation method '{method}', expected one of {IMPUTATION_METHODS}")

    base = df.reset_index(drop=True)
    answered = base[list(columns)].notna().any(axis=1)
    if not answered.all():
        warnings.warn(f"{int((~answered).sum())} rows with no analysis column observed were left out of the imputed copies")
        base = base.loc[answered].reset_index(drop=True)
    data = base[list(columns)].astype(float)
    empty = data.columns[data.isna().all()].tolist()
    if empty:
        raise ValueError(f"Cannot impute columns with no observed values: {empty}")

    if method == "pmm":
        completed = _impute_pmm(data, m, seed, n_burn)
    else:
        completed = _impute_iterative(data, m, seed, n_burn)

    datasets = []
    for i, comp in enumerate(completed, start=1):
        out = base.copy()
        for col in columns:
            out[col] = comp[col].reindex(data.index).values
        if FEMALE_COL in columns:
            out[GENDER_COL] = out[FEMALE_COL].map({1.0: "Female", 0.0: "Male"})
        if REFERENDUM_COL in columns:
            out[VOTE_COL] = out[REFERENDUM_COL].map({1.0: "Yes", 0.0: "No"})
        out["imputation"] = i
        datasets.append(add_age_group(out))
    return datasets


def pool_rubin(estimates, variances, dfcom=None, alpha: float = ALPHA) -> pd.DataFrame:
    """
    Pool m sets of estimates with Rubin's rules.

    estimates, variances: DataFrames (rows = imputations, columns = terms) or
    arrays of shape (m,) / (m, k). dfcom is the complete-data residual df used
    for the Barnard-Rubin adjustment; None gives Rubin's large-sample df.
    """
    terms = list(estimates.columns) if isinstance(estimates, pd.DataFrame) else None
    Q = np.asarray(estimates, dtype=float)
    U = np.asarray(variances, dtype=float)
    if Q.ndim == 1:
        Q, U = Q[:, None], U[:, None]
    if Q.shape != U.shape:
        raise ValueError(f"estimates {Q.shape} and variances {U.shape} differ in shape")
    m = Q.shape[0]
    if m < 2:
        raise ValueError(f"Pooling needs at least 2 imputations, got m={m}")
    if terms is None:
        terms = list(range(Q.shape[1]))

    qbar = Q.mean(axis=0)
    ubar = U.mean(axis=0)
    b = Q.var(axis=0, ddof=1)
    total = ubar + (1 + 1 / m) * b

    with np.errstate(divide="ignore", invalid="ignore"):
        riv = np.where(ubar > 0, (1 + 1 / m) * b / ubar, np.inf)
        lam = np.where(total > 0, (1 + 1 / m) * b / total, 0.0)
        df_old = np.where(lam > 0, (m - 1) / lam ** 2, np.inf)
        if dfcom is not None:
            df_obs = (dfcom + 1) / (dfcom + 3) * dfcom * (1 - lam)
            df = np.where(np.isinf(df_old), df_obs, df_old * df_obs / (df_old + df_obs))
        else:
            df = df_old
        fmi = (riv + 2 / (df + 3)) / (riv + 1)

    se = np.sqrt(total)
    stat = qbar / se
    large = np.isinf(df)
    df_finite = np.where(large, 1.0, df)
    p = np.where(large, 2 * norm.sf(np.abs(stat)), 2 * t_dist.sf(np.abs(stat), df_finite))
    crit = np.where(large, norm.ppf(1 - alpha / 2), t_dist.ppf(1 - alpha / 2, df_finite))

    pooled = pd.DataFrame({
        "term": terms,
        "estimate": qbar,
        "se": se,
        "t": stat,
        "df": df,
        "p": p,
        "ci_low": qbar - crit * se,
        "ci_high": qbar + crit * se,
        "within": ubar,
        "between": b,
        "total": total,
        "riv": riv,
        "lambda": lam,
        "fmi": fmi,
        "m": m,
    })
    pooled["odds_ratio"] = np.exp(pooled["estimate"])
    pooled["or_low"] = np.exp(pooled["ci_low"])
    pooled["or_high"] = np.exp(pooled["ci_high"])
    pooled["sig"] = pooled["p"].apply(sig_stars)
    return pooled


def fit_imputed_models(datasets, formula: str = MODEL_FORMULA) -> List[LogitFit]:
    """Fit the logit on every completed copy; only converged fits are returned."""
    fits = [fit_logit(d, formula) for d in datasets]
    usable = [f for f in fits if f.converged]
    dropped = len(fits) - len(usable)
    if dropped:
        warnings.warn(f"{dropped} of {len(fits)} imputed-data fits did not converge and were left out of pooling")
    if len(usable) < 2:
        raise RuntimeError(f"Only {len(usable)} imputed-data fits converged; at least 2 are needed to pool")
    return usable


def pool_fits(fits: List[LogitFit], alpha: float = ALPHA) -> pd.DataFrame:
    estimates = pd.DataFrame([f.result.params for f in fits])
    variances = pd.DataFrame([f.result.bse ** 2 for f in fits])
    dfcom = float(fits[0].result.df_resid)
    return pool_rubin(estimates, variances[estimates.columns], dfcom=dfcom, alpha=alpha)


def run_multiple_imputation(df: pd.DataFrame, formula: str = MODEL_FORMULA, m: int = N_IMPUTATIONS,
                            method: str = "pmm", seed: int = RANDOM_SEED, alpha: float = ALPHA,
                            n_burn: int = N_BURN) -> MIResult:
    """Impute m copies, fit the logit per copy and pool the coefficients."""
    datasets = impute_datasets(df, m=m, method=method, seed=seed, n_burn=n_burn)
    fits = fit_imputed_models(datasets, formula)
    pooled = pool_fits(fits, alpha=alpha)
    per_copy = pd.concat(
        [
            pd.DataFrame({"imputation": i, "term": f.result.params.index,
                          "estimate": f.result.params.values, "se": f.result.bse.values})
            for i, f in enumerate(fits, start=1)
        ],
        ignore_index=True,
    )
    return MIResult(pooled=pooled, fits=fits, datasets=datasets, method=method, m=m,
                    n_dropped=m - len(fits), per_copy=per_copy)


def pooled_proportion(datasets, alpha: float = ALPHA) -> dict:
    """Yes share pooled across completed copies; variance p(1-p)/n per copy."""
    p = np.array([d[REFERENDUM_COL].mean() for d in datasets])
    n = np.array([d[REFERENDUM_COL].notna().sum() for d in datasets])
    pooled = pool_rubin(p, p * (1 - p) / n, dfcom=float(n.min() - 1), alpha=alpha).iloc[0]
    return {
        "p": pooled["estimate"],
        "se": pooled["se"],
        "ci_low": pooled["ci_low"],
        "ci_high": pooled["ci_high"],
        "df": pooled["df"],
        "fmi": pooled["fmi"],
        "m": len(datasets),
        "n": int(n.max()),
    }
