"""Figures for the referendum report. Each is written as PNG and PDF to fig_dir."""
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.ticker import PercentFormatter

from .survey_utils import (
    AGE_COL,
    AGE_GROUP_COL,
    AGE_LABELS,
    COLORS,
    GENDER_COL,
    TERM_LABELS,
    VOTE_COL,
    save_figure,
)

GENDER_ORDER = ["Male", "Female"]


def plot_age_distribution(df: pd.DataFrame, fig_dir):
    """Histogram + KDE of age, split by gender."""
    sub = df.dropna(subset=[AGE_COL, GENDER_COL])
    fig, ax = plt.subplots(figsize=(7, 4))
    sns.histplot(data=sub, x=AGE_COL, hue=GENDER_COL, hue_order=GENDER_ORDER, bins=20, kde=True,
                 element="step", stat="count", palette=COLORS, ax=ax)
    ax.set_xlabel("Age")
    ax.set_ylabel("Respondents")
    ax.set_title(f"Age of respondents by gender (n = {len(sub)})")
    path = save_figure(fig, "age_distribution_by_gender", fig_dir)
    plt.close(fig)
    return path


def plot_gender_counts(df: pd.DataFrame, fig_dir):
    counts = df[GENDER_COL].fillna("Missing").value_counts()
    order = [g for g in GENDER_ORDER + ["Missing"] if g in counts.index]
    counts = counts.reindex(order)
    fig, ax = plt.subplots(figsize=(5, 4))
    bars = ax.bar(counts.index, counts.values,
                  color=[COLORS.get(g, "#999999") for g in counts.index], edgecolor="black")
    for b, v in zip(bars, counts.values):
        ax.text(b.get_x() + b.get_width() / 2, b.get_height(), f"{v}\n({100 * v / len(df):.0f}%)",
                ha="center", va="bottom", fontsize=9)
    ax.set_ylabel("Respondents")
    ax.set_title("Respondents by gender")
    ax.set_ylim(0, counts.max() * 1.2)
    path = save_figure(fig, "gender_counts", fig_dir)
    plt.close(fig)
    return path


def plot_age_by_gender_box(df: pd.DataFrame, fig_dir):
    sub = df.dropna(subset=[AGE_COL, GENDER_COL])
    fig, ax = plt.subplots(figsize=(5, 4))
    sns.boxplot(data=sub, x=GENDER_COL, y=AGE_COL, order=GENDER_ORDER, hue=GENDER_COL,
                palette=COLORS, legend=False, ax=ax)
    ax.set_xlabel("")
    ax.set_ylabel("Age")
    ax.set_title("Age by gender")
    path = save_figure(fig, "age_by_gender_box", fig_dir)
    plt.close(fig)
    return path


def plot_support_by_age_group(by_group: pd.DataFrame, overall: dict, fig_dir):
    """Yes share per age group with confidence intervals and the overall share."""
    by_group = by_group.set_index(AGE_GROUP_COL).reindex(AGE_LABELS).dropna(subset=["p"]).reset_index()
    x = np.arange(len(by_group))
    fig, ax = plt.subplots(figsize=(7, 4))
    yerr = np.vstack([by_group["p"] - by_group["ci_low"], by_group["ci_high"] - by_group["p"]])
    ax.bar(x, by_group["p"], color=COLORS["Yes"], alpha=0.8, edgecolor="black")
    ax.errorbar(x, by_group["p"], yerr=yerr, fmt="none", ecolor="black", capsize=4)
    ax.axhline(overall["p"], color="gray", linestyle="--", label=f"All respondents ({overall['p']:.0%})")
    ax.axhline(0.5, color="black", linestyle=":", linewidth=1)
    ax.set_xticks(x)
    ax.set_xticklabels([f"{g}\n(n={int(n)})" for g, n in zip(by_group[AGE_GROUP_COL], by_group["n"])])
    ax.set_ylim(0, 1)
    ax.yaxis.set_major_formatter(PercentFormatter(1.0))
    ax.set_ylabel("Share voting Yes")
    ax.set_title("Support for the referendum by age group")
    ax.legend(frameon=False)
    path = save_figure(fig, "support_by_age_group", fig_dir)
    plt.close(fig)
    return path


def plot_vote_by_gender(df: pd.DataFrame, fig_dir):
    sub = df.dropna(subset=[VOTE_COL, GENDER_COL])
    share = pd.crosstab(sub[GENDER_COL], sub[VOTE_COL], normalize="index").reindex(GENDER_ORDER).dropna(how="all")
    fig, ax = plt.subplots(figsize=(6, 3.5))
    left = np.zeros(len(share))
    for vote in ["Yes", "No"]:
        if vote not in share.columns:
            continue
        vals = share[vote].values
        ax.barh(share.index, vals, left=left, color=COLORS[vote], edgecolor="black", label=vote)
        for i, v in enumerate(vals):
            if v > 0.08:
                ax.text(left[i] + v / 2, i, f"{v:.0%}", ha="center", va="center", color="white")
        left += vals
    ax.set_xlim(0, 1)
    ax.xaxis.set_major_formatter(PercentFormatter(1.0))
    ax.set_title("Referendum vote by gender")
    ax.legend(frameon=False, loc="lower right")
    path = save_figure(fig, "vote_by_gender", fig_dir)
    plt.close(fig)
    return path


def plot_missingness(missing_df: pd.DataFrame, fig_dir):
    fig, ax = plt.subplots(figsize=(6, 3.5))
    ax.barh(missing_df["variable"], missing_df["pct_missing"], color="#4C78A8")
    for i, (pct, n) in enumerate(zip(missing_df["pct_missing"], missing_df["n_missing"])):
        ax.text(pct, i, f" {pct:.1f}% ({n})", va="center", fontsize=9)
    ax.set_xlabel("% missing")
    ax.set_xlim(0, max(10, missing_df["pct_missing"].max() * 1.3))
    ax.invert_yaxis()
    ax.set_title("Missing answers")
    path = save_figure(fig, "missingness", fig_dir)
    plt.close(fig)
    return path


def plot_odds_ratio_forest(cc_df: pd.DataFrame, mi_df: pd.DataFrame, fig_dir):
    """Odds ratios with CIs: complete cases vs multiple imputation."""
    terms = [t for t in cc_df["term"] if t != "Intercept"]
    y = np.arange(len(terms))
    fig, ax = plt.subplots(figsize=(7, 1.2 + 0.8 * len(terms)))
    for offset, (label, table, color) in zip(
        [-0.15, 0.15],
        [("Complete cases", cc_df, COLORS["complete_case"]), ("Multiple imputation", mi_df, COLORS["imputed"])],
    ):
        t = table.set_index("term").reindex(terms)
        err = np.vstack([t["odds_ratio"] - t["or_low"], t["or_high"] - t["odds_ratio"]])
        ax.errorbar(t["odds_ratio"], y + offset, xerr=err, fmt="o", color=color, capsize=4, label=label)
    ax.axvline(1.0, color="black", linestyle="--", linewidth=1)
    ax.set_xscale("log")
    ax.set_yticks(y)
    ax.set_yticklabels([TERM_LABELS.get(t, t) for t in terms])
    ax.set_xlabel("Odds ratio of voting Yes (log scale)")
    ax.set_title("Who is more likely to vote Yes?")
    ax.legend(frameon=False)
    path = save_figure(fig, "odds_ratio_forest", fig_dir)
    plt.close(fig)
    return path


def plot_predicted_probability(pred: pd.DataFrame, fig_dir):
    """Model-predicted P(Yes) over age for each gender."""
    fig, ax = plt.subplots(figsize=(7, 4))
    for gender, grp in pred.groupby("gender"):
        color = COLORS.get(gender, "#999999")
        ax.plot(grp["age"], grp["p_yes"], color=color, linewidth=2, label=gender)
        ax.fill_between(grp["age"], grp["ci_low"], grp["ci_high"], color=color, alpha=0.2, linewidth=0)
    ax.axhline(0.5, color="black", linestyle=":", linewidth=1)
    ax.set_ylim(0, 1)
    ax.yaxis.set_major_formatter(PercentFormatter(1.0))
    ax.set_xlabel("Age")
    ax.set_ylabel("Predicted chance of voting Yes")
    ax.set_title("Predicted support by age and gender")
    ax.legend(frameon=False)
    ax.grid(True, alpha=0.3)
    path = save_figure(fig, "predicted_probability", fig_dir)
    plt.close(fig)
    return path
