"""
Shared constants and helpers for the referendum survey report:
column names, recoding maps, model defaults, output paths and plot style.
"""
import os
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

# Raw input columns
REFERENDUM_COL = "referendum"
AGE_COL = "age"
GENDER_COL = "gender"
REQUIRED_COLUMNS = [REFERENDUM_COL, AGE_COL, GENDER_COL]

# Derived columns
FEMALE_COL = "female"
AGE_GROUP_COL = "age_group"
VOTE_COL = "vote"
ANALYSIS_COLUMNS = [REFERENDUM_COL, AGE_COL, FEMALE_COL]

YES_LABELS = {"yes", "y", "1", "true", "in favour", "in favor", "for"}
NO_LABELS = {"no", "n", "0", "false", "against"}
MALE_LABELS = {"male", "m", "man", "boy"}
FEMALE_LABELS = {"female", "f", "woman", "girl"}
NON_RESPONSE_LABELS = {"don't know", "dont know", "not sure", "undecided", "prefer not to say", "refused"}
NA_VALUES = ["N/A", "NA", "n/a", "", " ", "-"]

AGE_MIN = 18
AGE_MAX = 100
AGE_BINS = [17, 24, 34, 44, 54, 64, AGE_MAX]
AGE_LABELS = ["18-24", "25-34", "35-44", "45-54", "55-64", "65+"]

MODEL_FORMULA = "referendum ~ age + female"
TERM_LABELS = {
    "Intercept": "Intercept",
    "age": "Age (per year)",
    "female": "Female (vs male)",
}

N_IMPUTATIONS = 20
N_BURN = 10
RANDOM_SEED = 42
ALPHA = 0.05
IMPUTATION_METHODS = ("pmm", "iterative")

DEFAULT_OUT = Path("outputs")

COLORS = {
    "Male": "#2E86AB",
    "Female": "#E94F37",
    "Yes": "#44AF69",
    "No": "#E94F37",
    "complete_case": "#2E86AB",
    "imputed": "#F58518",
}


def configure_plot_style() -> None:
    """Light grid theme sized for figures pasted into a written report."""
    sns.set_theme(
        style="whitegrid",
        context="paper",
        font_scale=1.2,
        rc={
            "figure.figsize": (7, 4),
            "savefig.dpi": 200,
            "axes.titleweight": "bold",
            "grid.alpha": 0.4,
            "legend.frameon": False,
        },
    )


def figures_dir(out_dir) -> Path:
    return Path(out_dir) / "figures"


def save_figure(fig: plt.Figure, name: str, fig_dir) -> Path:
    """Save `fig` as PNG and PDF under `fig_dir`; returns the PNG path."""
    os.makedirs(fig_dir, exist_ok=True)
    png_path = Path(fig_dir) / f"{name}.png"
    pdf_path = Path(fig_dir) / f"{name}.pdf"
    fig.savefig(png_path, bbox_inches="tight")
    fig.savefig(pdf_path, bbox_inches="tight")
    return png_path


def fmt_p(p) -> str:
    if p is None or np.isnan(p):
        return "n/a"
    return "p < 0.001" if p < 0.001 else f"p = {p:.3f}"


def sig_stars(p) -> str:
    if p is None or np.isnan(p):
        return ""
    return "***" if p < 0.001 else "**" if p < 0.01 else "*" if p < 0.05 else ""
