"""Stakeholder-facing tables: odds ratios, model comparison and markdown rendering."""
import numpy as np
import pandas as pd

from .survey_utils import ALPHA, TERM_LABELS


def fmt_p_table(p) -> str:
    if p is None or pd.isna(p):
        return "—"
    return "< 0.001" if p < 0.001 else f"{p:.3f}"


def fmt_ci(low, high, digits=2) -> str:
    if pd.isna(low) or pd.isna(high):
        return "—"
    return f"{low:.{digits}f} to {high:.{digits}f}"


def ci_label(alpha: float = ALPHA) -> str:
    return f"{100 * (1 - alpha):.0f}% CI"


def odds_ratio_table(coef_df: pd.DataFrame, include_intercept: bool = False, alpha: float = ALPHA) -> pd.DataFrame:
    """Readable odds-ratio table from a coefficient or pooled table; alpha only sets the CI header."""
    sub = coef_df if include_intercept else coef_df[coef_df["term"] != "Intercept"]
    return pd.DataFrame({
        "Variable": [TERM_LABELS.get(t, t) for t in sub["term"]],
        "Odds ratio": [f"{v:.2f}" for v in sub["odds_ratio"]],
        ci_label(alpha): [fmt_ci(lo, hi) for lo, hi in zip(sub["or_low"], sub["or_high"])],
        "p-value": [fmt_p_table(p) for p in sub["p"]],
        "": sub["sig"].tolist(),
    })


def comparison_table(cc_df: pd.DataFrame, mi_df: pd.DataFrame, alpha: float = ALPHA) -> pd.DataFrame:
    """Complete-case vs multiply-imputed estimates, one row per term."""
    cols = ["term", "estimate", "se", "p", "odds_ratio", "or_low", "or_high"]
    merged = cc_df[cols].merge(mi_df[cols + ["fmi"]], on="term", how="outer", suffixes=("_cc", "_mi"))
    ci = ci_label(alpha)
    rows = []
    for _, r in merged.iterrows():
        rows.append({
            "Variable": TERM_LABELS.get(r["term"], r["term"]),
            "OR (complete cases)": f"{r['odds_ratio_cc']:.2f}" if pd.notna(r["odds_ratio_cc"]) else "—",
            f"{ci} (complete cases)": fmt_ci(r["or_low_cc"], r["or_high_cc"]),
            "p (complete cases)": fmt_p_table(r["p_cc"]),
            "OR (imputed)": f"{r['odds_ratio_mi']:.2f}" if pd.notna(r["odds_ratio_mi"]) else "—",
            f"{ci} (imputed)": fmt_ci(r["or_low_mi"], r["or_high_mi"]),
            "p (imputed)": fmt_p_table(r["p_mi"]),
            "Missing info": f"{100 * r['fmi']:.0f}%" if pd.notna(r["fmi"]) else "—",
        })
    return pd.DataFrame(rows)


def _cell(v, digits):
    if isinstance(v, (float, np.floating)):
        return "—" if np.isnan(v) else f"{v:.{digits}f}"
    return str(v)


def to_markdown_table(df: pd.DataFrame, digits: int = 3) -> str:
    header = "| " + " | ".join(str(c) for c in df.columns) + " |"
    sep = "|" + "|".join("-" * (len(str(c)) + 2) if str(c) else "---" for c in df.columns) + "|"
    lines = [header, sep]
    for _, row in df.iterrows():
        lines.append("| " + " | ".join(_cell(v, digits) for v in row.values) + " |")
    return "\n".join(lines)


def write_markdown_table(df: pd.DataFrame, out_path, title: str, note: str = "", digits: int = 3) -> None:
    lines = [f"# {title}", ""]
    if df.empty:
        lines.append("No rows.")
    else:
        lines.append(to_markdown_table(df, digits=digits))
    if note:
        lines.extend(["", note])
    with open(out_path, "w") as f:
        f.write("\n".join(lines) + "\n")
