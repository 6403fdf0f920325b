"""
Referendum survey report: load → clean/recode → describe → proportion →
complete-case logit → multiply-imputed logit → tables, figures, written summary.

Outputs land in --out (default ./outputs): CSVs, markdown tables, figures/ and report.md.
"""
import argparse
import os
import sys
import warnings

import numpy as np
import pandas as pd

from .eda import (
    clean_survey,
    describe_sample,
    load_data,
    missingness_summary,
    n_complete_cases,
    run_statistical_tests,
)
from .imputation import pooled_proportion, run_multiple_imputation
from .models import LogitFit, coefficient_table, fit_logit, predicted_probabilities
from .plots import (
    plot_age_by_gender_box,
    plot_age_distribution,
    plot_gender_counts,
    plot_missingness,
    plot_odds_ratio_forest,
    plot_predicted_probability,
    plot_support_by_age_group,
    plot_vote_by_gender,
)
from .proportion import proportion_by_group, sample_proportion
from .simulate import simulate_survey
from .survey_utils import (
    AGE_COL,
    AGE_GROUP_COL,
    ALPHA,
    DEFAULT_OUT,
    GENDER_COL,
    IMPUTATION_METHODS,
    MODEL_FORMULA,
    N_BURN,
    N_IMPUTATIONS,
    RANDOM_SEED,
    configure_plot_style,
    figures_dir,
    fmt_p,
)
from .tables import comparison_table, odds_ratio_table, write_markdown_table


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Referendum survey analysis report.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--data", help="Path to the survey CSV (columns: referendum, age, gender).")
    source.add_argument("--simulate", type=int, metavar="N", help="Run on N simulated respondents instead.")
    parser.add_argument("--out", default=str(DEFAULT_OUT), help="Output directory (default: outputs).")
    parser.add_argument("--m", type=int, default=N_IMPUTATIONS, help=f"Number of imputations (default: {N_IMPUTATIONS}).")
    parser.add_argument("--method", choices=IMPUTATION_METHODS, default="pmm", help="Imputation method (default: pmm).")
    parser.add_argument("--n-burn", type=int, default=N_BURN, help=f"Burn-in cycles per imputation chain (default: {N_BURN}).")
    parser.add_argument("--seed", type=int, default=RANDOM_SEED, help=f"Random seed (default: {RANDOM_SEED}).")
    parser.add_argument("--alpha", type=float, default=ALPHA, help=f"Significance level (default: {ALPHA}).")
    return parser.parse_args(argv)


def odds_per_decade(table: pd.DataFrame) -> float:
    row = table[table["term"] == AGE_COL]
    return float(np.exp(10 * row["estimate"].iloc[0])) if len(row) else np.nan


def _effect_sentence(table: pd.DataFrame, alpha: float) -> list:
    lines = []
    age = table[table["term"] == AGE_COL]
    if len(age):
        or10 = odds_per_decade(table)
        direction = "lower" if or10 < 1 else "higher"
        lines.append(
            f"- **Age:** every additional 10 years of age multiplies the odds of a Yes vote by {or10:.2f} "
            f"({direction} support among older respondents; {fmt_p(age['p'].iloc[0])})."
        )
        if age["p"].iloc[0] >= alpha:
            lines.append("  This age difference is not statistically significant.")
    fem = table[table["term"] == "female"]
    if len(fem):
        orf = fem["odds_ratio"].iloc[0]
        more = "more" if orf > 1 else "less"
        lines.append(
            f"- **Gender:** women have {orf:.2f} times the odds of men of voting Yes "
            f"(women {more} supportive; {fmt_p(fem['p'].iloc[0])})."
        )
        if fem["p"].iloc[0] >= alpha:
            lines.append("  This gender difference is not statistically significant.")
    return lines


def write_report(out_path, ctx: dict) -> None:
    """Plain-language markdown summary for a non-technical reader."""
    prop = ctx["proportion"]
    desc = ctx["describe"]
    alpha = ctx["alpha"]
    conf = f"{100 * (1 - alpha):.0f}%"
    ages = desc["age_by_gender"].set_index(GENDER_COL)

    lines = [
        "# Referendum survey: summary of findings",
        "",
        "## Who answered",
        f"- Respondents: {desc['n']}",
        f"- Complete answers (vote, age and gender all given): {ctx['n_complete']}",
    ]
    if "All" in ages.index:
        lines.append(f"- Average age: {ages.loc['All', 'mean']:.1f} years (median {ages.loc['All', 'median']:.0f})")
    for _, r in desc["gender_counts"].iterrows():
        lines.append(f"- {r[GENDER_COL]}: {r['n']} ({r['pct']:.0f}%)")
    lines.extend([
        "",
        "## How many support the referendum?",
        f"Of the {prop['n']} respondents who gave a Yes or No answer, {prop['count']} said Yes: "
        f"**{prop['p']:.1%}** ({conf} confidence interval {prop['ci_low']:.1%} to {prop['ci_high']:.1%}).",
        "",
        ("Support is statistically different from an even 50/50 split"
         if prop["p_value"] < alpha else
         "Support is not statistically distinguishable from an even 50/50 split")
        + f" ({fmt_p(prop['p_value'])}).",
        "",
    ])
    mi_prop = ctx.get("mi_proportion")
    if mi_prop is not None:
        lines.extend([
            f"Filling in missing answers by multiple imputation ({mi_prop['m']} imputations) gives an estimated "
            f"**{mi_prop['p']:.1%}** ({conf} CI {mi_prop['ci_low']:.1%} to {mi_prop['ci_high']:.1%}).",
            "",
        ])

    lines.extend(["## What predicts a Yes vote?", ""])
    cc = ctx.get("cc_table")
    if cc is not None and not cc.empty:
        lines.append(f"**Respondents with complete answers only** (logistic regression, n = {ctx['cc_n']}):")
        lines.extend(_effect_sentence(cc, alpha))
        lines.append("")
    else:
        lines.extend(["The complete-case model did not converge or had too few complete answers; see warnings in the run log.", ""])

    mi = ctx.get("mi_table")
    if mi is not None and not mi.empty:
        lines.append(f"**All respondents, with missing answers multiply imputed** "
                     f"({ctx['mi_m']} imputations, method: {ctx['mi_method']}):")
        lines.extend(_effect_sentence(mi, alpha))
        fmi = mi.loc[mi["term"] != "Intercept", "fmi"]
        if len(fmi):
            lines.append(f"- Missing answers account for about {100 * fmi.max():.0f}% of the uncertainty "
                         "in these estimates (fraction of missing information).")
        lines.append("")
        if cc is not None and not cc.empty:
            lines.extend([
                "The two approaches point the same way when their odds ratios sit on the same side of 1; "
                "see `comparison_table.md` for the side-by-side numbers.",
                "",
            ])
    lines.extend([
        "## Tables and figures",
        "- `odds_ratios_complete_case.md`, `odds_ratios_imputed.md`, `comparison_table.md`",
        "- `sample_description.md`, `statistical_tests.md`, `missingness.md`",
        "- `figures/age_distribution_by_gender.png`: age of respondents by gender",
        "- `figures/gender_counts.png`, `figures/age_by_gender_box.png`",
        "- `figures/support_by_age_group.png`: share voting Yes per age group",
        "- `figures/vote_by_gender.png`: Yes/No split by gender",
        "- `figures/missingness.png`: how many answers are missing",
        "- `figures/odds_ratio_forest.png`: complete-case vs imputed odds ratios",
        "- `figures/predicted_probability.png`: predicted support by age and gender",
        "",
    ])
    with open(out_path, "w") as f:
        f.write("\n".join(lines))


def run_report(df: pd.DataFrame, out_dir, m=N_IMPUTATIONS, method="pmm", seed=RANDOM_SEED,
               alpha=ALPHA, n_burn=N_BURN, formula=MODEL_FORMULA) -> dict:
    """Run every analysis step on a cleaned survey frame and write all outputs."""
    os.makedirs(out_dir, exist_ok=True)
    fig_dir = figures_dir(out_dir)
    configure_plot_style()

    print("Describing sample...")
    missing_df = missingness_summary(df)
    desc = describe_sample(df)
    tests = run_statistical_tests(df)
    missing_df.to_csv(os.path.join(out_dir, "missingness.csv"), index=False)
    desc["age_by_gender"].to_csv(os.path.join(out_dir, "age_by_gender.csv"), index=False)
    tests.to_csv(os.path.join(out_dir, "statistical_tests.csv"), index=False)
    write_markdown_table(missing_df, os.path.join(out_dir, "missingness.md"), "Missing answers", digits=1)
    write_markdown_table(desc["age_by_gender"], os.path.join(out_dir, "sample_description.md"),
                         "Age by gender", digits=1)
    write_markdown_table(tests, os.path.join(out_dir, "statistical_tests.md"), "Statistical tests")

    print("Computing sample proportion...")
    prop = sample_proportion(df, alpha=alpha)
    by_gender = proportion_by_group(df, GENDER_COL, alpha=alpha)
    by_age = proportion_by_group(df, AGE_GROUP_COL, alpha=alpha)
    pd.DataFrame([prop]).to_csv(os.path.join(out_dir, "proportion.csv"), index=False)
    pd.concat([by_gender, by_age], ignore_index=True).to_csv(
        os.path.join(out_dir, "proportion_by_group.csv"), index=False)
    print(f"  Yes: {prop['count']}/{prop['n']} = {prop['p']:.3f} [{prop['ci_low']:.3f}, {prop['ci_high']:.3f}]")

    print("Fitting complete-case logistic regression...")
    try:
        cc_fit = fit_logit(df, formula)
    except ValueError as e:
        warnings.warn(f"Complete-case model skipped: {e}")
        cc_fit = LogitFit(formula=formula, n=0, converged=False, messages=[str(e)])
    cc_table = pd.DataFrame()
    pred = None
    if cc_fit.converged:
        cc_table = coefficient_table(cc_fit.result, alpha=alpha)
        cc_table.to_csv(os.path.join(out_dir, "coefficients_complete_case.csv"), index=False)
        write_markdown_table(odds_ratio_table(cc_table, alpha=alpha), os.path.join(out_dir, "odds_ratios_complete_case.md"),
                             f"Odds of voting Yes: complete cases (n = {cc_fit.n})")
        ages = np.arange(int(np.nanmin(df[AGE_COL])), int(np.nanmax(df[AGE_COL])) + 1)
        pred = predicted_probabilities(cc_fit.result, ages, alpha=alpha)

    print(f"Running multiple imputation (m={m}, method={method})...")
    mi_table = pd.DataFrame()
    mi_prop = None
    mi_m = 0
    try:
        mi = run_multiple_imputation(df, formula, m=m, method=method, seed=seed, alpha=alpha, n_burn=n_burn)
    except RuntimeError as e:
        warnings.warn(f"Multiple imputation model skipped: {e}")
        mi = None
    if mi is not None:
        mi_table = mi.pooled
        mi_m = len(mi.fits)
        mi_prop = pooled_proportion(mi.datasets, alpha=alpha)
        mi_table.to_csv(os.path.join(out_dir, "coefficients_imputed.csv"), index=False)
        mi.per_copy.to_csv(os.path.join(out_dir, "coefficients_per_imputation.csv"), index=False)
        write_markdown_table(odds_ratio_table(mi_table, alpha=alpha), os.path.join(out_dir, "odds_ratios_imputed.md"),
                             f"Odds of voting Yes: multiple imputation (m = {mi_m})",
                             note="Pooled with Rubin's rules.")

    if not cc_table.empty and not mi_table.empty:
        write_markdown_table(comparison_table(cc_table, mi_table, alpha=alpha), os.path.join(out_dir, "comparison_table.md"),
                             "Complete cases vs multiple imputation",
                             note="Missing info: fraction of missing information for the imputed estimate.")

    print("Creating figures...")
    plot_age_distribution(df, fig_dir)
    plot_gender_counts(df, fig_dir)
    plot_age_by_gender_box(df, fig_dir)
    plot_vote_by_gender(df, fig_dir)
    plot_missingness(missing_df, fig_dir)
    if not by_age.empty:
        plot_support_by_age_group(by_age, prop, fig_dir)
    if not cc_table.empty and not mi_table.empty:
        plot_odds_ratio_forest(cc_table, mi_table, fig_dir)
    if pred is not None:
        plot_predicted_probability(pred, fig_dir)

    print("Writing report...")
    ctx = {
        "alpha": alpha,
        "describe": desc,
        "n_complete": n_complete_cases(df),
        "proportion": prop,
        "mi_proportion": mi_prop,
        "cc_table": cc_table,
        "cc_n": cc_fit.n,
        "mi_table": mi_table,
        "mi_m": mi_m,
        "mi_method": method,
    }
    write_report(os.path.join(out_dir, "report.md"), ctx)
    return ctx


def main(argv=None) -> int:
    args = parse_args(argv)
    print("Loading data...")
    try:
        if args.simulate is not None:
            raw = simulate_survey(args.simulate, seed=args.seed)
            os.makedirs(args.out, exist_ok=True)
            raw.to_csv(os.path.join(args.out, "simulated_survey.csv"), index=False)
            df = clean_survey(raw)
        else:
            df = load_data(args.data)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"  Respondents: {len(df)}, complete cases: {n_complete_cases(df)}")

    try:
        run_report(df, args.out, m=args.m, method=args.method, seed=args.seed,
                   alpha=args.alpha, n_burn=args.n_burn)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Done. Outputs: {args.out}/")
    return 0
