from referendum_survey.report import main


def test_report_on_simulated_data(tmp_path):
    out = tmp_path / "out"
    assert main(["--simulate", "300", "--out", str(out), "--m", "3", "--seed", "4"]) == 0
    report = (out / "report.md").read_text()
    assert "How many support the referendum?" in report
    assert "multiply imputed" in report
    for name in ["simulated_survey.csv", "proportion.csv", "coefficients_complete_case.csv",
                 "coefficients_imputed.csv", "comparison_table.md", "odds_ratios_imputed.md"]:
        assert (out / name).exists(), name
    for fig in ["age_distribution_by_gender", "odds_ratio_forest", "predicted_probability"]:
        assert (out / "figures" / f"{fig}.png").exists(), fig


def test_report_on_csv_with_iterative_method(tmp_path):
    rows = ["referendum,age,gender"]
    for i in range(120):
        vote = "Yes" if (i * 7) % 10 < 5 + (i % 3 == 0) else "No"
        if i % 11 == 0:
            vote = ""
        gender = "Female" if i % 2 else "Male"
        rows.append(f"{vote},{20 + (i * 13) % 60},{gender}")
    path = tmp_path / "survey.csv"
    path.write_text("\n".join(rows) + "\n")
    out = tmp_path / "out"
    assert main(["--data", str(path), "--out", str(out), "--m", "3", "--method", "iterative"]) == 0
    assert (out / "report.md").exists()


def test_report_missing_file(tmp_path, capsys):
    assert main(["--data", str(tmp_path / "nope.csv"), "--out", str(tmp_path)]) == 1
    assert "Error" in capsys.readouterr().err


def test_report_bad_columns(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("vote,years\nYes,30\n")
    assert main(["--data", str(path), "--out", str(tmp_path / "out")]) == 1


def test_report_with_single_valued_complete_cases(tmp_path):
    rows = ["referendum,age,gender"]
    rows += [f"Yes,{20 + i % 60},{'Female' if i % 2 else 'Male'}" for i in range(80)]
    rows.append("No,,Male")
    path = tmp_path / "survey.csv"
    path.write_text("\n".join(rows) + "\n")
    out = tmp_path / "out"
    assert main(["--data", str(path), "--out", str(out), "--m", "3"]) == 0
    report = (out / "report.md").read_text()
    assert "did not converge" in report
    assert (out / "proportion.csv").exists()
    assert not (out / "coefficients_complete_case.csv").exists()


def test_report_tables_use_requested_level(tmp_path):
    out = tmp_path / "out"
    assert main(["--simulate", "300", "--out", str(out), "--m", "3", "--seed", "4", "--alpha", "0.1"]) == 0
    for name in ["odds_ratios_complete_case.md", "odds_ratios_imputed.md", "comparison_table.md"]:
        text = (out / name).read_text()
        assert "90% CI" in text, name
        assert "95% CI" not in text, name
    assert "90% confidence interval" in (out / "report.md").read_text()
