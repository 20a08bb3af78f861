"""
Tests for the data-shape audit command (survey-eda-check).
"""

import sys

import pytest

from survey_eda.clean_normalise.check_data_shape import main


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "pipeline_settings.yaml"
    path.write_text(f"paths:\n  base_dir: '{tmp_path.as_posix()}'\n", encoding="utf-8")
    return path


def _run(monkeypatch, capsys, *args):
    monkeypatch.setattr(sys, "argv", ["survey-eda-check", *args])
    main()
    return capsys.readouterr().out


@pytest.mark.filterwarnings("ignore::UserWarning")
def test_small_window_reports_problems(monkeypatch, capsys, settings_file, survey_csv):
    out = _run(monkeypatch, capsys, "--settings", str(settings_file), "--input", str(survey_csv), "--guess-rows", "2")

    assert "rows: 5" in out
    assert "cols: 8" in out
    assert "Guessed column types:" in out
    assert "logical: 1" in out
    assert "Parsing problems: 3 (columns: Age)" in out
    assert "unknown" in out
    assert "Missing values per column:" in out
    assert "missing_pct" in out


def test_whole_column_window_has_no_problems(monkeypatch, capsys, settings_file, survey_csv):
    out = _run(monkeypatch, capsys, "--settings", str(settings_file), "--input", str(survey_csv), "--guess-rows", "0")

    assert "text: 8" in out
    assert "Parsing problems" not in out
    assert "Missing values per column:" in out


def test_top_limits_missing_table(monkeypatch, capsys, settings_file, survey_csv):
    out = _run(
        monkeypatch, capsys,
        "--settings", str(settings_file), "--input", str(survey_csv), "--guess-rows", "0", "--top", "1",
    )
    table = out.split("Missing values per column:\n", 1)[1].strip().splitlines()
    assert len(table) == 2


def test_missing_settings(monkeypatch, tmp_path, survey_csv):
    monkeypatch.setattr(sys, "argv", ["survey-eda-check", "--settings", str(tmp_path / "none.yaml"), "--input", str(survey_csv)])
    with pytest.raises(FileNotFoundError, match="Settings not found"):
        main()
