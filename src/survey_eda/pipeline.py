from pathlib import Path
import pandas as pd

from .config_runtime import (
    _get_project_root,
    resolve_base_dir,
    resolve_path,
    load_settings,
    build_recode_map,
)

from .loading.csv_loader import load_survey
from .clean_normalise.missing_values import normalise_missing, missing_summary
from .tidy.reshape import add_row_id, select_columns, to_long, split_multiselect, count_multiselect
from .tidy.decompose import decompose
from .analysis.aggregate import count_responses, percent_positive

# ---------------------------------------------------
# Pipeline runner
# ---------------------------------------------------

def _write_table(df: pd.DataFrame, output_path: Path, filename: str, enabled: bool):
    if not enabled or df is None:
        return None
    out_file = output_path / filename
    df.to_csv(out_file, index=False)
    return out_file


def _safe_name(value: str) -> str:
    return "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in str(value))


def value_distribution(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """Respondents per distinct non-missing value of `column`, ordered by value."""
    counts = df[column].dropna().value_counts().rename_axis(column).reset_index(name="count")
    return counts.sort_values(column).reset_index(drop=True)


def _render_figures(tables: dict, settings: dict, figures_path: Path) -> list:
    # matplotlib is only needed when figures are written
    from .viz.charts import plot_bar_counts, plot_point_percentages, plot_line, plot_stacked_counts

    compound_cfg = settings.get("compound_questions", {}) or {}
    value_col = compound_cfg.get("value_column", "response")
    recode_cfg = settings.get("recode", {}) or {}
    top_n = (settings.get("missing", {}) or {}).get("top_n", 20)
    saved = []

    missing = tables.get("missing")
    if missing is not None and not missing.empty:
        _, _, path = plot_bar_counts(
            missing[missing["missing_count"] > 0],
            label_col="column",
            count_col="missing_count",
            title="Missing values per column",
            out_path=figures_path / "missing_values.png",
            top_n=top_n,
            xlabel="Missing values",
        )
        saved.append(path)

    for column, counts in (tables.get("multiselect") or {}).items():
        if counts.empty:
            continue
        _, _, path = plot_bar_counts(
            counts,
            label_col="option",
            title=f"{column}: selected options",
            out_path=figures_path / f"multiselect_{_safe_name(column)}.png",
        )
        saved.append(path)

    counts = tables.get("counts")
    if counts is not None and not counts.empty:
        for category, sub in counts.groupby("category", sort=True):
            _, _, path = plot_stacked_counts(
                sub,
                label_col="aspect",
                stack_col=value_col,
                title=f"{category}: responses per aspect",
                out_path=figures_path / f"compound_{_safe_name(category)}.png",
            )
            saved.append(path)

    pct = tables.get("percent")
    if pct is not None and not pct.empty:
        focus = recode_cfg.get("focus_prefix", "")
        positive = " / ".join(recode_cfg.get("positive_labels") or [])
        _, _, path = plot_point_percentages(
            pct,
            label_col="aspect",
            title=f"{focus}: share answering {positive}",
            out_path=figures_path / "percent_positive.png",
        )
        saved.append(path)

    dist = tables.get("distribution")
    if dist is not None and not dist.empty:
        column = dist.columns[0]
        _, _, path = plot_line(
            dist,
            x_col=column,
            y_col="count",
            title=f"Respondents by {column}",
            out_path=figures_path / f"distribution_{_safe_name(column)}.png",
        )
        saved.append(path)

    return saved


def run_pipeline(
    settings_path: str = "config/pipeline_settings.yaml",
    settings: dict = None,
    input_csv: str = None,
    guess_rows: int = None,
    output_dir: str = None,
    figures_dir: str = None,
    write_figures: bool = None,
):
    """
    End-to-end exploratory run over one survey CSV.

    Load (sampled type inference + problem report) -> missing values ->
    multi-select counts -> wide/long reshape of compound questions ->
    (category, aspect) decomposition -> counts and recoded percentages ->
    CSV tables and charts.

    `guess_rows=0` samples the whole column; None falls back to settings.
    """
    pipeline_dir = Path(__file__).resolve().parent
    project_root = _get_project_root(start=pipeline_dir)
    if settings is None:
        settings = load_settings(settings_path)

    paths_cfg = settings.get("paths", {}) or {}
    base_dir = resolve_base_dir(settings, settings_path=settings_path, project_root=project_root, pipeline_dir=pipeline_dir)
    loader_cfg = settings.get("loader", {}) or {}
    missing_cfg = settings.get("missing", {}) or {}
    multi_cfg = settings.get("multiselect", {}) or {}
    compound_cfg = settings.get("compound_questions", {}) or {}
    recode_cfg = settings.get("recode", {}) or {}
    output_cfg = settings.get("output", {}) or {}
    dist_cfg = settings.get("distribution", {}) or {}

    input_csv = input_csv or paths_cfg.get("input_csv")
    if not input_csv:
        raise ValueError("input_csv is required (pass --input or set paths.input_csv in pipeline_settings.yaml).")
    input_path = resolve_path(base_dir, input_csv)
    if not input_path.exists():
        raise FileNotFoundError(f"Input CSV not found: {input_path}")

    if guess_rows is None:
        guess_rows = loader_cfg.get("guess_rows", 1000)
    if guess_rows == 0:
        guess_rows = None

    output_dir = output_dir or paths_cfg.get("output_tables") or "outputs/tables"
    output_path = resolve_path(base_dir, output_dir)
    write_tables = bool(output_cfg.get("write_tables", True))
    if write_tables:
        output_path.mkdir(parents=True, exist_ok=True)

    if write_figures is None:
        write_figures = bool(output_cfg.get("write_figures", True))
    figures_dir = figures_dir or paths_cfg.get("output_figures") or "outputs/figures"
    figures_path = resolve_path(base_dir, figures_dir)

    print("Loading input...")
    loaded = load_survey(
        input_path,
        guess_rows=guess_rows,
        na_values=loader_cfg.get("na_values"),
        encoding=loader_cfg.get("encoding", "utf-8"),
    )
    df = loaded.data
    print(f"   Loaded {df.shape[0]} responses x {df.shape[1]} columns (guess_rows={guess_rows})")

    problems = loaded.problems_frame()
    if loaded.has_problems:
        print(f"   {len(problems)} parsing problems in {len(loaded.problem_columns())} columns; "
              "re-run with a larger --guess-rows if a column was guessed from blank rows.")
        print(problems.head(10).to_string(index=False))
    _write_table(problems, output_path, output_cfg.get("problems_filename", "parse_problems.csv"), write_tables)

    print("Normalising missing values...")
    df = normalise_missing(df, missing_cfg.get("extra_tokens"))
    missing = missing_summary(df)
    print("Missing values (top columns):")
    print(missing.head(int(missing_cfg.get("top_n", 20))).to_string(index=False))
    _write_table(missing, output_path, output_cfg.get("missing_filename", "missing_summary.csv"), write_tables)

    print("Counting multi-select fields...")
    delimiter = multi_cfg.get("delimiter", ",")
    multi_id = multi_cfg.get("id_column") or "respondent_id"
    df = add_row_id(df, multi_id)
    multiselect = {}
    selections = {}
    for column in multi_cfg.get("columns") or []:
        if column not in df.columns:
            print(f"   Skipping {column} (not in data)")
            continue
        counts = count_multiselect(df, column, delimiter)
        multiselect[column] = counts
        print(f"   {column}: {len(counts)} options, {int(counts['count'].sum())} selections")
        filename = output_cfg.get("multiselect_filename", "multiselect_{column}.csv").format(column=_safe_name(column))
        _write_table(counts, output_path, filename, write_tables)
        selections[column] = split_multiselect(df, column, delimiter, id_col=multi_id)
        filename = output_cfg.get("selections_filename", "multiselect_{column}_selections.csv").format(column=_safe_name(column))
        _write_table(selections[column], output_path, filename, write_tables)

    print("Reshaping compound questions...")
    id_col = compound_cfg.get("id_column", "respondent_id")
    key_col = compound_cfg.get("key_column", "question")
    value_col = compound_cfg.get("value_column", "response")
    prefixes = compound_cfg.get("prefixes") or []
    df = add_row_id(df, id_col)
    selected = select_columns(df.columns, prefixes, match=compound_cfg.get("match", "prefix"))
    selected = [c for c in selected if c != id_col]
    long_df = to_long(df, selected, id_col=id_col, key_col=key_col, value_col=value_col)
    print(f"   {len(selected)} columns -> {len(long_df)} answers")

    decomposition = decompose(
        long_df,
        prefixes,
        key_col=key_col,
        on_unmatched=compound_cfg.get("on_unmatched", "drop"),
    )
    if decomposition.unmatched_count:
        keys = decomposition.unmatched_keys(key_col)
        print(f"   {decomposition.unmatched_count} answers from {len(keys)} questions match no known category: "
              f"{', '.join(keys[:5])}{' ...' if len(keys) > 5 else ''}")
    _write_table(decomposition.unmatched, output_path, output_cfg.get("unmatched_filename", "compound_unmatched.csv"), write_tables)

    counts = count_responses(decomposition.decomposed, ["category", "aspect", value_col], value_col=value_col)
    _write_table(counts, output_path, output_cfg.get("counts_filename", "compound_counts.csv"), write_tables)

    print("Computing recoded percentages...")
    recode = build_recode_map(settings)
    focus = recode_cfg.get("focus_prefix")
    decomposed = decomposition.decomposed
    if focus:
        decomposed = decomposed[decomposed["category"] == focus]
    pct = percent_positive(decomposed, ["category", "aspect"], value_col, recode)
    if not pct.empty:
        print(f"   Share answering {recode.positive_labels}:")
        print(pct.head(10).to_string(index=False))
    _write_table(pct, output_path, output_cfg.get("percent_filename", "percent_positive.csv"), write_tables)

    distribution = None
    dist_col = dist_cfg.get("column")
    if dist_col and dist_col in df.columns:
        distribution = value_distribution(df, dist_col)
        _write_table(distribution, output_path, f"distribution_{_safe_name(dist_col)}.csv", write_tables)

    tables = {
        "problems": problems,
        "missing": missing,
        "multiselect": multiselect,
        "selections": selections,
        "long": long_df,
        "counts": counts,
        "percent": pct,
        "distribution": distribution,
    }

    figures = []
    if write_figures:
        print(f"Rendering charts to {figures_path}...")
        figures = _render_figures(tables, settings, figures_path)

    print("Pipeline complete.")
    return {
        "load": loaded,
        "data": df,
        "decomposition": decomposition,
        "tables": tables,
        "figures": figures,
    }


def _main():
    import argparse

    parser = argparse.ArgumentParser(description="Run the exploratory survey pipeline.")
    parser.add_argument("--settings", default="config/pipeline_settings.yaml", help="Path to pipeline_settings.yaml")
    parser.add_argument("--input", dest="input_csv", default=None, help="Input CSV path")
    parser.add_argument("--guess-rows", dest="guess_rows", type=int, default=None,
                        help="Rows sampled per column for type inference (0 = whole column)")
    parser.add_argument("--output-dir", dest="output_dir", default=None, help="Directory for CSV tables")
    parser.add_argument("--figures-dir", dest="figures_dir", default=None, help="Directory for chart images")
    parser.add_argument("--no-figures", dest="write_figures", action="store_false", help="Skip chart rendering")
    parser.set_defaults(write_figures=None)
    args = parser.parse_args()

    if args.guess_rows is not None and args.guess_rows < 0:
        parser.error("--guess-rows must be >= 0")

    run_pipeline(
        settings_path=args.settings,
        input_csv=args.input_csv,
        guess_rows=args.guess_rows,
        output_dir=args.output_dir,
        figures_dir=args.figures_dir,
        write_figures=args.write_figures,
    )


if __name__ == "__main__":
    _main()
