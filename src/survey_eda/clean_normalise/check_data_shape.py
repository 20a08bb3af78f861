import argparse
from pathlib import Path

from ..config_runtime import load_settings, resolve_base_dir, resolve_path
from ..loading.csv_loader import load_survey
from .missing_values import missing_summary, normalise_missing


def main():
    package_dir = Path(__file__).resolve().parents[1]
    default_settings = package_dir.parent.parent / "config/pipeline_settings.yaml"

    parser = argparse.ArgumentParser(description="Data shape, type-guess and missing-value audit.")
    parser.add_argument("--settings", default=str(default_settings), help="Path to pipeline_settings.yaml")
    parser.add_argument("--input", dest="input_csv", default=None, help="Override input CSV path")
    parser.add_argument("--guess-rows", dest="guess_rows", type=int, default=None,
                        help="Rows sampled per column for type inference (0 = whole column)")
    parser.add_argument("--top", type=int, default=None, help="Rows of the missing-value table to print")
    args = parser.parse_args()

    settings_path = Path(args.settings)
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings not found: {settings_path}")

    settings = load_settings(str(settings_path))
    paths_cfg = settings.get("paths", {})
    loader_cfg = settings.get("loader", {})

    base_dir = resolve_base_dir(settings, settings_path=settings_path, pipeline_dir=package_dir)

    input_csv = args.input_csv or paths_cfg.get("input_csv")
    if not input_csv:
        raise ValueError("input_csv is required (pass --input or set paths.input_csv in settings).")

    input_path = resolve_path(base_dir, input_csv)
    if not input_path.exists():
        raise FileNotFoundError(f"Input CSV not found: {input_path}")

    guess_rows = args.guess_rows if args.guess_rows is not None else loader_cfg.get("guess_rows")
    loaded = load_survey(
        input_path,
        guess_rows=guess_rows or None,
        na_values=loader_cfg.get("na_values"),
        encoding=loader_cfg.get("encoding", "utf-8"),
    )
    df = normalise_missing(loaded.data, settings.get("missing", {}).get("extra_tokens"))

    print("Data shape:")
    print(f"  rows: {df.shape[0]}")
    print(f"  cols: {df.shape[1]}")
    print("")

    type_counts = {}
    for column_type in loaded.column_types.values():
        type_counts[column_type] = type_counts.get(column_type, 0) + 1
    print("Guessed column types:")
    for column_type, n in sorted(type_counts.items()):
        print(f"  {column_type}: {n}")
    print("")

    if loaded.has_problems:
        problems = loaded.problems_frame()
        print(f"Parsing problems: {len(problems)} (columns: {', '.join(loaded.problem_columns()) or '-'})")
        print(problems.head(20).to_string(index=False))
        print("")

    top = args.top or settings.get("missing", {}).get("top_n", 20)
    summary = missing_summary(df)
    print("Missing values per column:")
    print(summary.head(top).to_string(index=False))


if __name__ == "__main__":
    main()
