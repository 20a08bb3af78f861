import os
import copy
from pathlib import Path

from .analysis.aggregate import RecodeMap
from .tidy.decompose import UNMATCHED_POLICIES

# ---------------------------------------------------
# Config + path helpers
# ---------------------------------------------------

def _find_project_root(start: Path, max_depth: int = 8):
    candidate = start if start.is_dir() else start.parent
    for _ in range(max_depth):
        if (candidate / "pyproject.toml").exists():
            return candidate
        if (candidate / "src" / "survey_eda").exists():
            return candidate
        if (candidate / "config" / "pipeline_settings.yaml").exists():
            return candidate
        if candidate.parent == candidate:
            break
        candidate = candidate.parent
    return None


def _expand_path_tokens(value: str) -> str:
    if value is None:
        return value
    value = os.path.expandvars(value)
    return str(Path(value).expanduser())


def _get_project_root(start: Path = None):
    env_root = os.environ.get("PROJECT_ROOT") or os.environ.get("SURVEY_EDA_PROJECT_ROOT")
    if env_root:
        return Path(_expand_path_tokens(env_root))

    base = start or Path(__file__).resolve()
    root = _find_project_root(base)
    if root:
        return root

    return base if base.is_dir() else base.parent


def resolve_settings_path(settings_path, project_root: Path = None, pipeline_dir: Path = None) -> Path:
    p = Path(settings_path)
    if p.is_absolute():
        return p
    pipeline_dir = pipeline_dir or Path(__file__).resolve().parent
    project_root = project_root or _get_project_root(start=pipeline_dir)

    candidate = project_root / p
    if candidate.exists():
        return candidate

    candidate = pipeline_dir / p
    if candidate.exists():
        return candidate

    return candidate


def resolve_base_dir(settings: dict, settings_path: str = None, project_root: Path = None, pipeline_dir: Path = None) -> Path:
    pipeline_dir = pipeline_dir or Path(__file__).resolve().parent
    project_root = project_root or _get_project_root(start=pipeline_dir)
    if settings_path:
        resolved_settings = resolve_settings_path(settings_path, project_root=project_root, pipeline_dir=pipeline_dir)
        project_root = _find_project_root(resolved_settings) or project_root

    paths_cfg = (settings or {}).get("paths", {}) or {}
    base_dir_cfg = paths_cfg.get("base_dir")

    if not base_dir_cfg:
        return project_root

    base_dir = Path(_expand_path_tokens(str(base_dir_cfg)))
    if base_dir.is_absolute():
        return base_dir

    return (project_root / base_dir).resolve()


def resolve_path(base_dir, relative_path):
    if relative_path is None:
        return None
    base = Path(base_dir)
    if not base.is_absolute():
        base = base.resolve()
    p = Path(_expand_path_tokens(str(relative_path)))
    if p.is_absolute():
        return p
    candidate = base / p
    if candidate.exists():
        return candidate
    alt = base / p.name
    if alt.exists():
        return alt
    return candidate


def load_yaml(path):
    if path is None:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    try:
        import yaml
    except Exception as exc:
        raise ImportError("Missing dependency: pyyaml. Install with `pip install pyyaml`.") from exc
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data or {}


def _default_settings():
    return {
        "loader": {
            # rows sampled per column for type inference; null = whole column
            "guess_rows": 1000,
            "na_values": ["", "NA"],
            "encoding": "utf-8",
        },
        "missing": {
            "extra_tokens": [],
            "top_n": 20,
        },
        "multiselect": {
            "columns": ["LearningPlatformSelect", "WorkToolsSelect"],
            "delimiter": ",",
            "id_column": "respondent_id",
        },
        "compound_questions": {
            "prefixes": ["LearningPlatformUsefulness", "JobFactor", "WorkChallengeFrequency"],
            "match": "prefix",
            "id_column": "respondent_id",
            "key_column": "question",
            "value_column": "response",
            "on_unmatched": "drop",
        },
        "recode": {
            "focus_prefix": "WorkChallengeFrequency",
            "positive_labels": ["Often", "Most of the time"],
            "negative_labels": [],
            "default": 0,
        },
        "distribution": {
            # numeric column drawn as a line chart of respondent counts
            "column": "Age",
        },
        "output": {
            "write_tables": True,
            "write_figures": True,
            "problems_filename": "parse_problems.csv",
            "missing_filename": "missing_summary.csv",
            "multiselect_filename": "multiselect_{column}.csv",
            "selections_filename": "multiselect_{column}_selections.csv",
            "counts_filename": "compound_counts.csv",
            "unmatched_filename": "compound_unmatched.csv",
            "percent_filename": "percent_positive.csv",
        },
        "paths": {
            # base_dir is resolved relative to the project root (or absolute)
            "base_dir": ".",
            "input_csv": None,
            "output_tables": "outputs/tables",
            "output_figures": "outputs/figures",
        },
    }


def _deep_merge(base: dict, override: dict) -> dict:
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            base[k] = _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def validate_settings(settings: dict) -> dict:
    guess_rows = (settings.get("loader") or {}).get("guess_rows")
    if guess_rows is not None and (not isinstance(guess_rows, int) or guess_rows < 1):
        raise ValueError(f"Invalid settings: loader.guess_rows must be a positive integer or null, got {guess_rows!r}.")

    compound_cfg = settings.get("compound_questions") or {}
    prefixes = compound_cfg.get("prefixes")
    if not isinstance(prefixes, list) or not prefixes:
        raise ValueError("Invalid settings: compound_questions.prefixes must be a non-empty list.")
    policy = compound_cfg.get("on_unmatched", "drop")
    if policy not in UNMATCHED_POLICIES:
        raise ValueError(
            f"Invalid settings: compound_questions.on_unmatched must be one of {sorted(UNMATCHED_POLICIES)}, got {policy!r}."
        )

    multi_cols = (settings.get("multiselect") or {}).get("columns")
    if multi_cols is not None and not isinstance(multi_cols, list):
        raise ValueError("Invalid settings: multiselect.columns must be a list.")

    if "paths" not in settings or not isinstance(settings["paths"], dict):
        raise ValueError("Invalid settings: paths must be a mapping.")
    return settings


def load_settings(settings_path: str = "config/pipeline_settings.yaml", validate: bool = True, apply_defaults: bool = True):
    pipeline_dir = Path(__file__).resolve().parent
    project_root = _get_project_root(start=pipeline_dir)
    resolved = resolve_settings_path(settings_path, project_root=project_root, pipeline_dir=pipeline_dir)
    data = load_yaml(resolved)

    if apply_defaults:
        settings = _deep_merge(_default_settings(), data)
    else:
        settings = copy.deepcopy(data)

    if validate:
        validate_settings(settings)

    return settings


def build_recode_map(settings: dict) -> RecodeMap:
    """
    Build the explicit label -> {0, 1} recode from the `recode` section.

    `default: null` in YAML makes unknown labels an error instead of 0.
    """
    recode_cfg = (settings or {}).get("recode", {}) or {}
    positive = recode_cfg.get("positive_labels") or []
    if not positive:
        raise ValueError("recode.positive_labels must list at least one label.")
    return RecodeMap.from_labels(
        positive=positive,
        negative=recode_cfg.get("negative_labels") or [],
        default=recode_cfg.get("default", 0),
    )
