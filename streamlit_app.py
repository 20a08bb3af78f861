import contextlib
import copy
import io
import sys
import warnings
from datetime import datetime
from pathlib import Path

import streamlit as st

ROOT = Path(__file__).resolve().parent
SRC_DIR = ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))
SAMPLE_CSV = ROOT / "Data" / "survey_sample.csv"

from survey_eda.pipeline import run_pipeline
from survey_eda import config_runtime as cfg


st.set_page_config(page_title="Survey EDA", layout="wide")
st.title("Survey EDA")
st.caption("Upload a survey export, pick the type-guessing window, and explore the tidy summaries.")


def _ensure_run_dirs():
    run_id = datetime.utcnow().strftime("%Y%m%d_%H%M%S_%f")
    run_root = ROOT / "outputs" / "app_runs" / run_id
    upload_dir = run_root / "uploads"
    tables_dir = run_root / "tables"
    figures_dir = run_root / "figures"
    for d in (upload_dir, tables_dir, figures_dir):
        d.mkdir(parents=True, exist_ok=True)
    return run_root, upload_dir, tables_dir, figures_dir


def _lines(text: str) -> list:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


settings = cfg.load_settings(str(ROOT / "config" / "pipeline_settings.yaml"))
compound_cfg = settings.get("compound_questions", {})
recode_cfg = settings.get("recode", {})

with st.sidebar:
    st.header("Data")
    uploaded_file = st.file_uploader("Upload CSV", type=["csv"])
    use_sample = uploaded_file is None and SAMPLE_CSV.exists() and st.checkbox("Use bundled sample", value=True)

    st.header("Loading")
    sample_all = st.checkbox("Guess types from the whole column", value=False)
    guess_rows = st.number_input(
        "Rows sampled per column",
        min_value=1,
        value=int(settings["loader"].get("guess_rows") or 1000),
        step=100,
        disabled=sample_all,
    )

    st.header("Questions")
    multi_cols = st.text_area("Multi-select columns (one per line)", "\n".join(settings["multiselect"]["columns"]))
    delimiter = st.text_input("Multi-select delimiter", settings["multiselect"]["delimiter"])
    prefixes = st.text_area("Compound question prefixes (one per line)", "\n".join(compound_cfg["prefixes"]))
    on_unmatched = st.selectbox("Unmatched question keys", options=["drop", "error"],
                                index=["drop", "error"].index(compound_cfg.get("on_unmatched", "drop")))

    st.header("Recode")
    focus_prefix = st.text_input("Prefix to score", recode_cfg.get("focus_prefix") or "")
    positive = st.text_area("Labels counted as 1 (one per line)", "\n".join(recode_cfg["positive_labels"]))

    run_clicked = st.button("Run analysis", type="primary")

if run_clicked:
    if uploaded_file is None and not use_sample:
        st.error("Upload a CSV or use the bundled sample.")
        st.stop()

    run_settings = copy.deepcopy(settings)
    run_settings["multiselect"]["columns"] = _lines(multi_cols)
    run_settings["multiselect"]["delimiter"] = delimiter or ","
    run_settings["compound_questions"]["prefixes"] = _lines(prefixes)
    run_settings["compound_questions"]["on_unmatched"] = on_unmatched
    run_settings["recode"]["focus_prefix"] = focus_prefix or None
    run_settings["recode"]["positive_labels"] = _lines(positive)

    run_root, upload_dir, tables_dir, figures_dir = _ensure_run_dirs()
    if uploaded_file is not None:
        input_path = upload_dir / uploaded_file.name
        input_path.write_bytes(uploaded_file.getvalue())
    else:
        input_path = SAMPLE_CSV

    log = io.StringIO()
    try:
        cfg.validate_settings(run_settings)
        with contextlib.redirect_stdout(log), warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            st.session_state["run_result"] = run_pipeline(
                settings=run_settings,
                input_csv=str(input_path),
                guess_rows=0 if sample_all else int(guess_rows),
                output_dir=str(tables_dir),
                figures_dir=str(figures_dir),
            )
        st.session_state["run_log"] = log.getvalue()
    except (ValueError, KeyError, FileNotFoundError) as exc:
        st.session_state["run_result"] = None
        st.error(f"Run failed: {exc}")
        st.stop()

result = st.session_state.get("run_result")
if not result:
    st.info("Choose a CSV and press Run analysis.")
    st.stop()

loaded = result["load"]
tables = result["tables"]

summary_cols = st.columns(4)
summary_cols[0].metric("Responses", loaded.data.shape[0])
summary_cols[1].metric("Columns", loaded.data.shape[1])
summary_cols[2].metric("Parsing problems", len(loaded.problems))
summary_cols[3].metric("Unmatched answers", result["decomposition"].unmatched_count)

tab_load, tab_missing, tab_multi, tab_compound, tab_log = st.tabs(
    ["Loading", "Missing values", "Multi-select", "Compound questions", "Run log"]
)

with tab_load:
    types = sorted(loaded.column_types.items())
    st.dataframe({"column": [c for c, _ in types], "type": [t for _, t in types]}, use_container_width=True)
    if loaded.has_problems:
        st.warning("Some values did not fit the guessed type. Raise the sampling window and run again.")
        st.dataframe(loaded.problems_frame(), use_container_width=True)

with tab_missing:
    st.dataframe(tables["missing"], use_container_width=True)

with tab_multi:
    for column, counts in tables["multiselect"].items():
        st.subheader(column)
        st.bar_chart(counts.set_index("option")["count"])

with tab_compound:
    st.dataframe(tables["counts"], use_container_width=True)
    st.subheader("Share of positive answers")
    st.dataframe(tables["percent"], use_container_width=True)
    for path in result["figures"]:
        st.image(path)
    unmatched = result["decomposition"].unmatched
    if not unmatched.empty:
        st.subheader("Answers with no known prefix")
        st.dataframe(unmatched, use_container_width=True)

with tab_log:
    st.code(st.session_state.get("run_log", ""))
