"""LangGraph upload workflow: graph nodes and workflow builder.

Each node accepts a SessionState dict and returns the updated state. All
nodes wrap their logic in try/except, log errors to state["errors"], and
append timestamped entries to state["activity_log"].
"""

from __future__ import annotations

import logging
import os
from typing import Any

from data_clinic.config import settings
from data_clinic.dataset_io import load_dataset
from data_clinic.models import SessionState
from data_clinic.preprocessor import preprocess
from data_clinic.report_generator import generate_report
from data_clinic.state_log import append_activity, append_error, ensure_list
from data_clinic.tools.charts import auto_histograms
from data_clinic.tools.eda import correlation_matrix, describe_numeric
from data_clinic.tools.inspection import column_types, summarize_dataset
from data_clinic.tools.plotting import render_charts, render_correlation_heatmap
from data_clinic.tools.suggestions import generate_suggestions

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _output_dir(state: dict) -> str:
    return state.get("output_dir") or settings.OUTPUT_DIR


def refresh_statistics(state: dict) -> None:
    """Recompute everything derived from state["df"] except the suggestion list.

    Covers column types, descriptive statistics, correlations and the dataset
    summary, so none of them outlive a change to the table.
    """
    df = state.get("df")
    if df is None:
        state["column_types"] = {}
        state["stats"] = {}
        state["correlations"] = {}
        state["insights"] = None
        return
    state["column_types"] = {col: kind.value for col, kind in column_types(df).items()}
    state["stats"] = describe_numeric(df)
    state["correlations"] = correlation_matrix(df)
    state["insights"] = summarize_dataset(df, state["stats"] or None)


def refresh_analysis(state: dict) -> None:
    """Recompute statistics and regenerate the suggestions for state["df"]."""
    refresh_statistics(state)
    df = state.get("df")
    state["suggestions"] = generate_suggestions(df) if df is not None else []


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


def load_node(state: SessionState) -> SessionState:
    """Parse the uploaded file into raw records."""
    ensure_list(state, "errors")
    ensure_list(state, "activity_log")

    try:
        file_path = state.get("file_path", "")
        result = load_dataset(file_path)

        if result["error"]:
            append_error(state, f"Load error: {result['error']}")
            append_activity(state, "load", f"Failed to load dataset: {result['error']}")
            state["raw_rows"] = None
            return state

        rows = result["rows"]
        state["raw_rows"] = rows
        append_activity(state, "load", f"Loaded {len(rows)} rows from {file_path}.")
    except Exception as exc:
        append_error(state, f"load exception: {exc}")
        append_activity(state, "load", f"Exception: {exc}")
        state["raw_rows"] = None

    return state


def preprocess_node(state: SessionState) -> SessionState:
    """Run the preprocessing pipeline over the raw records."""
    ensure_list(state, "errors")
    ensure_list(state, "steps")

    try:
        rows = state.get("raw_rows") or []
        width = len({key for row in rows if isinstance(row, dict) for key in row})
        state["original_shape"] = (len(rows), width)

        df, steps = preprocess(rows)
        state["df"] = df
        state["steps"] = list(steps)
        append_activity(
            state,
            "preprocess",
            f"Preprocessed {len(rows)} rows into {len(df)} rows with {len(steps)} steps.",
        )
    except Exception as exc:
        append_error(state, f"preprocess exception: {exc}")
        append_activity(state, "preprocess", f"Exception: {exc}")
        state["df"] = None

    return state


def analyze_node(state: SessionState) -> SessionState:
    """Classify columns, compute statistics and build the suggestion list."""
    ensure_list(state, "errors")

    try:
        df = state.get("df")
        refresh_analysis(state)
        if df is None or df.empty:
            append_activity(state, "analyze", "No data to analyze.")
            return state

        append_activity(
            state,
            "analyze",
            f"Described {len(state['stats'])} numeric columns and generated "
            f"{len(state['suggestions'])} suggestions.",
        )
    except Exception as exc:
        append_error(state, f"analyze exception: {exc}")
        append_activity(state, "analyze", f"Exception: {exc}")

    return state


def visualize_node(state: SessionState) -> SessionState:
    """Pick the top histograms and render them with a correlation heatmap."""
    ensure_list(state, "errors")
    ensure_list(state, "figure_paths")

    try:
        df = state.get("df")
        if df is None or df.empty:
            state["charts"] = []
            append_activity(state, "visualize", "No data to visualize.")
            return state

        charts = auto_histograms(df)
        state["charts"] = charts

        figures_dir = os.path.join(_output_dir(state), "figures")
        paths = render_charts(charts, figures_dir)
        heatmap_path = render_correlation_heatmap(df, figures_dir)
        if heatmap_path:
            paths.append(heatmap_path)
        state["figure_paths"] = state["figure_paths"] + paths
        append_activity(
            state, "visualize", f"Built {len(charts)} charts and saved {len(paths)} figures."
        )
    except Exception as exc:
        append_error(state, f"visualize exception: {exc}")
        append_activity(state, "visualize", f"Exception: {exc}")

    return state


def report_node(state: SessionState) -> SessionState:
    """Generate the Markdown report from accumulated state data."""
    ensure_list(state, "errors")

    try:
        df = state.get("df")
        cleaned_shape = (df.shape[0], df.shape[1]) if df is not None else (0, 0)

        report_path = generate_report(
            original_shape=state.get("original_shape") or (0, 0),
            cleaned_shape=cleaned_shape,
            steps=state.get("steps") or [],
            column_types=state.get("column_types") or {},
            stats=state.get("stats") or {},
            correlations=state.get("correlations") or {},
            suggestions=state.get("suggestions") or [],
            summary=state.get("insights"),
            figure_paths=state.get("figure_paths") or [],
            output_dir=_output_dir(state),
            errors=state.get("errors") or [],
        )
        state["report_path"] = report_path
        append_activity(state, "report", f"Report generated at {report_path}.")
    except Exception as exc:
        append_error(state, f"report exception: {exc}")
        append_activity(state, "report", f"Exception: {exc}")
        state["report_path"] = None

    return state


# ---------------------------------------------------------------------------
# Graph builder
# ---------------------------------------------------------------------------


def _after_load(state: SessionState) -> str:
    """Conditional edge: skip straight to the report when loading failed."""
    return "preprocess" if state.get("raw_rows") is not None else "report"


def build_graph() -> Any:
    """Build and compile the LangGraph upload workflow.

    Nodes: load → preprocess → analyze → visualize → report.
    A failed load goes directly to the report so the error is still written.

    Returns:
        A compiled LangGraph ``StateGraph``.
    """
    from langgraph.graph import END, START, StateGraph

    graph = StateGraph(SessionState)

    graph.add_node("load", load_node)
    graph.add_node("preprocess", preprocess_node)
    graph.add_node("analyze", analyze_node)
    graph.add_node("visualize", visualize_node)
    graph.add_node("report", report_node)

    graph.add_edge(START, "load")
    graph.add_conditional_edges(
        "load",
        _after_load,
        {"preprocess": "preprocess", "report": "report"},
    )
    graph.add_edge("preprocess", "analyze")
    graph.add_edge("analyze", "visualize")
    graph.add_edge("visualize", "report")
    graph.add_edge("report", END)

    return graph.compile()


def initial_state(file_path: str, output_dir: str | None = None) -> SessionState:
    """Fresh workflow state for one uploaded file."""
    return {
        "file_path": file_path,
        "output_dir": output_dir or settings.OUTPUT_DIR,
        "raw_rows": None,
        "df": None,
        "original_shape": None,
        "steps": [],
        "column_types": {},
        "suggestions": [],
        "stats": {},
        "correlations": {},
        "insights": None,
        "charts": [],
        "figure_paths": [],
        "report_path": None,
        "messages": [],
        "errors": [],
        "activity_log": [],
    }
