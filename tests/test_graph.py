"""Unit tests for the upload workflow nodes in data_clinic/graph.py."""

from __future__ import annotations

import os
from unittest.mock import patch

import pandas as pd

from data_clinic.graph import (
    _after_load,
    analyze_node,
    build_graph,
    initial_state,
    load_node,
    preprocess_node,
    refresh_analysis,
    refresh_statistics,
    report_node,
    visualize_node,
)


def _make_state(**overrides) -> dict:
    """Return a fresh state with *overrides* applied."""
    state = initial_state("", output_dir=overrides.pop("output_dir", "output"))
    state.update(overrides)
    return state


# ---------------------------------------------------------------------------
# Helper function tests
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_refresh_analysis_without_table(self):
        state = _make_state(suggestions=["stale"])
        refresh_analysis(state)
        assert state["suggestions"] == []
        assert state["insights"] is None

    def test_refresh_statistics_follows_table(self):
        state = _make_state(
            df=pd.DataFrame({"a": ["1", "2", "3"], "b": ["2", "4", "7"]}, dtype=object),
            suggestions=["kept"],
        )
        refresh_statistics(state)
        assert list(state["stats"]) == ["a", "b"]
        assert list(state["correlations"]) == ["a_b"]
        assert state["insights"]["total_columns"] == 2
        # Suggestions are left alone
        assert state["suggestions"] == ["kept"]

    def test_initial_state_defaults(self):
        state = initial_state("data.csv")
        assert state["file_path"] == "data.csv"
        assert state["errors"] == []
        assert state["df"] is None


# ---------------------------------------------------------------------------
# Node tests
# ---------------------------------------------------------------------------


class TestLoadNode:
    def test_loads_rows(self, csv_file):
        state = load_node(_make_state(file_path=csv_file))
        assert len(state["raw_rows"]) == 4
        assert state["errors"] == []
        assert state["activity_log"][-1]["node"] == "load"

    def test_missing_file_records_error(self):
        state = load_node(_make_state(file_path="/no/such/file.csv"))
        assert state["raw_rows"] is None
        assert state["errors"][0].startswith("Load error: File not found")

    def test_unexpected_exception_is_caught(self, csv_file):
        with patch("data_clinic.graph.load_dataset", side_effect=RuntimeError("disk gone")):
            state = load_node(_make_state(file_path=csv_file))
        assert state["raw_rows"] is None
        assert state["errors"] == ["load exception: disk gone"]


class TestPreprocessNode:
    def test_cleans_rows(self):
        rows = [
            {"Name": "alice", "Age": "30"},
            {"Name": "bob", "Age": ""},
            {"Name": "alice", "Age": "30"},
        ]
        state = preprocess_node(_make_state(raw_rows=rows))
        assert state["original_shape"] == (3, 2)
        assert isinstance(state["df"], pd.DataFrame)
        assert len(state["df"]) < 3
        assert "Removed 1 duplicate rows" in state["steps"]

    def test_no_rows(self):
        state = preprocess_node(_make_state(raw_rows=[]))
        assert state["df"].empty
        assert state["steps"] == ["No valid data rows available for processing"]


class TestAnalyzeNode:
    def test_populates_stats_and_suggestions(self, sales_df):
        state = analyze_node(_make_state(df=sales_df))
        assert list(state["stats"]) == ["Year", "Sales", "Units"]
        assert len(state["correlations"]) == 3
        assert state["column_types"]["Region"] == "categorical"
        assert state["suggestions"]
        assert state["insights"]["total_rows"] == 6

    def test_empty_table(self):
        state = analyze_node(_make_state(df=pd.DataFrame()))
        assert state["stats"] == {}
        assert state["suggestions"] == []
        assert state["activity_log"][-1]["message"] == "No data to analyze."


class TestVisualizeNode:
    def test_renders_histograms_and_heatmap(self, sales_df, tmp_path):
        state = visualize_node(_make_state(df=sales_df, output_dir=str(tmp_path)))
        assert [c.column for c in state["charts"]] == ["Sales", "Units", "Year"]
        assert len(state["figure_paths"]) == 4
        assert state["figure_paths"][-1].endswith("correlation_heatmap.png")
        for path in state["figure_paths"]:
            assert os.path.exists(path)

    def test_no_table(self, tmp_path):
        state = visualize_node(_make_state(df=None, output_dir=str(tmp_path)))
        assert state["charts"] == []
        assert state["figure_paths"] == []


class TestReportNode:
    def test_writes_report(self, sales_df, tmp_path):
        state = _make_state(df=sales_df, original_shape=(7, 4), output_dir=str(tmp_path))
        state = report_node(analyze_node(state))
        assert state["report_path"] == os.path.join(str(tmp_path), "report.md")
        assert os.path.isfile(state["report_path"])

    def test_report_failure_is_recorded(self, tmp_path):
        with patch("data_clinic.graph.generate_report", side_effect=OSError("read-only")):
            state = report_node(_make_state(output_dir=str(tmp_path)))
        assert state["report_path"] is None
        assert state["errors"] == ["report exception: read-only"]


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


class TestWorkflow:
    def test_after_load_routing(self):
        assert _after_load({"raw_rows": [{"a": 1}]}) == "preprocess"
        assert _after_load({"raw_rows": None}) == "report"

    def test_end_to_end(self, csv_file, tmp_path):
        graph = build_graph()
        state = graph.invoke(initial_state(csv_file, str(tmp_path)))

        assert state["original_shape"] == (4, 3)
        assert len(state["df"]) == 3
        assert "Removed 1 duplicate rows" in state["steps"]
        assert "Age" in state["stats"]
        assert os.path.isfile(state["report_path"])
        assert [entry["node"] for entry in state["activity_log"]] == [
            "load",
            "preprocess",
            "analyze",
            "visualize",
            "report",
        ]

    def test_failed_load_still_writes_report(self, tmp_path):
        missing = str(tmp_path / "missing.csv")
        state = build_graph().invoke(initial_state(missing, str(tmp_path)))

        assert state["df"] is None
        assert os.path.isfile(state["report_path"])
        with open(state["report_path"], encoding="utf-8") as f:
            assert "Load error" in f.read()
