"""Tests for PNG rendering of chart specs."""

import os

import pandas as pd
import pytest

from data_clinic.models import (
    BarAggChart,
    BarCountChart,
    BoxChart,
    ChartSpec,
    HeatmapChart,
    HistogramChart,
    LineChart,
    PieChart,
    ScatterChart,
)
from data_clinic.tools.plotting import (
    chart_filename,
    render_chart,
    render_charts,
    render_correlation_heatmap,
)


SAMPLE_CHARTS = [
    HistogramChart(column="Age", data=[30.0, 40.0, 35.0, 50.0]),
    ScatterChart(x="Age", y="Salary", data=[{"x": 30.0, "y": 50.0}, {"x": 40.0, "y": 80.0}]),
    PieChart(column="Dept", data=[{"label": "ops", "value": 2}, {"label": "eng", "value": 1}]),
    LineChart(x="Date", y="Sales", data=[{"x": "2024-01-01", "y": 1.0}, {"x": "2024-01-02", "y": 3.0}]),
    BarCountChart(x="Dept", labels=["ops", "eng"], values=[2, 1]),
    BarAggChart(x="Dept", y="Salary", labels=["ops", "eng"], values=[60.0, 80.0]),
    BoxChart(x="Dept", y="Salary", groups={"ops": [50.0, 70.0], "eng": [80.0]}),
    HeatmapChart(x="Age", y="Salary", data=[{"x": 30.0, "y": 50.0}, {"x": 40.0, "y": 80.0}]),
]


class TestChartFilename:
    def test_single_column(self):
        assert chart_filename(HistogramChart(column="Unit Price")) == "histogram_Unit_Price.png"

    def test_two_columns(self):
        assert chart_filename(ScatterChart(x="Age", y="Salary")) == "scatter_Age_Salary.png"


class TestRenderChart:
    @pytest.mark.parametrize("chart", SAMPLE_CHARTS, ids=lambda c: c.kind)
    def test_every_kind_renders(self, tmp_path, chart):
        path = render_chart(chart, str(tmp_path / "figures"))
        assert os.path.exists(path)
        assert path.endswith(".png")

    def test_unknown_kind_raises(self, tmp_path):
        with pytest.raises(ValueError, match="No renderer"):
            render_chart(ChartSpec(), str(tmp_path))


class TestRenderCharts:
    def test_failures_are_skipped(self, tmp_path):
        charts = [ChartSpec(), SAMPLE_CHARTS[0]]
        paths = render_charts(charts, str(tmp_path))
        assert len(paths) == 1
        assert paths[0].endswith("histogram_Age.png")


class TestCorrelationHeatmap:
    def test_saves_heatmap(self, tmp_path, sales_df):
        path = render_correlation_heatmap(sales_df, str(tmp_path))
        assert path == os.path.join(str(tmp_path), "correlation_heatmap.png")
        assert os.path.exists(path)

    def test_single_numeric_column_returns_none(self, tmp_path):
        df = pd.DataFrame({"a": [1.0, 2.0, 3.0], "c": ["alpha", "beta", "gamma"]})
        assert render_correlation_heatmap(df, str(tmp_path)) is None
        assert not os.path.exists(os.path.join(str(tmp_path), "correlation_heatmap.png"))
