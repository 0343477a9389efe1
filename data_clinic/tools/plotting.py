"""Render chart specs to PNG files.

Uses the matplotlib ``Agg`` backend; the correlation heatmap is drawn with
seaborn. A failure while drawing one chart never stops the others.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Callable

import matplotlib
matplotlib.use("Agg")  # Non-interactive backend for headless rendering

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import seaborn as sns  # noqa: E402

from data_clinic.models import (  # noqa: E402
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
from data_clinic.tools.charts import DEFAULT_BIN_COUNT  # noqa: E402
from data_clinic.tools.inspection import numeric_columns, to_number  # noqa: E402

logger = logging.getLogger(__name__)


def _slug(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "_", text).strip("_") or "chart"


def chart_filename(chart: ChartSpec) -> str:
    """File name for a chart, e.g. ``histogram_Age.png``."""
    data = chart.to_dict()
    parts = [chart.kind] + [
        str(data[key]) for key in ("column", "x", "y") if key in data
    ]
    return _slug("_".join(parts)) + ".png"


# ---------------------------------------------------------------------------
# Per-kind drawing
# ---------------------------------------------------------------------------


def _draw_histogram(ax, chart: HistogramChart) -> None:
    ax.hist(chart.data, bins=DEFAULT_BIN_COUNT)
    ax.set_title(f"Histogram - {chart.column}")
    ax.set_xlabel(chart.column)
    ax.set_ylabel("Frequency")


def _draw_scatter(ax, chart: ScatterChart) -> None:
    ax.scatter([p["x"] for p in chart.data], [p["y"] for p in chart.data], s=12)
    ax.set_title(f"Scatter Plot - {chart.x} vs {chart.y}")
    ax.set_xlabel(chart.x)
    ax.set_ylabel(chart.y)


def _draw_pie(ax, chart: PieChart) -> None:
    ax.pie(
        [seg["value"] for seg in chart.data],
        labels=[seg["label"] for seg in chart.data],
        autopct="%1.1f%%",
    )
    ax.set_title(f"Pie Chart - {chart.column}")


def _draw_line(ax, chart: LineChart) -> None:
    xs = [str(p["x"]) for p in chart.data]
    ax.plot(xs, [p["y"] for p in chart.data], marker="o")
    ax.set_title(f"Line Chart - {chart.y} over {chart.x}")
    ax.set_xlabel(chart.x)
    ax.set_ylabel(chart.y)
    ax.tick_params(axis="x", labelrotation=45)


def _draw_bar_count(ax, chart: BarCountChart) -> None:
    ax.bar(chart.labels, chart.values)
    ax.set_title(f"Bar Chart - count by {chart.x}")
    ax.set_xlabel(chart.x)
    ax.set_ylabel("Count")
    ax.tick_params(axis="x", labelrotation=45)


def _draw_bar_agg(ax, chart: BarAggChart) -> None:
    ax.bar(chart.labels, chart.values)
    ax.set_title(f"Bar Chart - {chart.agg} {chart.y} by {chart.x}")
    ax.set_xlabel(chart.x)
    ax.set_ylabel(f"{chart.agg} {chart.y}")
    ax.tick_params(axis="x", labelrotation=45)


def _draw_box(ax, chart: BoxChart) -> None:
    labels = list(chart.groups)
    ax.boxplot([chart.groups[label] for label in labels])
    ax.set_xticks(range(1, len(labels) + 1))
    ax.set_xticklabels(labels, rotation=45)
    ax.set_title(f"Box Plot - {chart.y} by {chart.x}")
    ax.set_xlabel(chart.x)
    ax.set_ylabel(chart.y)


def _draw_heatmap(ax, chart: HeatmapChart) -> None:
    xs = [p["x"] for p in chart.data]
    ys = [p["y"] for p in chart.data]
    counts, _, _, image = ax.hist2d(xs, ys, bins=DEFAULT_BIN_COUNT, cmap="viridis")
    ax.figure.colorbar(image, ax=ax)
    ax.set_title(f"Heatmap - {chart.x} vs {chart.y}")
    ax.set_xlabel(chart.x)
    ax.set_ylabel(chart.y)


_DRAWERS: dict[type, Callable] = {
    HistogramChart: _draw_histogram,
    ScatterChart: _draw_scatter,
    PieChart: _draw_pie,
    LineChart: _draw_line,
    BarCountChart: _draw_bar_count,
    BarAggChart: _draw_bar_agg,
    BoxChart: _draw_box,
    HeatmapChart: _draw_heatmap,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def render_chart(chart: ChartSpec, output_dir: str) -> str:
    """Draw one chart spec and save it under *output_dir*.

    Args:
        chart: Chart spec to render.
        output_dir: Directory for the PNG file (created if needed).

    Returns:
        Path of the saved figure.

    Raises:
        ValueError: If the chart kind has no renderer.
    """
    drawer = _DRAWERS.get(type(chart))
    if drawer is None:
        raise ValueError(f"No renderer for chart type '{chart.kind}'")

    Path(output_dir).mkdir(parents=True, exist_ok=True)
    path = os.path.join(output_dir, chart_filename(chart))
    fig, ax = plt.subplots()
    try:
        drawer(ax, chart)
        fig.savefig(path, bbox_inches="tight")
    finally:
        plt.close(fig)
    return path


def render_correlation_heatmap(df: pd.DataFrame, output_dir: str) -> str | None:
    """Draw a seaborn heatmap of the numeric columns' correlation matrix.

    Returns None when fewer than 2 numeric columns exist.
    """
    cols = numeric_columns(df)
    if len(cols) < 2:
        return None

    numeric_df = pd.DataFrame(
        {col: [to_number(v) for v in df[col].tolist()] for col in cols},
        dtype=float,
    )
    corr = numeric_df.corr()

    Path(output_dir).mkdir(parents=True, exist_ok=True)
    path = os.path.join(output_dir, "correlation_heatmap.png")
    fig, ax = plt.subplots(figsize=(max(6, len(cols)), max(5, len(cols))))
    try:
        sns.heatmap(corr, annot=True, fmt=".2f", cmap="coolwarm", ax=ax, mask=np.isnan(corr))
        ax.set_title("Correlation Heatmap")
        fig.savefig(path, bbox_inches="tight")
    finally:
        plt.close(fig)
    return path


def render_charts(charts: list[ChartSpec], output_dir: str) -> list[str]:
    """Render every chart, skipping the ones that fail.

    Returns:
        Paths of the figures that were saved.
    """
    saved_paths: list[str] = []
    for chart in charts:
        try:
            saved_paths.append(render_chart(chart, output_dir))
        except Exception as exc:
            logger.warning("Could not render %s chart: %s", chart.kind, exc)
            plt.close("all")
    return saved_paths
