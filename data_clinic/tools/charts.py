"""Chart data builders.

Builders are pure: they read the current table and return a ChartSpec.
A column that is absent from the table raises ``ColumnNotFoundError``; a
present column with no usable values yields a chart with empty data.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np
import pandas as pd

from data_clinic.models import (
    BarAggChart,
    BarCountChart,
    BoxChart,
    ColumnNotFoundError,
    ColumnType,
    HeatmapChart,
    HistogramChart,
    LineChart,
    PieChart,
    ScatterChart,
)
from data_clinic.tools.eda import pearson
from data_clinic.tools.inspection import (
    columns_of_type,
    format_label,
    is_missing,
    is_numeric_column,
    json_safe,
    numeric_columns,
    numeric_values,
    to_number,
)

AUTO_CHART_LIMIT = 3
PIE_MIN_CATEGORIES = 2
PIE_MAX_CATEGORIES = 12
DEFAULT_BIN_COUNT = 10
SUPPORTED_AGGREGATIONS = ("mean",)


def _require(df: pd.DataFrame, *columns: str) -> None:
    for col in columns:
        if col not in df.columns:
            raise ColumnNotFoundError(col)


def _pairs(df: pd.DataFrame, x: str, y: str) -> list[dict]:
    points = []
    for xv, yv in zip(df[x].tolist(), df[y].tolist()):
        px, py = to_number(xv), to_number(yv)
        if px is not None and py is not None:
            points.append({"x": px, "y": py})
    return points


def _value_counts(series: pd.Series) -> dict[str, int]:
    counts: dict[str, int] = {}
    for value in series.tolist():
        label = format_label(value)
        counts[label] = counts.get(label, 0) + 1
    return counts


def _grouped_values(df: pd.DataFrame, y: str, x: str) -> dict[str, list[float]]:
    groups: dict[str, list[float]] = {}
    for xv, yv in zip(df[x].tolist(), df[y].tolist()):
        number = to_number(yv)
        if number is not None:
            groups.setdefault(format_label(xv), []).append(number)
    return groups


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def histogram(df: pd.DataFrame, column: str) -> HistogramChart:
    _require(df, column)
    return HistogramChart(column=column, data=numeric_values(df[column]))


def scatter(df: pd.DataFrame, x: str, y: str) -> ScatterChart:
    """Paired points where both coordinates are finite numbers."""
    _require(df, x, y)
    return ScatterChart(x=x, y=y, data=_pairs(df, x, y))


def pie(df: pd.DataFrame, column: str) -> PieChart:
    """Frequency of each stringified value, in first-seen order."""
    _require(df, column)
    counts = _value_counts(df[column])
    return PieChart(
        column=column,
        data=[{"label": label, "value": value} for label, value in counts.items()],
    )


def line(df: pd.DataFrame, x: str, y: str) -> LineChart:
    """Points with the raw X value and a numeric Y value.

    Rows with a missing X or a non-numeric Y are skipped.
    """
    _require(df, x, y)
    points = []
    for xv, yv in zip(df[x].tolist(), df[y].tolist()):
        number = to_number(yv)
        if is_missing(xv) or number is None:
            continue
        points.append({"x": json_safe(xv), "y": number})
    return LineChart(x=x, y=y, data=points)


def bar_count(df: pd.DataFrame, column: str) -> BarCountChart:
    _require(df, column)
    counts = _value_counts(df[column])
    return BarCountChart(x=column, labels=list(counts), values=list(counts.values()))


def bar_agg(df: pd.DataFrame, y: str, x: str, agg: str = "mean") -> BarAggChart:
    """Aggregate numeric Y values per stringified X.

    Args:
        df: The current table.
        y: Numeric column to aggregate.
        x: Grouping column.
        agg: Aggregation name; only ``"mean"`` is supported.

    Raises:
        ColumnNotFoundError: If *x* or *y* is absent.
        ValueError: If *agg* is not supported.
    """
    _require(df, y, x)
    if agg not in SUPPORTED_AGGREGATIONS:
        raise ValueError(
            f"Unsupported aggregation '{agg}'. Supported: {', '.join(SUPPORTED_AGGREGATIONS)}"
        )
    groups = _grouped_values(df, y, x)
    return BarAggChart(
        x=x,
        y=y,
        labels=list(groups),
        values=[sum(vals) / len(vals) for vals in groups.values()],
        agg=agg,
    )


def box(df: pd.DataFrame, y: str, x: str) -> BoxChart:
    _require(df, y, x)
    return BoxChart(x=x, y=y, groups=_grouped_values(df, y, x))


def heatmap(df: pd.DataFrame, x: str, y: str) -> HeatmapChart:
    _require(df, x, y)
    return HeatmapChart(x=x, y=y, data=_pairs(df, x, y))


# ---------------------------------------------------------------------------
# Automatic selection
# ---------------------------------------------------------------------------


def auto_histograms(df: pd.DataFrame, limit: int = AUTO_CHART_LIMIT) -> list[HistogramChart]:
    """Histograms for the numeric columns with the largest population variance."""
    ranked = []
    for col in numeric_columns(df):
        values = numeric_values(df[col])
        variance = float(np.var(values)) if values else -math.inf
        ranked.append((variance, col, values))
    # sorted() is stable, so ties keep column order
    ranked = sorted(ranked, key=lambda item: item[0], reverse=True)[:limit]
    return [HistogramChart(column=col, data=values) for _, col, values in ranked]


def auto_scatter_plots(df: pd.DataFrame, limit: int = AUTO_CHART_LIMIT) -> list[ScatterChart]:
    """Scatter plots for the numeric pairs with the strongest absolute correlation.

    A pair qualifies when both columns hold more than one numeric value and
    the same number of them. Pairs with an undefined correlation rank last.
    """
    cols = numeric_columns(df)
    values = {col: numeric_values(df[col]) for col in cols}
    pairs = []
    for i, col_a in enumerate(cols):
        for col_b in cols[i + 1:]:
            a, b = values[col_a], values[col_b]
            if len(a) > 1 and len(b) > 1 and len(a) == len(b):
                r = pearson(a, b)
                strength = -1.0 if math.isnan(r) else abs(r)
                pairs.append((strength, col_a, col_b))
    pairs = sorted(pairs, key=lambda item: item[0], reverse=True)[:limit]
    return [scatter(df, col_a, col_b) for _, col_a, col_b in pairs]


def auto_pie_charts(df: pd.DataFrame, limit: int = AUTO_CHART_LIMIT) -> list[PieChart]:
    """Pie charts for non-numeric columns with 2 to 12 categories, most categories first."""
    ranked = []
    for col in df.columns:
        if is_numeric_column(df, col):
            continue
        unique = len(_value_counts(df[col]))
        if PIE_MIN_CATEGORIES <= unique <= PIE_MAX_CATEGORIES:
            ranked.append((unique, col))
    ranked = sorted(ranked, key=lambda item: item[0], reverse=True)[:limit]
    return [pie(df, col) for _, col in ranked]


def auto_line_charts(df: pd.DataFrame, limit: int = AUTO_CHART_LIMIT) -> list[LineChart]:
    """Line charts of numeric columns over the first datetime column."""
    datetime_cols = columns_of_type(df, ColumnType.DATETIME)
    if not datetime_cols:
        return []
    x = datetime_cols[0]
    ys = [col for col in numeric_columns(df) if col != x][:limit]
    return [line(df, x, y) for y in ys]


# ---------------------------------------------------------------------------
# Binning
# ---------------------------------------------------------------------------


def histogram_bins(
    values: list[float], bin_count: Optional[int] = DEFAULT_BIN_COUNT
) -> list[dict]:
    """Bin numeric values into equal-width buckets.

    The number of bins is ``max(1, min(bin_count, len(values)))``. When all
    values are equal the bin width falls back to 1. Values past the last
    edge land in the final bin.

    Args:
        values: Numeric values; non-numeric and NaN entries are ignored.
        bin_count: Requested number of bins (default 10).

    Returns:
        A list of ``{"name": "<lo>-<hi>", "count": n}`` dicts.
    """
    numbers = [float(v) for v in values if to_number(v) is not None]
    if not numbers:
        return []

    low, high = min(numbers), max(numbers)
    count = max(1, min(bin_count or DEFAULT_BIN_COUNT, len(numbers)))
    width = (high - low) / count or 1.0

    bins = [
        {"name": f"{low + i * width:.2f}-{low + (i + 1) * width:.2f}", "count": 0}
        for i in range(count)
    ]
    for value in numbers:
        idx = min(max(math.floor((value - low) / width), 0), count - 1)
        bins[idx]["count"] += 1
    return bins
