"""Statistics tools: descriptive statistics and Pearson correlation.

Numeric columns are the ones passing the 10-row screening in
``inspection.is_numeric_column``, not the general classifier.
"""

from __future__ import annotations

import math

import numpy as np
import pandas as pd

from data_clinic.models import ColumnStats, ColumnNotFoundError
from data_clinic.tools.inspection import numeric_columns, numeric_values


def describe_values(values: list[float]) -> ColumnStats:
    """Return descriptive statistics for a non-empty list of numbers.

    The median is the element at ``n // 2`` of the ascending values (the
    upper-middle element for even counts). The standard deviation is the
    population one (divides by n).

    Args:
        values: Finite numeric values.

    Returns:
        ColumnStats for the values.

    Raises:
        ValueError: If *values* is empty.
    """
    if not values:
        raise ValueError("Cannot describe an empty list of values.")

    arr = np.asarray(values, dtype=float)
    ordered = np.sort(arr)
    return ColumnStats(
        count=int(arr.size),
        mean=float(arr.mean()),
        median=float(ordered[arr.size // 2]),
        min=float(ordered[0]),
        max=float(ordered[-1]),
        std=float(arr.std(ddof=0)),
    )


def describe_numeric(df: pd.DataFrame) -> dict[str, ColumnStats]:
    """Compute descriptive statistics for every numeric column.

    Columns that pass screening but hold no numeric values are omitted.

    Args:
        df: Input DataFrame.

    Returns:
        Mapping of column name to ColumnStats, in column order.
    """
    stats: dict[str, ColumnStats] = {}
    for col in numeric_columns(df):
        values = numeric_values(df[col])
        if values:
            stats[col] = describe_values(values)
    return stats


def pearson(x: list[float], y: list[float]) -> float:
    """Pearson correlation of paired values.

    Uses ``(nΣxy - ΣxΣy) / sqrt((nΣx² - (Σx)²)(nΣy² - (Σy)²))`` and returns
    NaN when the denominator is not positive (e.g. a constant column).
    """
    n = min(len(x), len(y))
    if n == 0:
        return float("nan")

    xs = np.asarray(x[:n], dtype=float)
    ys = np.asarray(y[:n], dtype=float)
    sum_x, sum_y = xs.sum(), ys.sum()
    numerator = n * (xs * ys).sum() - sum_x * sum_y
    denominator = math.sqrt(
        max(n * (xs**2).sum() - sum_x**2, 0.0) * max(n * (ys**2).sum() - sum_y**2, 0.0)
    )
    if denominator <= 0:
        return float("nan")
    return float(numerator / denominator)


def compute_correlation(df: pd.DataFrame, col_a: str, col_b: str) -> float:
    """Pearson correlation between two columns.

    Each column's numeric values are filtered independently and then paired
    by position, so the pairing truncates to the shorter list.

    Raises:
        ColumnNotFoundError: If either column is absent.
    """
    for col in (col_a, col_b):
        if col not in df.columns:
            raise ColumnNotFoundError(col)
    return pearson(numeric_values(df[col_a]), numeric_values(df[col_b]))


def correlation_matrix(df: pd.DataFrame) -> dict[str, float]:
    """Correlation for every unordered pair of numeric columns.

    Keys are ``"<a>_<b>"`` with *a* before *b* in column order. Columns
    without numeric values are skipped.
    """
    cols = [col for col in numeric_columns(df) if numeric_values(df[col])]
    matrix: dict[str, float] = {}
    for i, col_a in enumerate(cols):
        for col_b in cols[i + 1:]:
            matrix[f"{col_a}_{col_b}"] = compute_correlation(df, col_a, col_b)
    return matrix
