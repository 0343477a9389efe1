"""Inspection tools: cell predicates, column-type inference and dataset summary.

Two sampling policies coexist here and are intentionally kept apart:

- ``classify_column`` looks at the first ``min(50, 20% of rows)`` cells,
  ignores missing ones, and separates numeric / datetime / categorical.
- ``is_numeric_column`` screens the first 10 cells (missing included) and
  is what the statistics, chart and coercion steps use.
"""

from __future__ import annotations

import json
import math
from datetime import date, datetime
from typing import Any, Optional

import numpy as np
import pandas as pd

from data_clinic.models import ColumnStats, ColumnType

CLASSIFIER_SAMPLE_CAP = 50
CLASSIFIER_SAMPLE_FRACTION = 0.2
NUMERIC_RATIO = 0.8
DATETIME_RATIO = 0.7
SCREENING_SAMPLE_SIZE = 10


# ---------------------------------------------------------------------------
# Cell predicates
# ---------------------------------------------------------------------------


def is_missing(value: Any) -> bool:
    """Return True for None, NaN/NaT/NA and the empty string."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_number(value: Any) -> Optional[float]:
    """Parse *value* as a finite number, or return None.

    Booleans are not numbers. Strings must parse completely (surrounding
    whitespace allowed); infinities and NaN are rejected.
    """
    if isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text or "_" in text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def is_date(value: Any) -> bool:
    """Return True if *value* is a date object or a parseable date string."""
    if isinstance(value, (datetime, date, np.datetime64)):
        return not pd.isna(value)
    if not isinstance(value, str):
        return False
    text = value.strip()
    if not text:
        return False
    try:
        parsed = pd.Timestamp(text)
    except (ValueError, TypeError, OverflowError):
        return False
    return not pd.isna(parsed)


def missing_mask(series: pd.Series) -> pd.Series:
    """Boolean mask of missing cells in *series*."""
    return series.map(is_missing).astype(bool)


def numeric_values(series: pd.Series) -> list[float]:
    """Return the finite numeric values of *series* in row order."""
    values = (to_number(v) for v in series)
    return [v for v in values if v is not None]


def present_values(series: pd.Series) -> list:
    """Return the non-missing values of *series* in row order."""
    return [v for v in series if not is_missing(v)]


def format_label(value: Any) -> str:
    """Stringify a cell for use as a category label (missing -> 'Unknown')."""
    if is_missing(value):
        return "Unknown"
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value)


def json_safe(value: Any) -> Any:
    """Normalise a cell so equal values serialise identically."""
    if is_missing(value) and not isinstance(value, str):
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def row_key(row: dict) -> str:
    """Serialise a row structurally (key order does not matter)."""
    return json.dumps(
        {str(k): json_safe(v) for k, v in row.items()},
        sort_keys=True,
        default=str,
    )


# ---------------------------------------------------------------------------
# Column classification
# ---------------------------------------------------------------------------


def classifier_sample_size(n_rows: int) -> int:
    """Rows inspected by the general classifier: min(50, 20% of rows)."""
    return max(0, min(CLASSIFIER_SAMPLE_CAP, math.floor(n_rows * CLASSIFIER_SAMPLE_FRACTION)))


def classify_column(df: pd.DataFrame, column: str) -> ColumnType:
    """Infer the semantic type of *column* from a bounded head sample.

    Numeric is tested before datetime so that values such as ``"2020"``
    classify as numeric. An empty sample defaults to categorical.

    Args:
        df: The current table.
        column: Column to classify.

    Returns:
        The inferred ColumnType.
    """
    if column not in df.columns:
        return ColumnType.CATEGORICAL

    sample_size = classifier_sample_size(len(df))
    sample = present_values(df[column].iloc[:sample_size])
    if not sample:
        return ColumnType.CATEGORICAL

    numeric_count = sum(1 for v in sample if to_number(v) is not None)
    if numeric_count / len(sample) >= NUMERIC_RATIO:
        return ColumnType.NUMERIC

    date_count = sum(1 for v in sample if is_date(v))
    if date_count / len(sample) >= DATETIME_RATIO:
        return ColumnType.DATETIME

    return ColumnType.CATEGORICAL


def column_types(df: pd.DataFrame) -> dict[str, ColumnType]:
    """Classify every column, in column order."""
    return {col: classify_column(df, col) for col in df.columns}


def columns_of_type(df: pd.DataFrame, column_type: ColumnType) -> list[str]:
    return [col for col, kind in column_types(df).items() if kind == column_type]


def is_numeric_column(df: pd.DataFrame, column: str) -> bool:
    """Statistics screening: >= 80% of the first 10 cells parse as numbers.

    Missing cells in the head count against the ratio.
    """
    if column not in df.columns:
        return False
    sample = df[column].iloc[:SCREENING_SAMPLE_SIZE].tolist()
    if not sample:
        return False
    numeric_count = sum(1 for v in sample if to_number(v) is not None)
    return numeric_count >= len(sample) * NUMERIC_RATIO


def numeric_columns(df: pd.DataFrame) -> list[str]:
    """Columns that pass the statistics screening, in column order."""
    return [col for col in df.columns if is_numeric_column(df, col)]


# ---------------------------------------------------------------------------
# Dataset summary
# ---------------------------------------------------------------------------


def count_missing(df: pd.DataFrame) -> dict[str, int]:
    """Missing cell count per column (columns with none are omitted)."""
    counts: dict[str, int] = {}
    for col in df.columns:
        n = int(missing_mask(df[col]).sum())
        if n:
            counts[col] = n
    return counts


def count_duplicates(df: pd.DataFrame) -> int:
    """Number of rows that repeat an earlier row."""
    keys = [row_key(row) for row in df.to_dict("records")]
    return len(keys) - len(set(keys))


def summarize_dataset(
    df: pd.DataFrame, stats: Optional[dict[str, ColumnStats]] = None
) -> dict:
    """Return the headline numbers shown alongside a processed dataset.

    Args:
        df: The current table.
        stats: Descriptive statistics, if already computed.

    Returns:
        dict with total_rows, total_columns, numeric_columns,
        categorical_columns, datetime_columns, missing_values,
        duplicate_rows and basic_stats.
    """
    types = column_types(df)
    kinds = list(types.values())

    summary = {
        "total_rows": len(df),
        "total_columns": len(df.columns),
        "numeric_columns": kinds.count(ColumnType.NUMERIC),
        "categorical_columns": kinds.count(ColumnType.CATEGORICAL),
        "datetime_columns": kinds.count(ColumnType.DATETIME),
        "missing_values": sum(count_missing(df).values()),
        "duplicate_rows": count_duplicates(df),
        "basic_stats": {},
    }

    if stats:
        summary["basic_stats"] = {
            "avg_numeric_mean": sum(s.mean for s in stats.values()) / len(stats),
            "total_numeric_values": sum(s.count for s in stats.values()),
        }

    return summary
