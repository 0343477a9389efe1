"""Cleaning tools for tabular data.

Each function takes a DataFrame (and relevant parameters), performs a cleaning
operation on a copy, and returns a tuple of (cleaned_df, CleaningLogEntry)
(or a list of entries for column-by-column operations). Tables keep
``dtype=object`` columns until numeric coercion so that raw cell values
survive untouched.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Optional

import numpy as np
import pandas as pd

from data_clinic.models import CleaningLogEntry, ColumnNotFoundError, ColumnType
from data_clinic.tools.inspection import (
    SCREENING_SAMPLE_SIZE,
    classify_column,
    is_missing,
    is_numeric_column,
    missing_mask,
    numeric_values,
    present_values,
    row_key,
    to_number,
)

FILL_STRATEGIES = {"mean", "median", "mode"}


def _now() -> str:
    """Return current timestamp as ISO format string."""
    return datetime.now().isoformat()


def _require_column(df: pd.DataFrame, column: str) -> None:
    if column not in df.columns:
        raise ColumnNotFoundError(column)


def _replace_missing(series: pd.Series, values: Iterable[Any]) -> pd.Series:
    """Return *series* as an object column with missing cells taken from *values*."""
    filled = [
        new if is_missing(old) else old for old, new in zip(series.tolist(), values)
    ]
    return pd.Series(filled, index=series.index, dtype=object)


# ---------------------------------------------------------------------------
# Row construction and filtering
# ---------------------------------------------------------------------------


def frame_from_rows(rows: Iterable[Mapping]) -> pd.DataFrame:
    """Build a table from records, keeping raw cell values (``dtype=object``).

    Columns appear in first-seen key order; absent keys become missing cells.
    """
    records = [dict(row) for row in rows]
    if not records:
        return pd.DataFrame()
    return pd.DataFrame(records, dtype=object)


def remove_invalid_rows(rows: Optional[Iterable[Any]]) -> tuple[list[dict], int]:
    """Keep only rows that are non-empty mappings.

    Args:
        rows: Raw records handed in by the upload parser.

    Returns:
        Tuple of (valid rows, number of rows discarded).
    """
    if rows is None:
        return [], 0
    rows = list(rows)
    valid = [dict(row) for row in rows if isinstance(row, Mapping) and len(row) > 0]
    return valid, len(rows) - len(valid)


def remove_empty_rows(df: pd.DataFrame) -> tuple[pd.DataFrame, CleaningLogEntry]:
    """Remove rows whose every value is missing.

    Args:
        df: Input DataFrame.

    Returns:
        Tuple of (cleaned DataFrame, cleaning log entry).
    """
    rows_before = len(df)
    if rows_before == 0:
        cleaned = df.copy()
    else:
        empty = df.apply(lambda row: all(is_missing(v) for v in row), axis=1)
        cleaned = df[~empty.astype(bool)].reset_index(drop=True)
    removed = rows_before - len(cleaned)

    log = CleaningLogEntry(
        timestamp=_now(),
        operation="remove_empty_rows",
        columns_affected=list(df.columns),
        parameters={},
        rows_before=rows_before,
        rows_after=len(cleaned),
        description=f"Removed {removed} empty rows",
    )
    return cleaned, log


# ---------------------------------------------------------------------------
# Missing value imputation
# ---------------------------------------------------------------------------


def compute_median(values: list[float]) -> float:
    """Textbook median (mean of the two middle values for even counts)."""
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def upper_median(values: list[float]) -> float:
    """Element at ``len // 2`` of the ascending values (upper-middle for even counts)."""
    if not values:
        return 0.0
    return sorted(values)[len(values) // 2]


def compute_mode(values: list) -> str:
    """Most frequent value, stringified; ties go to the first value seen.

    Returns ``"Unknown"`` when there are no values.
    """
    if not values:
        return "Unknown"
    counts: dict[str, int] = {}
    for value in values:
        key = str(value)
        counts[key] = counts.get(key, 0) + 1
    top = max(counts.values())
    return next(key for key, count in counts.items() if count == top)


def forward_fill(values: list) -> list:
    """Propagate the last present value downward over missing cells."""
    result = list(values)
    last = None
    for i, value in enumerate(result):
        if not is_missing(value):
            last = value
        elif last is not None:
            result[i] = last
    return result


def backward_fill(values: list) -> list:
    """Propagate the next present value upward over missing cells."""
    return list(reversed(forward_fill(list(reversed(values)))))


def impute_column(
    df: pd.DataFrame, column: str, column_type: Optional[ColumnType] = None
) -> tuple[pd.DataFrame, Optional[CleaningLogEntry]]:
    """Fill the missing cells of one column according to its type.

    - numeric: median of the present numeric values rounded to 2 decimals,
      or 0 when there are none.
    - categorical: the column mode, or ``"Unknown"`` when nothing is present.
    - datetime: forward fill, then backward fill for leading gaps.

    Args:
        df: Input DataFrame.
        column: Column to fill.
        column_type: Type to impute as; classified from *df* when omitted.

    Returns:
        Tuple of (cleaned DataFrame, log entry or None if nothing was missing).

    Raises:
        ColumnNotFoundError: If *column* is not in the DataFrame.
    """
    _require_column(df, column)

    missing = int(missing_mask(df[column]).sum())
    if missing == 0:
        return df, None

    kind = column_type or classify_column(df, column)
    cleaned = df.copy()
    series = cleaned[column]
    parameters: dict[str, Any] = {"column_type": kind.value, "filled": missing}

    if kind == ColumnType.NUMERIC:
        values = numeric_values(series)
        if values:
            fill_value = round(compute_median(values), 2)
            method = f"median ({fill_value:.2f})"
            parameters.update(method="median", fill_value=fill_value)
        else:
            fill_value = 0
            method = "default 0"
            parameters.update(method="default", fill_value=0)
        cleaned[column] = _replace_missing(series, [fill_value] * len(series))
        description = (
            f"Replaced {missing} null values in '{column}' (numeric) with {method}"
        )
    elif kind == ColumnType.CATEGORICAL:
        fill_value = compute_mode(present_values(series))
        parameters.update(method="mode", fill_value=fill_value)
        cleaned[column] = _replace_missing(series, [fill_value] * len(series))
        description = (
            f"Replaced {missing} null values in '{column}' (categorical) "
            f"with mode ({fill_value})"
        )
    elif kind == ColumnType.DATETIME:
        values = forward_fill(series.tolist())
        if any(is_missing(v) for v in values):
            values = backward_fill(values)
        parameters.update(method="forward_backward_fill")
        cleaned[column] = _replace_missing(series, values)
        description = (
            f"Applied forward/backward fill to {missing} null values in "
            f"'{column}' (datetime)"
        )
    else:
        parameters.update(method="constant", fill_value="Unknown")
        cleaned[column] = _replace_missing(series, ["Unknown"] * len(series))
        description = (
            f"Replaced {missing} null values in '{column}' (unknown type) "
            "with 'Unknown'"
        )

    log = CleaningLogEntry(
        timestamp=_now(),
        operation="impute_missing",
        columns_affected=[column],
        parameters=parameters,
        rows_before=len(df),
        rows_after=len(cleaned),
        description=description,
    )
    return cleaned, log


def impute_missing(df: pd.DataFrame) -> tuple[pd.DataFrame, list[CleaningLogEntry]]:
    """Impute every column that has missing cells, in column order.

    Each column is classified against the table as already imputed so far.

    Args:
        df: Input DataFrame.

    Returns:
        Tuple of (cleaned DataFrame, one log entry per imputed column).
    """
    cleaned = df
    entries: list[CleaningLogEntry] = []
    for column in list(df.columns):
        cleaned, entry = impute_column(cleaned, column)
        if entry is not None:
            entries.append(entry)
    return cleaned, entries


# ---------------------------------------------------------------------------
# Deduplication and coercion
# ---------------------------------------------------------------------------


def drop_duplicates(df: pd.DataFrame) -> tuple[pd.DataFrame, CleaningLogEntry]:
    """Remove rows that repeat an earlier row, keeping the first occurrence.

    Rows are compared by their structural serialisation, so key order does
    not matter and ``1`` equals ``1.0`` but not ``"1"``.

    Args:
        df: Input DataFrame.

    Returns:
        Tuple of (cleaned DataFrame, cleaning log entry).
    """
    rows_before = len(df)
    if rows_before == 0:
        cleaned = df.copy()
    else:
        keys = pd.Series(
            [row_key(row) for row in df.to_dict("records")], index=df.index
        )
        cleaned = df[~keys.duplicated(keep="first")].reset_index(drop=True)
    duplicates_removed = rows_before - len(cleaned)

    log = CleaningLogEntry(
        timestamp=_now(),
        operation="drop_duplicates",
        columns_affected=list(df.columns),
        parameters={},
        rows_before=rows_before,
        rows_after=len(cleaned),
        description=f"Removed {duplicates_removed} duplicate rows",
    )
    return cleaned, log


def coerce_numeric_columns(
    df: pd.DataFrame,
) -> tuple[pd.DataFrame, list[CleaningLogEntry]]:
    """Convert columns that pass the 10-row numeric screening to numbers.

    Cells that do not parse are left as they are. Re-running on an already
    converted table changes nothing and logs nothing.

    Args:
        df: Input DataFrame.

    Returns:
        Tuple of (cleaned DataFrame, one log entry per converted column).
    """
    cleaned = df.copy()
    entries: list[CleaningLogEntry] = []

    for column in df.columns:
        if not is_numeric_column(df, column):
            continue

        original = df[column].tolist()
        converted = []
        changed = 0
        for value in original:
            number = to_number(value)
            if number is None:
                converted.append(value)
                continue
            if not isinstance(value, (float, np.floating)):
                changed += 1
            converted.append(number)

        series = pd.Series(converted, index=df.index, dtype=object)
        if all(is_missing(v) or isinstance(v, float) for v in converted):
            series = series.astype(float)
        cleaned[column] = series

        if changed:
            entries.append(
                CleaningLogEntry(
                    timestamp=_now(),
                    operation="coerce_numeric",
                    columns_affected=[column],
                    parameters={
                        "sample_size": SCREENING_SAMPLE_SIZE,
                        "cells_converted": changed,
                    },
                    rows_before=len(df),
                    rows_after=len(cleaned),
                    description=f"Converted '{column}' to numeric type",
                )
            )

    return cleaned, entries


# ---------------------------------------------------------------------------
# Command-driven mutations
# ---------------------------------------------------------------------------


def fill_nulls(
    df: pd.DataFrame, column: str, strategy: str
) -> tuple[pd.DataFrame, CleaningLogEntry]:
    """Fill missing values in a column with a strategy or a literal value.

    ``mean`` and ``median`` use the column's numeric values (0 when there
    are none; median is the upper-middle element). ``mode`` uses the raw
    present values. Any other *strategy* is used verbatim as the fill value.

    Args:
        df: Input DataFrame.
        column: Column name to fill.
        strategy: 'mean', 'median', 'mode' or a literal value.

    Returns:
        Tuple of (cleaned DataFrame, cleaning log entry).

    Raises:
        ColumnNotFoundError: If column not in DataFrame.
    """
    _require_column(df, column)

    series = df[column]
    keyword = strategy.lower()
    if keyword == "mean":
        values = numeric_values(series)
        fill_value: Any = sum(values) / len(values) if values else 0
    elif keyword == "median":
        fill_value = upper_median(numeric_values(series))
    elif keyword == "mode":
        fill_value = compute_mode(present_values(series))
    else:
        fill_value = strategy

    missing = int(missing_mask(series).sum())
    cleaned = df.copy()
    cleaned[column] = _replace_missing(series, [fill_value] * len(series))

    log = CleaningLogEntry(
        timestamp=_now(),
        operation="fill_nulls",
        columns_affected=[column],
        parameters={
            "strategy": keyword if keyword in FILL_STRATEGIES else "value",
            "fill_value": fill_value,
            "filled": missing,
        },
        rows_before=len(df),
        rows_after=len(cleaned),
        description=f"Filled nulls in '{column}' with {fill_value}",
    )
    return cleaned, log


def remove_null_rows(
    df: pd.DataFrame, column: str
) -> tuple[pd.DataFrame, CleaningLogEntry]:
    """Remove the rows where *column* is missing.

    Raises:
        ColumnNotFoundError: If column not in DataFrame.
    """
    _require_column(df, column)

    rows_before = len(df)
    cleaned = df[~missing_mask(df[column])].reset_index(drop=True)
    removed = rows_before - len(cleaned)

    log = CleaningLogEntry(
        timestamp=_now(),
        operation="remove_null_rows",
        columns_affected=[column],
        parameters={},
        rows_before=rows_before,
        rows_after=len(cleaned),
        description=f"Removed {removed} rows where '{column}' was null",
    )
    return cleaned, log


def drop_column(df: pd.DataFrame, column: str) -> tuple[pd.DataFrame, CleaningLogEntry]:
    """Drop a single column.

    Raises:
        ColumnNotFoundError: If column not in DataFrame.
    """
    _require_column(df, column)

    cleaned = df.drop(columns=[column])
    log = CleaningLogEntry(
        timestamp=_now(),
        operation="drop_column",
        columns_affected=[column],
        parameters={},
        rows_before=len(df),
        rows_after=len(cleaned),
        description=f"Dropped column '{column}'",
    )
    return cleaned, log


def rename_column(
    df: pd.DataFrame, column: str, new_name: str
) -> tuple[pd.DataFrame, CleaningLogEntry]:
    """Rename a column, keeping its position.

    Raises:
        ColumnNotFoundError: If column not in DataFrame.
        ValueError: If *new_name* already names a different column.
    """
    _require_column(df, column)
    if new_name != column and new_name in df.columns:
        raise ValueError(f"Column '{new_name}' already exists.")

    cleaned = df.rename(columns={column: new_name})
    log = CleaningLogEntry(
        timestamp=_now(),
        operation="rename_column",
        columns_affected=[column, new_name],
        parameters={"new_name": new_name},
        rows_before=len(df),
        rows_after=len(cleaned),
        description=f"Renamed column '{column}' to '{new_name}'",
    )
    return cleaned, log
