"""Automatic preprocessing pipeline run once on every uploaded table.

Order: drop malformed rows, remove empty rows, impute missing values column
by column, drop duplicate rows, then coerce numeric-looking columns.
Imputation runs before deduplication so rows that only differed by missing
cells collapse, and before coercion so filled values get converted too.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional

import pandas as pd

from data_clinic.models import CleaningLogEntry
from data_clinic.tools.cleaning import (
    coerce_numeric_columns,
    drop_duplicates,
    frame_from_rows,
    impute_missing,
    remove_empty_rows,
    remove_invalid_rows,
)

NO_VALID_ROWS = "No valid data rows available for processing"


def _now() -> str:
    return datetime.now().isoformat()


def clean_rows(
    rows: Optional[Iterable[Any]],
) -> tuple[pd.DataFrame, list[CleaningLogEntry]]:
    """Run the preprocessing pipeline and keep the full cleaning log.

    Only steps that changed something are logged. Malformed input never
    raises: an input without any usable row gives an empty table and a
    single log entry saying so.

    Args:
        rows: Raw records from the upload parser.

    Returns:
        Tuple of (cleaned DataFrame, cleaning log entries in pipeline order).
    """
    valid, discarded = remove_invalid_rows(rows)
    if not valid:
        entry = CleaningLogEntry(
            timestamp=_now(),
            operation="no_valid_rows",
            columns_affected=[],
            parameters={"discarded": discarded},
            rows_before=discarded,
            rows_after=0,
            description=NO_VALID_ROWS,
        )
        return pd.DataFrame(), [entry]

    log: list[CleaningLogEntry] = []
    df = frame_from_rows(valid)

    if discarded:
        log.append(
            CleaningLogEntry(
                timestamp=_now(),
                operation="remove_invalid_rows",
                columns_affected=[],
                parameters={},
                rows_before=len(valid) + discarded,
                rows_after=len(valid),
                description=f"Discarded {discarded} malformed rows",
            )
        )

    df, entry = remove_empty_rows(df)
    if entry.rows_removed:
        log.append(entry)

    df, entries = impute_missing(df)
    log.extend(entries)

    df, entry = drop_duplicates(df)
    if entry.rows_removed:
        log.append(entry)

    df, entries = coerce_numeric_columns(df)
    log.extend(entries)

    return df, log


def preprocess(rows: Optional[Iterable[Any]]) -> tuple[pd.DataFrame, list[str]]:
    """Clean raw records into a table plus a human-readable step log.

    Args:
        rows: Raw records from the upload parser.

    Returns:
        Tuple of (cleaned DataFrame, ordered step descriptions).
    """
    df, log = clean_rows(rows)
    return df, [entry.description for entry in log]
