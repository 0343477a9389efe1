"""Upload parsing and export for Data Clinic tables.

``load_dataset`` turns a CSV, Excel or JSON file into a list of records
(the raw rows handed to the preprocessor). ``export_csv`` writes the
cleaned table back out as delimited text.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import os
from typing import Any, Optional

import chardet
import numpy as np
import pandas as pd

from data_clinic.config import settings
from data_clinic.tools.inspection import is_missing

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xls", ".json")


# ---------------------------------------------------------------------------
# CSV helpers
# ---------------------------------------------------------------------------


def _detect_encoding(raw: bytes) -> str:
    """Detect byte encoding using chardet, falling back to utf-8."""
    if not raw:
        return "utf-8"
    encoding = chardet.detect(raw).get("encoding")
    return encoding or "utf-8"


def _decode(raw: bytes) -> Optional[str]:
    """Decode bytes with the detected encoding, then utf-8, then latin-1."""
    for encoding in (_detect_encoding(raw), "utf-8", "latin-1"):
        try:
            return raw.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            continue
    return None


def _detect_delimiter(text: str) -> str:
    """Detect CSV delimiter using csv.Sniffer, falling back to comma."""
    try:
        dialect = csv.Sniffer().sniff(text[:8192], delimiters=",\t;|")
        return dialect.delimiter
    except csv.Error:
        return ","


def _try_parse(text: str, delimiter: str) -> Optional[pd.DataFrame]:
    """Parse CSV text keeping every cell as a string. Returns None on failure."""
    try:
        return pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            engine="python",
            dtype=str,
            keep_default_na=False,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError):
        return None


def _read_csv(file_path: str) -> tuple[Optional[pd.DataFrame], Optional[str]]:
    with open(file_path, "rb") as f:
        raw = f.read()

    text = _decode(raw)
    if text is None:
        return None, "Failed to decode file with any supported encoding"
    if not text.strip():
        return None, "File is empty"

    delimiter = _detect_delimiter(text)
    df = _try_parse(text, delimiter)
    if df is None:
        return None, "Failed to parse CSV file"

    # A single wide column usually means the sniffer picked the wrong delimiter.
    if len(df.columns) == 1 and len(df) > 1:
        for alt_delim in ["\t", ";", "|", ","]:
            if alt_delim == delimiter:
                continue
            alt_df = _try_parse(text, alt_delim)
            if alt_df is not None and len(alt_df.columns) > 1:
                logger.debug("Delimiter %r retried as %r", delimiter, alt_delim)
                df = alt_df
                break

    return df, None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def frame_to_rows(df: pd.DataFrame) -> list[dict]:
    """Convert a table to records with plain Python values (missing -> None)."""
    rows = []
    for record in df.to_dict("records"):
        row: dict[str, Any] = {}
        for key, value in record.items():
            if is_missing(value):
                row[key] = None
            elif isinstance(value, np.generic):
                row[key] = value.item()
            else:
                row[key] = value
        rows.append(row)
    return rows


def load_dataset(file_path: str, max_bytes: Optional[int] = None) -> dict:
    """Parse an uploaded CSV, Excel or JSON file into raw records.

    Args:
        file_path: Path to the file.
        max_bytes: Upload size limit; defaults to the configured limit.

    Returns:
        dict with keys:
            - "rows": list of dict records, or None
            - "error": Optional[str] error message if loading failed
    """
    if not os.path.exists(file_path):
        return {"rows": None, "error": f"File not found: {file_path}"}
    if not os.path.isfile(file_path):
        return {"rows": None, "error": f"Path is not a file: {file_path}"}

    ext = os.path.splitext(file_path)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        return {"rows": None, "error": "Unsupported file type"}

    limit = settings.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
    try:
        size = os.path.getsize(file_path)
    except OSError as e:
        return {"rows": None, "error": f"Cannot read file: {e}"}
    if size == 0:
        return {"rows": None, "error": "File is empty"}
    if size > limit:
        return {"rows": None, "error": f"File exceeds the upload limit of {limit} bytes"}

    try:
        if ext == ".csv":
            df, error = _read_csv(file_path)
            if error:
                return {"rows": None, "error": error}
            if len(df) == 0:
                return {"rows": None, "error": "File contains only headers with no data rows"}
            rows = df.to_dict("records")
        elif ext == ".json":
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                return {"rows": None, "error": "JSON file must contain an array of records"}
            rows = data
        else:
            df = pd.read_excel(file_path, sheet_name=0, dtype=object)
            rows = frame_to_rows(df)
    except Exception as e:
        logger.warning("Failed to parse %s: %s", file_path, e)
        return {"rows": None, "error": f"Failed to parse file: {e}"}

    if not rows:
        return {"rows": None, "error": "File contains no data rows"}

    logger.info("Loaded %d rows from %s", len(rows), file_path)
    return {"rows": rows, "error": None}


def export_csv(df: pd.DataFrame, path: Optional[str] = None) -> str:
    """Serialise the table as comma-delimited text with a header row.

    Values containing the delimiter, quotes or newlines are quoted; missing
    cells are written empty.

    Args:
        df: Table to export.
        path: If given, the text is also written to this file.

    Returns:
        The CSV text.
    """
    text = df.to_csv(index=False, quoting=csv.QUOTE_MINIMAL, na_rep="", lineterminator="\n")
    if path:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        logger.info("Exported %d rows to %s", len(df), path)
    return text
