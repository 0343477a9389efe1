"""Free-text command interpreter.

``interpret`` turns a request such as ``"histogram of Age"`` or
``"fill nulls in City with mode"`` into a structured action using a
dispatch table of regular expressions; ``execute_action`` runs that action
against the current table using the chart builders and cleaning tools.
Column names are resolved fuzzily and every substitution is reported.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

import pandas as pd
from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from data_clinic.models import CleaningLogEntry, ChartSpec
from data_clinic.tools import charts, cleaning
from data_clinic.tools.inspection import numeric_columns, to_number

MAX_EDIT_DISTANCE = 3

HELP_MESSAGE = (
    "I can clean data (fill/remove nulls, drop/rename columns) and create charts. "
    "Examples: 'fill nulls in Age with mean', 'remove rows where Salary is null', "
    "'drop column Address', 'rename column old to new', 'histogram of Year', "
    "'scatter Age vs Salary', 'pie of Category', or ask for 'insights'."
)


# ---------------------------------------------------------------------------
# Column resolution
# ---------------------------------------------------------------------------


@dataclass
class ColumnMatch:
    name: str
    note: Optional[str] = None


def normalize_name(name: str) -> str:
    """Lower-case, collapse non-alphanumeric runs to single spaces and strip."""
    return re.sub(r"[^a-z0-9]+", " ", str(name).lower()).strip()


def resolve_column(name: str, columns: list[str]) -> Optional[ColumnMatch]:
    """Find the table column a user most likely meant by *name*.

    Tries, in order: an exact match after normalisation, containment in
    either direction, then the closest column by Levenshtein distance if
    that distance is at most 3. Anything but an exact match carries a note
    naming both the requested and the chosen column.

    Args:
        name: Column name as typed by the user.
        columns: Columns of the current table, in order.

    Returns:
        The match, or None if no column is close enough.
    """
    target = normalize_name(name)
    if not target or not columns:
        return None

    normalized = {col: normalize_name(col) for col in columns}

    for col, norm in normalized.items():
        if norm == target:
            return ColumnMatch(col)

    def _note(col: str) -> str:
        return f"(interpreted '{name}' as '{col}')"

    for col, norm in normalized.items():
        if norm and (target in norm or norm in target):
            return ColumnMatch(col, _note(col))

    best = process.extractOne(
        target,
        normalized,
        scorer=Levenshtein.distance,
        score_cutoff=MAX_EDIT_DISTANCE,
    )
    if best is None:
        return None
    return ColumnMatch(best[2], _note(best[2]))


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@dataclass
class ChartCommand:
    """Build one chart. ``columns`` follows the builder's argument order."""

    kind: str
    columns: tuple[str, ...]
    notes: list[str] = field(default_factory=list)


@dataclass
class CleaningCommand:
    operation: str
    column: str
    argument: Optional[str] = None
    notes: list[str] = field(default_factory=list)


@dataclass
class SummaryCommand:
    pass


@dataclass
class UnresolvedColumns:
    names: list[str]
    message: str


@dataclass
class Unrecognized:
    message: str = HELP_MESSAGE


Action = Union[ChartCommand, CleaningCommand, SummaryCommand, UnresolvedColumns, Unrecognized]


@dataclass
class CommandOutcome:
    """Result of executing an action against the current table."""

    message: str
    df: pd.DataFrame
    chart: Optional[ChartSpec] = None
    log_entry: Optional[CleaningLogEntry] = None

    @property
    def step(self) -> Optional[str]:
        return self.log_entry.description if self.log_entry else None


# ---------------------------------------------------------------------------
# Pattern handlers
# ---------------------------------------------------------------------------

_COL = r"([a-z0-9_\-]+)"


def _resolve_all(names: list[str], columns: list[str]) -> Union[list[ColumnMatch], UnresolvedColumns]:
    matches = [resolve_column(name, columns) for name in names]
    if all(matches):
        return matches
    if len(names) == 1:
        message = f"Column '{names[0]}' not found."
    else:
        message = f"Columns '{names[0]}' and/or '{names[1]}' not found."
    missing = [name for name, match in zip(names, matches) if match is None]
    return UnresolvedColumns(names=missing, message=message)


def _chart(kind: str, *groups_order: int) -> Callable[[re.Match, list[str]], Action]:
    """Handler building a ChartCommand from the given regex groups."""

    def handler(match: re.Match, columns: list[str]) -> Action:
        names = [match.group(i) for i in groups_order]
        resolved = _resolve_all(names, columns)
        if isinstance(resolved, UnresolvedColumns):
            return resolved
        return ChartCommand(
            kind=kind,
            columns=tuple(m.name for m in resolved),
            notes=[m.note for m in resolved if m.note],
        )

    return handler


def _cleaning(operation: str, has_argument: bool = False) -> Callable[[re.Match, list[str]], Action]:
    """Handler building a CleaningCommand on the column in group 1."""

    def handler(match: re.Match, columns: list[str]) -> Action:
        resolved = _resolve_all([match.group(1)], columns)
        if isinstance(resolved, UnresolvedColumns):
            return resolved
        return CleaningCommand(
            operation=operation,
            column=resolved[0].name,
            argument=match.group(2) if has_argument else None,
            notes=[m.note for m in resolved if m.note],
        )

    return handler


def _summary(match: re.Match, columns: list[str]) -> Action:
    return SummaryCommand()


# First match wins.
_DISPATCH: list[tuple[re.Pattern, Callable[[re.Match, list[str]], Action]]] = [
    (re.compile(rf"histogram[^a-z0-9]+(?:of|for)?\s*{_COL}", re.I), _chart("histogram", 1)),
    (re.compile(rf"scatter.*?(?:of\s+)?{_COL}\s*(?:vs|and)\s*{_COL}", re.I), _chart("scatter", 1, 2)),
    (re.compile(rf"pie[^a-z0-9]+(?:of|for)?\s*{_COL}", re.I), _chart("pie", 1)),
    (
        re.compile(
            rf"fill\s+(?:missing|nulls?)\s+(?:in\s+)?{_COL}\s+(?:with\s+)(mean|median|mode|[a-z0-9_\-\.]+)",
            re.I,
        ),
        _cleaning("fill_nulls", has_argument=True),
    ),
    (re.compile(rf"remove\s+rows\s+where\s+{_COL}\s+(?:is\s+)?null", re.I), _cleaning("remove_null_rows")),
    (re.compile(rf"drop\s+column\s+{_COL}", re.I), _cleaning("drop_column")),
    (re.compile(rf"rename\s+column\s+{_COL}\s+to\s+{_COL}", re.I), _cleaning("rename_column", has_argument=True)),
    # "line of Sales over Date": Y first, X second.
    (re.compile(rf"line(?:\s+chart)?[^a-z0-9]+(?:of\s+)?{_COL}\s*(?:vs|over|by)\s*{_COL}", re.I), _chart("line", 2, 1)),
    (re.compile(rf"bar(?:\s+chart)?[^a-z0-9]+(?:of\s+)?count\s+(?:by|for)\s*{_COL}", re.I), _chart("bar_count", 1)),
    (re.compile(rf"bar(?:\s+chart)?[^a-z0-9]+(?:of\s+)?{_COL}\s+(?:by|per|vs)\s*{_COL}", re.I), _chart("bar_agg", 1, 2)),
    (re.compile(rf"box(?:\s+plot)?[^a-z0-9]+(?:of\s+)?{_COL}\s+(?:by|per|vs)\s*{_COL}", re.I), _chart("box", 1, 2)),
    (re.compile(rf"heatmap[^a-z0-9]+(?:of\s+)?{_COL}\s*(?:vs|by)\s*{_COL}", re.I), _chart("heatmap", 1, 2)),
    (re.compile(rf"bar[^a-z0-9]+{_COL}\s*(?:vs|by|per)\s*{_COL}", re.I), _chart("bar", 1, 2)),
    (re.compile(r"(describe|insights|summary|stats|statistics)", re.I), _summary),
]


def interpret(text: str, columns: list[str]) -> Action:
    """Map a free-text command to an action.

    Never raises for unmatched input; returns ``Unrecognized`` instead.

    Args:
        text: The user's request.
        columns: Columns of the current table.

    Returns:
        The structured action.
    """
    text = (text or "").strip()
    columns = [str(col) for col in columns]
    for pattern, handler in _DISPATCH:
        match = pattern.search(text)
        if match:
            return handler(match, columns)
    return Unrecognized()


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def _with_notes(message: str, notes: list[str]) -> str:
    return f"{message} {' '.join(notes)}".strip()


def _numeric_count(df: pd.DataFrame, column: str) -> int:
    return sum(1 for v in df[column].tolist() if to_number(v) is not None)


def _build_chart(df: pd.DataFrame, command: ChartCommand) -> tuple[ChartSpec, str]:
    kind, cols = command.kind, command.columns

    if kind == "histogram":
        return charts.histogram(df, cols[0]), f"Added Histogram - {cols[0]}."
    if kind == "scatter":
        return charts.scatter(df, *cols), f"Added Scatter Plot - {cols[0]} vs {cols[1]}."
    if kind == "pie":
        return charts.pie(df, cols[0]), f"Added Pie Chart - {cols[0]}."
    if kind == "line":
        x, y = cols
        return charts.line(df, x, y), f"Added Line Chart - {y} over {x}."
    if kind == "bar_count":
        return charts.bar_count(df, cols[0]), f"Added Bar Chart - count by {cols[0]}."
    if kind == "bar_agg":
        y, x = cols
        return charts.bar_agg(df, y, x), f"Added Bar Chart - mean {y} by {x}."
    if kind == "box":
        y, x = cols
        return charts.box(df, y, x), f"Added Box Plot - {y} by {x}."
    if kind == "heatmap":
        x, y = cols
        return charts.heatmap(df, x, y), f"Added Heatmap - {x} vs {y}."
    if kind == "bar":
        # The more numeric of the two columns goes on the Y axis.
        x, y = cols
        if _numeric_count(df, x) > _numeric_count(df, y):
            x, y = y, x
        if _numeric_count(df, y) > 0:
            return charts.bar_agg(df, y, x), f"Added Bar Chart - mean {y} by {x}."
        return charts.bar_count(df, x), f"Added Bar Chart - count by {x}."

    raise ValueError(f"Unknown chart type '{kind}'")


def _apply_cleaning(df: pd.DataFrame, command: CleaningCommand) -> tuple[pd.DataFrame, CleaningLogEntry, str]:
    col = command.column

    if command.operation == "fill_nulls":
        cleaned, entry = cleaning.fill_nulls(df, col, command.argument)
        return cleaned, entry, f"Filled nulls in {col}."
    if command.operation == "remove_null_rows":
        cleaned, entry = cleaning.remove_null_rows(df, col)
        return cleaned, entry, f"Removed {entry.rows_removed} rows with null {col}."
    if command.operation == "drop_column":
        cleaned, entry = cleaning.drop_column(df, col)
        return cleaned, entry, f"Dropped column {col}."
    if command.operation == "rename_column":
        cleaned, entry = cleaning.rename_column(df, col, command.argument)
        return cleaned, entry, f"Renamed column {col} to {command.argument}."

    raise ValueError(f"Unknown cleaning operation '{command.operation}'")


def summary_message(df: pd.DataFrame, suggestion_count: int = 0) -> str:
    return (
        f"Rows: {len(df)}. Columns: {len(df.columns)}. "
        f"Numeric: {len(numeric_columns(df))}. "
        f"Suggestions available: {suggestion_count}."
    )


def execute_action(action: Action, df: pd.DataFrame, suggestion_count: int = 0) -> CommandOutcome:
    """Run an interpreted action against the current table.

    The input table is never mutated; cleaning actions return a new table
    in the outcome. Usage errors (absent column, duplicate rename target)
    come back as an ``"Error: ..."`` message with the table unchanged.

    Args:
        action: Action returned by ``interpret``.
        df: The current table.
        suggestion_count: Number of suggestions currently available, used by
            the summary message.

    Returns:
        CommandOutcome with the reply and the resulting table and chart.
    """
    try:
        if isinstance(action, ChartCommand):
            chart, message = _build_chart(df, action)
            return CommandOutcome(_with_notes(message, action.notes), df, chart=chart)
        if isinstance(action, CleaningCommand):
            cleaned, entry, message = _apply_cleaning(df, action)
            return CommandOutcome(_with_notes(message, action.notes), cleaned, log_entry=entry)
    except ValueError as exc:
        return CommandOutcome(f"Error: {exc}", df)

    if isinstance(action, SummaryCommand):
        return CommandOutcome(summary_message(df, suggestion_count), df)
    if isinstance(action, UnresolvedColumns):
        return CommandOutcome(action.message, df)
    return CommandOutcome(HELP_MESSAGE, df)


def run_command(text: str, df: pd.DataFrame, suggestion_count: int = 0) -> CommandOutcome:
    """Interpret and execute *text* against *df* in one call."""
    return execute_action(interpret(text, list(df.columns)), df, suggestion_count)
