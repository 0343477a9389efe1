"""Core data models for the Data Clinic processing engine."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional

import pandas as pd
from typing_extensions import TypedDict


class ColumnNotFoundError(ValueError):
    """Raised when an operation references a column the table does not have."""

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"Column '{column}' not found.")


class ColumnType(str, Enum):
    """Semantic type inferred for a column from a sample of its values."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    DATETIME = "datetime"


class SuggestionType(str, Enum):
    CLEANING = "cleaning"
    ANALYSIS = "analysis"
    VISUALIZATION = "visualization"


class SessionState(TypedDict, total=False):
    """Central state object shared across workflow nodes and session calls."""

    # Input
    file_path: str
    output_dir: str

    # Data
    raw_rows: Optional[list]
    df: Optional[pd.DataFrame]
    original_shape: Optional[tuple[int, int]]

    # Preprocessing
    steps: list[str]

    # Analysis
    column_types: dict[str, str]
    suggestions: list[Suggestion]
    stats: dict[str, ColumnStats]
    correlations: dict[str, float]
    insights: Optional[dict]

    # Visualization
    charts: list[ChartSpec]
    figure_paths: list[str]

    # Output
    report_path: Optional[str]
    messages: list[dict]

    # Traceability
    errors: list[str]
    activity_log: list[dict]


@dataclass
class ColumnStats:
    """Descriptive statistics for one numeric column."""

    count: int
    mean: float
    median: float
    min: float
    max: float
    std: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass
class Suggestion:
    """A proposed cleaning, analysis or visualization action."""

    id: str
    type: SuggestionType
    title: str
    description: str
    action: str
    confidence: float
    applied: bool = False

    def mark_applied(self) -> None:
        # One-way flag: once applied, a suggestion never reverts.
        self.applied = True

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data


@dataclass
class CleaningLogEntry:
    """Record of a single cleaning operation."""

    timestamp: str
    operation: str
    columns_affected: list[str]
    parameters: dict
    rows_before: int
    rows_after: int
    description: str

    @property
    def rows_removed(self) -> int:
        return self.rows_before - self.rows_after


# ---------------------------------------------------------------------------
# Chart specs
# ---------------------------------------------------------------------------


@dataclass
class ChartSpec:
    """Base class for renderer-ready chart data."""

    kind: ClassVar[str] = ""

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, **asdict(self)}


@dataclass
class HistogramChart(ChartSpec):
    column: str
    data: list[float] = field(default_factory=list)

    kind: ClassVar[str] = "histogram"


@dataclass
class ScatterChart(ChartSpec):
    x: str
    y: str
    data: list[dict] = field(default_factory=list)

    kind: ClassVar[str] = "scatter"


@dataclass
class PieChart(ChartSpec):
    column: str
    data: list[dict] = field(default_factory=list)

    kind: ClassVar[str] = "pie"


@dataclass
class LineChart(ChartSpec):
    x: str
    y: str
    data: list[dict] = field(default_factory=list)

    kind: ClassVar[str] = "line"


@dataclass
class BarCountChart(ChartSpec):
    x: str
    labels: list[str] = field(default_factory=list)
    values: list[int] = field(default_factory=list)

    kind: ClassVar[str] = "bar_count"


@dataclass
class BarAggChart(ChartSpec):
    x: str
    y: str
    labels: list[str] = field(default_factory=list)
    values: list[float] = field(default_factory=list)
    agg: str = "mean"

    kind: ClassVar[str] = "bar_agg"


@dataclass
class BoxChart(ChartSpec):
    x: str
    y: str
    groups: dict[str, list[float]] = field(default_factory=dict)

    kind: ClassVar[str] = "box"


@dataclass
class HeatmapChart(ChartSpec):
    x: str
    y: str
    data: list[dict] = field(default_factory=list)

    kind: ClassVar[str] = "heatmap"
