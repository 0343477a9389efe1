"""Rule-based cleaning, analysis and visualization suggestions."""

from __future__ import annotations

import pandas as pd

from data_clinic.models import ColumnType, Suggestion, SuggestionType
from data_clinic.tools.inspection import column_types, count_duplicates, count_missing

# action prefix, title suffix, method phrase, confidence
_MISSING_RULES: dict[ColumnType, tuple[str, str, str, float]] = {
    ColumnType.NUMERIC: ("fill_median", "Numeric", "Suggest filling with median.", 0.95),
    ColumnType.CATEGORICAL: ("fill_mode", "Categorical", "Suggest filling with mode.", 0.9),
    ColumnType.DATETIME: ("forward_fill_datetime", "Datetime", "Suggest forward fill.", 0.92),
}

# Action prefix -> column type, e.g. "fill_median_" -> NUMERIC.
MISSING_ACTION_PREFIXES: dict[str, ColumnType] = {
    rule[0] + "_": kind for kind, rule in _MISSING_RULES.items()
}


def _missing_suggestion(column: str, count: int, kind: ColumnType) -> Suggestion:
    prefix, label, method, confidence = _MISSING_RULES[kind]
    return Suggestion(
        id=f"missing-{column}",
        type=SuggestionType.CLEANING,
        title=f"Missing Values in {column} ({label})",
        description=(
            f"Found {count} missing values in {kind.value} column '{column}'. {method}"
        ),
        action=f"{prefix}_{column}",
        confidence=confidence,
    )


def generate_suggestions(df: pd.DataFrame) -> list[Suggestion]:
    """Build the ordered suggestion list for the current table.

    Order: one cleaning suggestion per column with missing values, duplicate
    removal, then analysis (correlation, descriptive statistics, trend) and
    visualization (histograms, scatter plots, pie charts, time-series lines)
    suggestions gated on the inferred column types.

    Args:
        df: The current table.

    Returns:
        A fresh list of Suggestion objects, all with ``applied=False``.
    """
    if df is None or df.empty:
        return []

    types = column_types(df)
    numeric = [c for c, t in types.items() if t == ColumnType.NUMERIC]
    categorical = [c for c, t in types.items() if t == ColumnType.CATEGORICAL]
    datetime_cols = [c for c, t in types.items() if t == ColumnType.DATETIME]

    suggestions: list[Suggestion] = [
        _missing_suggestion(col, count, types[col])
        for col, count in count_missing(df).items()
    ]

    duplicates = count_duplicates(df)
    if duplicates > 0:
        suggestions.append(
            Suggestion(
                id="duplicates",
                type=SuggestionType.CLEANING,
                title="Duplicate Rows Detected",
                description=(
                    f"Found {duplicates} duplicate rows. Consider removing "
                    "duplicates to improve data quality."
                ),
                action="remove_duplicates",
                confidence=0.95,
            )
        )

    if len(numeric) >= 2:
        suggestions.append(
            Suggestion(
                id="correlation",
                type=SuggestionType.ANALYSIS,
                title="Correlation Analysis",
                description=(
                    f"Analyze correlations between {len(numeric)} numeric columns "
                    "to find relationships."
                ),
                action="correlation_analysis",
                confidence=0.8,
            )
        )

    if numeric:
        suggestions.append(
            Suggestion(
                id="descriptive_stats",
                type=SuggestionType.ANALYSIS,
                title="Descriptive Statistics",
                description=(
                    f"Generate summary statistics for {len(numeric)} numeric columns."
                ),
                action="descriptive_stats",
                confidence=0.9,
            )
        )

    if datetime_cols:
        suggestions.append(
            Suggestion(
                id="trend_analysis",
                type=SuggestionType.ANALYSIS,
                title="Trend Analysis over Time",
                description=(
                    f"Analyze trends in {len(datetime_cols)} datetime columns to "
                    "identify temporal patterns."
                ),
                action="trend_analysis_datetime",
                confidence=0.85,
            )
        )

    if numeric:
        suggestions.append(
            Suggestion(
                id="histogram",
                type=SuggestionType.VISUALIZATION,
                title="Distribution Analysis",
                description=(
                    "Create histograms to visualize the distribution of numeric data."
                ),
                action="create_histograms",
                confidence=0.85,
            )
        )

    if len(numeric) >= 2:
        suggestions.append(
            Suggestion(
                id="scatter_plot",
                type=SuggestionType.VISUALIZATION,
                title="Scatter Plot Matrix",
                description=(
                    "Create scatter plots to explore relationships between "
                    "numeric variables."
                ),
                action="create_scatter_plots",
                confidence=0.8,
            )
        )

    if categorical:
        suggestions.append(
            Suggestion(
                id="pie_chart",
                type=SuggestionType.VISUALIZATION,
                title="Categorical Distribution",
                description=(
                    "Create pie charts to visualize the distribution of "
                    "categorical data."
                ),
                action="create_pie_charts",
                confidence=0.75,
            )
        )

    if datetime_cols and numeric:
        suggestions.append(
            Suggestion(
                id="line_chart_time",
                type=SuggestionType.VISUALIZATION,
                title="Time Series Line Chart",
                description=(
                    "Create line charts to visualize numeric trends over "
                    "datetime columns."
                ),
                action="create_line_charts_datetime",
                confidence=0.8,
            )
        )

    return suggestions
