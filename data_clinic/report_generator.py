"""Report generator that compiles preprocessing and analysis results into Markdown."""

from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Optional

from data_clinic.models import CleaningLogEntry, ColumnStats, Suggestion

_STAT_FIELDS = ("count", "mean", "median", "min", "max", "std")


def _format_number(value: float) -> str:
    if isinstance(value, float) and math.isnan(value):
        return "undefined"
    if isinstance(value, int) or float(value).is_integer():
        return str(int(value))
    return f"{value:.4f}"


def _format_step(entry: str | CleaningLogEntry) -> str:
    """Format a single preprocessing step as a Markdown list item."""
    if isinstance(entry, CleaningLogEntry):
        return f"- {entry.description} (rows: {entry.rows_before} → {entry.rows_after})"
    return f"- {entry}"


def _format_stats(stats: dict[str, ColumnStats]) -> str:
    """Format descriptive statistics as a Markdown table."""
    if not stats:
        return "No numeric columns found.\n"

    lines = [
        "| Column | " + " | ".join(f.title() for f in _STAT_FIELDS) + " |",
        "|--------|" + "|".join("-" * (len(f) + 2) for f in _STAT_FIELDS) + "|",
    ]
    for col, col_stats in stats.items():
        values = col_stats.to_dict()
        lines.append(
            f"| {col} | " + " | ".join(_format_number(values[f]) for f in _STAT_FIELDS) + " |"
        )
    lines.append("")
    return "\n".join(lines)


def _format_correlations(correlations: dict[str, float]) -> str:
    if not correlations:
        return "Fewer than 2 numeric columns, correlation analysis skipped.\n"

    lines = ["| Pair | Pearson r |", "|------|-----------|"]
    for pair, r in correlations.items():
        lines.append(f"| {pair} | {_format_number(r)} |")
    lines.append("")
    return "\n".join(lines)


def _format_suggestions(suggestions: list[Suggestion]) -> str:
    if not suggestions:
        return "No suggestions.\n"

    lines = []
    for s in suggestions:
        status = "applied" if s.applied else "pending"
        lines.append(
            f"- **{s.title}** ({s.type.value}, {round(s.confidence * 100)}% confidence, "
            f"{status}): {s.description}"
        )
    lines.append("")
    return "\n".join(lines)


def _format_summary(summary: dict) -> str:
    if not summary:
        return "No summary available.\n"

    lines = []
    for key, value in summary.items():
        label = key.replace("_", " ").capitalize()
        if isinstance(value, dict):
            if not value:
                continue
            inner = ", ".join(f"{k}={_format_number(v)}" for k, v in value.items())
            lines.append(f"- **{label}**: {inner}")
        else:
            lines.append(f"- **{label}**: {value}")
    lines.append("")
    return "\n".join(lines)


def generate_report(
    original_shape: tuple[int, int],
    cleaned_shape: tuple[int, int],
    steps: list[str | CleaningLogEntry],
    column_types: dict[str, str],
    stats: dict[str, ColumnStats],
    correlations: dict[str, float],
    suggestions: list[Suggestion],
    summary: Optional[dict],
    figure_paths: list[str],
    output_dir: str,
    errors: Optional[list[str]] = None,
) -> str:
    """Generate a Markdown report and save to output_dir/report.md.

    Args:
        original_shape: (rows, cols) of the uploaded dataset.
        cleaned_shape: (rows, cols) of the current table.
        steps: Preprocessing and command step log.
        column_types: Inferred type per column.
        stats: Descriptive statistics per numeric column.
        correlations: Pearson r per ``"<a>_<b>"`` column pair.
        suggestions: Current suggestion list.
        summary: Dataset summary from ``summarize_dataset``.
        figure_paths: Paths of rendered figures.
        output_dir: Directory to save the report.
        errors: Errors collected while processing.

    Returns:
        The path to the saved report file.
    """
    os.makedirs(output_dir, exist_ok=True)

    sections: list[str] = []

    sections.append("# Data Clinic Report\n")

    # Dataset Overview
    sections.append("## Dataset Overview\n")
    sections.append(f"- **Original shape**: {original_shape[0]} rows × {original_shape[1]} columns")
    sections.append(f"- **Cleaned shape**: {cleaned_shape[0]} rows × {cleaned_shape[1]} columns")
    sections.append(f"- **Rows removed**: {original_shape[0] - cleaned_shape[0]}\n")

    # Preprocessing Steps
    sections.append("## Preprocessing Steps\n")
    if steps:
        for entry in steps:
            sections.append(_format_step(entry))
    else:
        sections.append("No preprocessing changes were needed.")
    sections.append("")

    # Column Types
    sections.append("## Column Types\n")
    if column_types:
        sections.append("| Column | Type |")
        sections.append("|--------|------|")
        for col, kind in column_types.items():
            sections.append(f"| {col} | {kind} |")
        sections.append("")
    else:
        sections.append("No columns.\n")

    sections.append("## Descriptive Statistics\n")
    sections.append(_format_stats(stats))

    sections.append("## Correlations\n")
    sections.append(_format_correlations(correlations))

    sections.append("## Suggestions\n")
    sections.append(_format_suggestions(suggestions))

    sections.append("## Dataset Summary\n")
    sections.append(_format_summary(summary or {}))

    # Figures
    if figure_paths:
        sections.append("## Figures\n")
        report_dir = Path(output_dir)
        for fig_path in figure_paths:
            fig = Path(fig_path)
            try:
                rel_path = fig.relative_to(report_dir)
            except ValueError:
                rel_path = fig
            fig_name = fig.stem.replace("_", " ").title()
            sections.append(f"![{fig_name}]({rel_path})\n")

    if errors:
        sections.append("## Errors\n")
        for error in errors:
            sections.append(f"- {error}")
        sections.append("")

    report_content = "\n".join(sections)
    report_path = os.path.join(output_dir, "report.md")
    with open(report_path, "w", encoding="utf-8") as f:
        f.write(report_content)

    return report_path
