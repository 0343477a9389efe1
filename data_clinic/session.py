"""Interactive session operations on an already processed dataset.

A session is the SessionState produced by the upload workflow. Suggestions
are executed by action id, and free-text commands go through the assistant
(when one is configured) and the command interpreter. Replies are appended
to state["messages"].
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Callable, Optional

from data_clinic.assistant import ask_assistant, build_chat_context
from data_clinic.commands import run_command
from data_clinic.config import settings
from data_clinic.graph import refresh_analysis, refresh_statistics
from data_clinic.models import CleaningLogEntry, SessionState, Suggestion
from data_clinic.state_log import append_activity, append_error, ensure_list
from data_clinic.tools import charts
from data_clinic.tools.cleaning import drop_duplicates, impute_column
from data_clinic.tools.eda import correlation_matrix, describe_numeric
from data_clinic.tools.plotting import render_charts
from data_clinic.tools.suggestions import MISSING_ACTION_PREFIXES

logger = logging.getLogger(__name__)

NO_DATASET_MESSAGE = "Please upload and preprocess a dataset first."

_CHART_ACTIONS: dict[str, Callable] = {
    "create_histograms": charts.auto_histograms,
    "create_scatter_plots": charts.auto_scatter_plots,
    "create_pie_charts": charts.auto_pie_charts,
    "create_line_charts_datetime": charts.auto_line_charts,
    "trend_analysis_datetime": charts.auto_line_charts,
}


def _push_message(state: dict, role: str, text: str) -> None:
    ensure_list(state, "messages")
    state["messages"].append(
        {"role": role, "text": text, "time": datetime.now().strftime("%H:%M:%S")}
    )


def _has_data(state: dict) -> bool:
    df = state.get("df")
    return df is not None and not df.empty


def _record_step(state: dict, entry: CleaningLogEntry) -> None:
    ensure_list(state, "steps")
    state["steps"].append(entry.description)


def find_suggestion(state: dict, suggestion_id: str) -> Optional[Suggestion]:
    for suggestion in state.get("suggestions") or []:
        if suggestion.id == suggestion_id:
            return suggestion
    return None


def _run_action(state: dict, action: str) -> str:
    """Execute one suggestion action against state and return a status message."""
    df = state["df"]

    if action == "descriptive_stats":
        state["stats"] = describe_numeric(df)
        return f"Generated descriptive statistics for {len(state['stats'])} numeric columns."

    if action == "correlation_analysis":
        state["correlations"] = correlation_matrix(df)
        return f"Computed {len(state['correlations'])} pairwise correlations."

    if action in _CHART_ACTIONS:
        built = _CHART_ACTIONS[action](df)
        if not built:
            return "No suitable columns found for this chart."
        # Only one chart is shown at a time.
        state["charts"] = built[:1]
        return f"Created {len(built)} charts; showing the first one."

    if action == "remove_duplicates":
        state["df"], entry = drop_duplicates(df)
        _record_step(state, entry)
        refresh_statistics(state)
        return entry.description

    for prefix, column_type in MISSING_ACTION_PREFIXES.items():
        if action.startswith(prefix):
            column = action[len(prefix):]
            state["df"], entry = impute_column(df, column, column_type)
            if entry is None:
                return f"No missing values left in '{column}'."
            _record_step(state, entry)
            refresh_statistics(state)
            return entry.description

    raise ValueError(f"Unknown action '{action}'")


def execute_suggestion(state: SessionState, suggestion_id: str) -> str:
    """Execute a suggestion by id and flip its ``applied`` flag on success.

    The suggestion list itself is not regenerated. A suggestion that has
    already been applied is not run again.

    Args:
        state: Session state holding the current table and suggestions.
        suggestion_id: Id of the suggestion to run.

    Returns:
        A status message (prefixed with ``"Error:"`` on failure).
    """
    ensure_list(state, "errors")

    suggestion = find_suggestion(state, suggestion_id)
    if suggestion is None:
        message = f"Error: suggestion '{suggestion_id}' not found."
        append_error(state, message)
        return message
    if suggestion.applied:
        return f"Suggestion '{suggestion_id}' has already been applied."
    if not _has_data(state):
        return NO_DATASET_MESSAGE

    try:
        message = _run_action(state, suggestion.action)
    except Exception as exc:
        append_error(state, f"Suggestion '{suggestion_id}' failed: {exc}")
        append_activity(state, "session", f"Suggestion '{suggestion_id}' failed: {exc}")
        return f"Error: {exc}"

    suggestion.mark_applied()
    append_activity(state, "session", f"Applied suggestion '{suggestion_id}': {message}")
    return message


def handle_command(state: SessionState, text: str, llm: Any = None) -> list[str]:
    """Answer a free-text request and apply any chart or cleaning it describes.

    The assistant, if configured, is asked first and its reply is shown
    as-is; the local interpreter still runs afterwards. Cleaning commands
    replace the table, append a step and recompute the statistics,
    suggestions and summary. Chart commands replace the current chart.

    Args:
        state: Session state.
        text: The user's request.
        llm: Optional LangChain chat model.

    Returns:
        The replies appended to state["messages"] for this request.
    """
    text = (text or "").strip()
    if not text:
        return []

    _push_message(state, "user", text)
    replies: list[str] = []

    def reply(message: str) -> None:
        _push_message(state, "ai", message)
        replies.append(message)

    if not _has_data(state):
        reply(NO_DATASET_MESSAGE)
        return replies

    if llm is not None:
        try:
            context = build_chat_context(state["df"], state.get("insights"))
            answer = ask_assistant(llm, text, context)
            if answer:
                reply(answer)
        except Exception as exc:
            logger.warning("Assistant call failed: %s", exc)

    outcome = run_command(text, state["df"], len(state.get("suggestions") or []))

    if outcome.log_entry is not None:
        state["df"] = outcome.df
        _record_step(state, outcome.log_entry)
        refresh_analysis(state)
        append_activity(state, "session", outcome.log_entry.description)
    if outcome.chart is not None:
        state["charts"] = [outcome.chart]
        append_activity(state, "session", f"Built {outcome.chart.kind} chart.")

    reply(outcome.message)
    return replies


def render_current_charts(state: SessionState) -> list[str]:
    """Save the session's current charts under ``<output_dir>/figures``.

    Paths not listed yet are appended to state["figure_paths"] so the next
    report links them.

    Returns:
        The newly listed figure paths.
    """
    ensure_list(state, "figure_paths")
    figures_dir = os.path.join(state.get("output_dir") or settings.OUTPUT_DIR, "figures")
    saved = render_charts(state.get("charts") or [], figures_dir)
    new_paths = [path for path in saved if path not in state["figure_paths"]]
    state["figure_paths"] = state["figure_paths"] + new_paths
    if new_paths:
        append_activity(state, "session", f"Saved {len(new_paths)} figures.")
    return new_paths
