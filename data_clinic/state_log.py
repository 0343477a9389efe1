"""Bookkeeping helpers shared by workflow nodes and session operations.

They keep ``state["errors"]`` and ``state["activity_log"]`` as lists and
append timestamped entries to them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def timestamp() -> str:
    """Return an ISO-8601 UTC timestamp string."""
    return datetime.now(timezone.utc).isoformat()


def ensure_list(state: dict, key: str) -> None:
    """Ensure *key* exists in state as a list."""
    if key not in state or state[key] is None:
        state[key] = []


def append_activity(state: dict, node: str, message: str) -> None:
    """Append an activity log entry to state."""
    ensure_list(state, "activity_log")
    state["activity_log"].append(
        {"timestamp": timestamp(), "node": node, "message": message}
    )


def append_error(state: dict, error_msg: str) -> None:
    """Append an error message to state."""
    ensure_list(state, "errors")
    state["errors"].append(error_msg)
    logger.warning(error_msg)
