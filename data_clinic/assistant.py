"""Chat assistant: context building, prompt formatting and model invocation.

The reply is free text that is shown to the user as-is; nothing here
interprets it.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import pandas as pd
from langchain_core.messages import HumanMessage, SystemMessage

from data_clinic.dataset_io import frame_to_rows

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a specialized data analysis assistant. Always respond directly "
    "with insights. Do NOT suggest commands. Be conversational."
)

SYSTEM_SAMPLE_ROWS = 2
SYSTEM_TRUNCATE = 300
USER_TRUNCATE = 1000


def _to_json(value: Any) -> str:
    return json.dumps(value, default=str)


def build_chat_context(df: Optional[pd.DataFrame], insights: Optional[dict] = None) -> dict:
    """Context handed to the chat model: columns, one sample row and insights."""
    if df is None or df.empty:
        return {"columns": [] if df is None else list(df.columns), "sample": [], "insights": insights}
    return {
        "columns": [str(col) for col in df.columns],
        "sample": frame_to_rows(df.head(1)),
        "insights": insights,
    }


def build_system_prompt(context: Optional[dict]) -> str:
    """Fixed analyst instruction followed by truncated dataset context."""
    prompt = SYSTEM_INSTRUCTION
    if not context:
        return prompt

    columns = context.get("columns") or []
    sample = context.get("sample") or []
    insights = context.get("insights")

    prompt += f"\nAvailable Columns: {', '.join(columns)}"
    if sample:
        prompt += f"\nSample Data: {_to_json(sample[:SYSTEM_SAMPLE_ROWS])[:SYSTEM_TRUNCATE]}"
    if insights:
        prompt += f"\nExisting Insights: {_to_json(insights)[:SYSTEM_TRUNCATE]}"
    return prompt


def build_user_prompt(prompt: str, context: Optional[dict]) -> str:
    """The user's request followed by columns, the first sample row and insights."""
    text = prompt
    if not context:
        return text

    columns = context.get("columns") or []
    sample = context.get("sample") or []
    insights = context.get("insights")

    text += f"\nColumns: {', '.join(columns)}"
    if sample:
        text += f"\nSample Row: {_to_json(sample[0])[:USER_TRUNCATE]}"
    if insights:
        text += f"\nInsights: {_to_json(insights)[:USER_TRUNCATE]}"
    return text


def _content_text(content: Any) -> str:
    """Flatten a chat model reply into plain text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return str(content)


def ask_assistant(llm: Any, prompt: str, context: Optional[dict] = None) -> str:
    """Send the user's prompt with dataset context and return the reply text.

    Args:
        llm: A LangChain chat model.
        prompt: The user's request.
        context: Output of ``build_chat_context``.

    Returns:
        The reply text, stripped.

    Raises:
        ValueError: If *prompt* is empty.
    """
    if not prompt or not prompt.strip():
        raise ValueError("Prompt is required")

    messages = [
        SystemMessage(content=build_system_prompt(context)),
        HumanMessage(content=build_user_prompt(prompt, context)),
    ]
    logger.debug("Asking assistant: %s", prompt)
    response = llm.invoke(messages)
    return _content_text(getattr(response, "content", response)).strip()
