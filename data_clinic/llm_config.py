"""Chat model configuration for the Data Clinic assistant.

The assistant is optional: provider ``"none"`` (the default setting) turns
it off and ``get_llm`` returns None.
"""

from __future__ import annotations

from typing import Callable, Optional

from langchain_core.language_models import BaseChatModel

from data_clinic.config import settings

DISABLED = "none"

# Default models per provider
DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-sonnet-20241022",
    "groq": "llama-3.1-70b-versatile",
    "bedrock": "eu.amazon.nova-pro-v1:0",
}

SUPPORTED_PROVIDERS = set(DEFAULT_MODELS.keys())


def _openai(model_name: str, **kwargs) -> BaseChatModel:
    from langchain_openai import ChatOpenAI

    return ChatOpenAI(model=model_name, **kwargs)


def _anthropic(model_name: str, **kwargs) -> BaseChatModel:
    from langchain_anthropic import ChatAnthropic

    return ChatAnthropic(model=model_name, **kwargs)


def _groq(model_name: str, **kwargs) -> BaseChatModel:
    from langchain_groq import ChatGroq

    return ChatGroq(model=model_name, **kwargs)


def _bedrock(model_name: str, **kwargs) -> BaseChatModel:
    from langchain_aws import ChatBedrock

    # ChatBedrock takes sampling parameters through model_kwargs.
    model_kwargs = dict(kwargs.pop("model_kwargs", None) or {})
    model_kwargs.setdefault("temperature", kwargs.pop("temperature"))
    return ChatBedrock(model_id=model_name, model_kwargs=model_kwargs, **kwargs)


_BUILDERS: dict[str, Callable[..., BaseChatModel]] = {
    "openai": _openai,
    "anthropic": _anthropic,
    "groq": _groq,
    "bedrock": _bedrock,
}


def get_llm(
    provider: Optional[str] = None, model: Optional[str] = None, **kwargs
) -> Optional[BaseChatModel]:
    """
    Initialize and return the assistant's chat model.

    Args:
        provider: "openai" | "anthropic" | "groq" | "bedrock", or "none" to
            disable the assistant. Defaults to the configured provider.
        model: Model name override. Falls back to the configured model, then
            to the provider default.
        **kwargs: Additional keyword arguments passed to the chat model
            constructor. ``temperature`` defaults to the configured value.

    Returns:
        Configured LangChain chat model, or None when the assistant is disabled.

    Raises:
        ValueError: If the provider is not supported.
    """
    provider = (provider if provider is not None else settings.LLM_PROVIDER).lower()
    if provider in ("", DISABLED):
        return None

    if provider not in SUPPORTED_PROVIDERS:
        raise ValueError(
            f"Unsupported LLM provider: '{provider}'. "
            f"Supported providers: {sorted(SUPPORTED_PROVIDERS)}"
        )

    model_name = model or settings.LLM_MODEL or DEFAULT_MODELS[provider]
    kwargs.setdefault("temperature", settings.LLM_TEMPERATURE)
    return _BUILDERS[provider](model_name, **kwargs)
