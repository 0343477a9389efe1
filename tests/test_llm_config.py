"""Tests for chat model configuration."""

from unittest.mock import patch, MagicMock

import pytest

from data_clinic.config import settings
from data_clinic.llm_config import get_llm, DEFAULT_MODELS, SUPPORTED_PROVIDERS


class TestGetLlm:
    """Unit tests for get_llm function."""

    def test_unsupported_provider_raises_value_error(self):
        with pytest.raises(ValueError, match="Unsupported LLM provider: 'badprovider'"):
            get_llm(provider="badprovider")

    def test_unsupported_provider_case_insensitive(self):
        with pytest.raises(ValueError):
            get_llm(provider="BADPROVIDER")

    @pytest.mark.parametrize("provider", ["none", "NONE", ""])
    def test_disabled_provider_returns_none(self, provider):
        assert get_llm(provider=provider) is None

    def test_provider_defaults_to_settings(self):
        with patch.object(settings, "LLM_PROVIDER", "none"):
            assert get_llm() is None

    @patch("langchain_groq.ChatGroq")
    def test_configured_model_used_when_no_override(self, mock_cls):
        with patch.object(settings, "LLM_MODEL", "llama-3.3-70b"):
            get_llm(provider="groq")
        mock_cls.assert_called_once_with(model="llama-3.3-70b", temperature=settings.LLM_TEMPERATURE)

    def test_supported_providers_set(self):
        assert SUPPORTED_PROVIDERS == {"openai", "anthropic", "groq", "bedrock"}

    def test_default_models(self):
        assert DEFAULT_MODELS["openai"] == "gpt-4o-mini"
        assert DEFAULT_MODELS["anthropic"] == "claude-3-5-sonnet-20241022"
        assert DEFAULT_MODELS["groq"] == "llama-3.1-70b-versatile"
        assert DEFAULT_MODELS["bedrock"] == "eu.amazon.nova-pro-v1:0"

    @patch("langchain_openai.ChatOpenAI")
    def test_openai_provider_default_model(self, mock_cls):
        mock_instance = MagicMock()
        mock_cls.return_value = mock_instance

        result = get_llm(provider="openai")

        mock_cls.assert_called_once_with(model="gpt-4o-mini", temperature=settings.LLM_TEMPERATURE)
        assert result is mock_instance

    @patch("langchain_openai.ChatOpenAI")
    def test_openai_provider_custom_model(self, mock_cls):
        get_llm(provider="openai", model="gpt-4o")
        mock_cls.assert_called_once_with(model="gpt-4o", temperature=settings.LLM_TEMPERATURE)

    @patch("langchain_anthropic.ChatAnthropic")
    def test_anthropic_provider_default_model(self, mock_cls):
        mock_instance = MagicMock()
        mock_cls.return_value = mock_instance

        result = get_llm(provider="anthropic")

        mock_cls.assert_called_once_with(
            model="claude-3-5-sonnet-20241022", temperature=settings.LLM_TEMPERATURE
        )
        assert result is mock_instance

    @patch("langchain_groq.ChatGroq")
    def test_groq_provider_default_model(self, mock_cls):
        get_llm(provider="groq")
        mock_cls.assert_called_once_with(
            model="llama-3.1-70b-versatile", temperature=settings.LLM_TEMPERATURE
        )

    def test_provider_case_insensitive_valid(self):
        """Provider string is lowercased, so 'OpenAI' should work."""
        with patch("langchain_openai.ChatOpenAI") as mock_cls:
            mock_cls.return_value = MagicMock()
            get_llm(provider="OpenAI")
            mock_cls.assert_called_once_with(model="gpt-4o-mini", temperature=settings.LLM_TEMPERATURE)

    @patch("langchain_openai.ChatOpenAI")
    def test_kwargs_passed_through(self, mock_cls):
        get_llm(provider="openai", temperature=0.5, max_tokens=100)
        mock_cls.assert_called_once_with(model="gpt-4o-mini", temperature=0.5, max_tokens=100)

    @patch("langchain_aws.ChatBedrock")
    def test_bedrock_temperature_goes_into_model_kwargs(self, mock_cls):
        mock_instance = MagicMock()
        mock_cls.return_value = mock_instance
        result = get_llm(provider="bedrock")
        mock_cls.assert_called_once_with(
            model_id="eu.amazon.nova-pro-v1:0",
            model_kwargs={"temperature": settings.LLM_TEMPERATURE},
        )
        assert result is mock_instance

    @patch("langchain_aws.ChatBedrock")
    def test_bedrock_provider_custom_model(self, mock_cls):
        get_llm(provider="bedrock", model="amazon.titan-text-express-v1", temperature=0.0)
        mock_cls.assert_called_once_with(
            model_id="amazon.titan-text-express-v1",
            model_kwargs={"temperature": 0.0},
        )
