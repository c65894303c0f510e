# tests/unit/llm/test_client_factory.py - v1
"""Tests for llm/client_factory.py."""

from __future__ import annotations

import pytest

from docuforge.config.settings import Settings
from docuforge.llm import client_factory
from docuforge.llm.base_client import SearchCapable, VisionCapable, supports
from docuforge.llm.client_factory import (
    UnsupportedProviderError,
    available_providers,
    create_llm_client,
    register_provider,
)


class TestCreateLLMClient:
    def test_unsupported_provider(self):
        with pytest.raises(UnsupportedProviderError, match="mistral"):
            create_llm_client("mistral", "mistral-large")

    def test_unsupported_is_value_error(self):
        with pytest.raises(ValueError):
            create_llm_client("", "m")

    def test_openai(self, settings):
        client = create_llm_client("openai", "gpt-4o", settings)
        assert client.provider_name == "openai"
        assert client.default_model == "gpt-4o"
        assert supports(client, VisionCapable)
        assert not supports(client, SearchCapable)

    def test_settings_applied(self):
        settings = Settings(_env_file=None, openai_api_key="sk-test", llm_timeout_s=7, cost_input_token_share=0.5)
        client = create_llm_client("openai", "gpt-4o", settings)
        assert client._api_key == "sk-test"
        assert client._timeout == 7
        assert client.input_share == 0.5

    def test_perplexity_is_search_capable(self, settings):
        client = create_llm_client("perplexity", "sonar-large", settings)
        assert supports(client, SearchCapable)
        assert client._base_url == settings.perplexity_base_url

    @pytest.mark.parametrize("provider,model", [
        ("anthropic", "claude-3-opus-20240229"),
        ("gemini", "gemini-1.5-pro"),
        ("llama", "llama-3-70b"),
    ])
    def test_other_providers(self, settings, provider, model):
        client = create_llm_client(provider, model, settings)
        assert client.provider_name == provider
        assert client.default_model == model

    def test_llama_hosted_from_settings(self):
        settings = Settings(_env_file=None, llama_host="groq", llama_api_key="gsk")
        client = create_llm_client("llama", "llama-3-70b", settings)
        assert client.resolve_model(None) == "llama3-70b-8192"

    def test_explicit_kwargs_win(self, settings):
        client = create_llm_client("openai", "gpt-4o", settings, api_key="override")
        assert client._api_key == "override"


class TestRegistry:
    def test_available_providers(self):
        assert available_providers() == ["anthropic", "gemini", "llama", "openai", "perplexity"]

    def test_register_provider(self, monkeypatch, stub_llm_class):
        monkeypatch.setattr(client_factory, "_PROVIDER_REGISTRY", dict(client_factory._PROVIDER_REGISTRY))
        monkeypatch.setattr(client_factory, "_import_class", lambda path: stub_llm_class)
        register_provider("custom", "somewhere.CustomAdapter")
        assert "custom" in available_providers()
        client = create_llm_client("custom", "custom-1")
        assert isinstance(client, stub_llm_class)
        assert client.default_model == "custom-1"
