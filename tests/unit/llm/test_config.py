# tests/unit/llm/test_config.py - v1
"""Tests for llm/config.py - provider/model resolution cascade."""

from __future__ import annotations

from docuforge.config.settings import Settings
from docuforge.core.collaborators import ProviderPreference, UserPreferences
from docuforge.core.models import GenerationRequest
from docuforge.llm.config import DEFAULT_MODELS, resolve_generation_config


def _request(**kwargs) -> GenerationRequest:
    return GenerationRequest(document_type="biography", raw_input={"subject": {"name": "Ada"}}, **kwargs)


class TestProviderCascade:
    def test_request_override_wins(self, settings):
        pref = ProviderPreference(provider="anthropic")
        user = UserPreferences(default_provider="gemini")
        config = resolve_generation_config(_request(provider_name="llama"), settings, pref, user)
        assert config.provider == "llama"
        assert config.source == "request"

    def test_document_type_preference(self, settings):
        pref = ProviderPreference(provider="anthropic", model="claude-3-sonnet-20240229")
        config = resolve_generation_config(_request(), settings, pref, UserPreferences(default_provider="gemini"))
        assert config.provider == "anthropic"
        assert config.model == "claude-3-sonnet-20240229"
        assert config.source == "document_type"

    def test_user_default(self, settings):
        user = UserPreferences(default_provider="gemini", default_model="gemini-1.5-flash")
        config = resolve_generation_config(_request(), settings, None, user)
        assert config.key == "gemini:gemini-1.5-flash"
        assert config.source == "user"

    def test_system_default(self, settings):
        config = resolve_generation_config(_request(), settings)
        assert config.key == "openai:gpt-4o"
        assert config.source == "default"

    def test_hardcoded_fallback(self):
        settings = Settings(_env_file=None, llm_default_provider="")
        config = resolve_generation_config(_request(), settings)
        assert config.provider == "openai"
        assert config.source == "fallback"


class TestModelResolution:
    def test_request_model(self, settings):
        config = resolve_generation_config(_request(model_id="gpt-4o-mini"), settings)
        assert config.model == "gpt-4o-mini"

    def test_preference_model_ignored_for_other_provider(self, settings):
        pref = ProviderPreference(provider="anthropic", model="claude-3-haiku-20240307")
        config = resolve_generation_config(_request(provider_name="openai"), settings, pref)
        assert config.model == "gpt-4o"

    def test_provider_default_model(self, settings):
        config = resolve_generation_config(_request(provider_name="perplexity"), settings)
        assert config.model == DEFAULT_MODELS["perplexity"]

    def test_user_model_only_for_user_provider(self, settings):
        user = UserPreferences(default_provider="gemini", default_model="gemini-1.5-flash")
        config = resolve_generation_config(_request(provider_name="anthropic"), settings, None, user)
        assert config.model == DEFAULT_MODELS["anthropic"]


class TestParameters:
    def test_temperature_cascade(self, settings):
        pref = ProviderPreference(temperature=0.2)
        assert resolve_generation_config(_request(temperature=0.9), settings, pref).temperature == 0.9
        assert resolve_generation_config(_request(), settings, pref).temperature == 0.2
        assert resolve_generation_config(_request(), settings).temperature == settings.llm_default_temperature

    def test_max_tokens(self, settings):
        pref = ProviderPreference(max_tokens=1500)
        assert resolve_generation_config(_request(max_tokens=900), settings, pref).max_tokens == 900
        assert resolve_generation_config(_request(), settings, pref).max_tokens == 1500
        assert resolve_generation_config(_request(), settings).max_tokens is None

    def test_use_cache(self, settings, tmp_path):
        assert resolve_generation_config(_request(), settings).use_cache is True
        assert resolve_generation_config(_request(use_cache=False), settings).use_cache is False
        pref = ProviderPreference(cache_enabled=False)
        assert resolve_generation_config(_request(), settings, pref).use_cache is False
        disabled = Settings(_env_file=None, cache_enabled=False, cache_root=tmp_path)
        assert resolve_generation_config(_request(), disabled).use_cache is False

    def test_prompt_style(self, settings):
        assert resolve_generation_config(_request(), settings).prompt_style == "professional"
        user = UserPreferences(prompt_style="academic")
        assert resolve_generation_config(_request(), settings, None, user).prompt_style == "academic"
        assert resolve_generation_config(_request(prompt_style="creative"), settings, None, user).prompt_style == "creative"

    def test_fallback_intent(self, settings):
        user = UserPreferences(allow_fallback=True, fallback_provider="anthropic")
        config = resolve_generation_config(_request(), settings, None, user)
        assert config.allow_fallback is True
        assert config.fallback_provider == "anthropic"
