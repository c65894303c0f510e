# tests/unit/config/test_settings.py - v2
"""Tests for config/settings.py - typed Settings and validation rules."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from docuforge.config.document_types import DocumentType
from docuforge.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_provider(self):
        s = Settings(_env_file=None)
        assert s.llm_default_provider == "openai"
        assert s.llm_default_model == "gpt-4o"

    def test_default_cache(self):
        s = Settings(_env_file=None)
        assert s.cache_enabled is True
        assert s.cache_backend == "json"

    def test_default_retry_policy(self):
        s = Settings(_env_file=None)
        assert s.retry_max_attempts == 3
        assert s.retry_base_delay_s == 1.0
        assert s.retry_backoff_factor == 2.0

    def test_default_refinement_types(self):
        s = Settings(_env_file=None)
        assert s.refinement_document_types_list == [
            "biography", "business_plan", "grant_proposal",
        ]

    def test_fallback_disabled(self):
        assert Settings(_env_file=None).allow_fallback is False


class TestSettingsValidation:
    def test_redis_without_url(self):
        with pytest.raises(ConfigurationError, match="CACHE_REDIS_URL"):
            Settings(_env_file=None, cache_backend="redis")

    def test_redis_with_url(self):
        s = Settings(_env_file=None, cache_backend="redis", cache_redis_url="redis://localhost:6379/0")
        assert s.cache_backend == "redis"

    def test_non_positive_ttl(self):
        with pytest.raises(ConfigurationError, match="CACHE_TTL_MEDICAL_REPORT_S"):
            Settings(_env_file=None, cache_ttl_medical_report_s=0)

    def test_token_share_bounds(self):
        with pytest.raises(ConfigurationError, match="COST_INPUT_TOKEN_SHARE"):
            Settings(_env_file=None, cost_input_token_share=1.0)

    def test_unknown_refinement_type(self):
        with pytest.raises(ConfigurationError, match="REFINEMENT_DOCUMENT_TYPES"):
            Settings(_env_file=None, refinement_document_types="biography,poem")

    def test_retry_attempts_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, retry_max_attempts=0)

    def test_errors_are_joined(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(_env_file=None, cache_backend="redis", llm_timeout_s=0)
        assert "CACHE_REDIS_URL" in str(exc_info.value)
        assert "LLM_TIMEOUT_S" in str(exc_info.value)


class TestSettingsHelpers:
    def test_refinement_list_parsing(self):
        s = Settings(_env_file=None, refinement_document_types=" Biography , grant_proposal ,")
        assert s.refinement_document_types_list == ["biography", "grant_proposal"]

    def test_is_refinement_enabled(self):
        s = Settings(_env_file=None)
        assert s.is_refinement_enabled(DocumentType.BIOGRAPHY)
        assert s.is_refinement_enabled("business_plan")
        assert not s.is_refinement_enabled(DocumentType.CASE_SUMMARY)
        assert not s.is_refinement_enabled("medical_report")

    def test_empty_refinement_list(self):
        s = Settings(_env_file=None, refinement_document_types="")
        assert s.refinement_document_types_list == []
        assert not s.is_refinement_enabled(DocumentType.BIOGRAPHY)

    def test_ttl_follows_sensitivity(self):
        s = Settings(_env_file=None)
        assert (
            s.ttl_for(DocumentType.MEDICAL_REPORT)
            < s.ttl_for(DocumentType.CASE_SUMMARY)
            < s.ttl_for(DocumentType.BUSINESS_PLAN)
            < s.ttl_for(DocumentType.BIOGRAPHY)
        )

    def test_ttl_override(self):
        s = Settings(_env_file=None, cache_ttl_biography_s=42)
        assert s.ttl_for("biography") == 42

    def test_ttl_unknown_type_uses_default(self):
        s = Settings(_env_file=None, cache_ttl_default_s=99)
        assert s.ttl_for("poem") == 99
        assert s.ttl_for(None) == 99


class TestLoadSettings:
    def test_overrides(self):
        s = load_settings(_env_file=None, cache_backend="sqlite", retry_max_attempts=5)
        assert s.cache_backend == "sqlite"
        assert s.retry_max_attempts == 5

    def test_env_variables(self, monkeypatch):
        monkeypatch.setenv("LLM_DEFAULT_PROVIDER", "anthropic")
        monkeypatch.setenv("CACHE_ENABLED", "false")
        s = load_settings(_env_file=None)
        assert s.llm_default_provider == "anthropic"
        assert s.cache_enabled is False
