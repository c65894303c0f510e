# tests/unit/core/test_errors.py - v1
"""Tests for core/errors.py - exception taxonomy."""

from __future__ import annotations

import pytest

from docuforge.core.errors import (
    CacheUnavailable,
    DocuforgeError,
    GenerationCancelled,
    GenerationFailed,
    OutlineParseError,
    ParseError,
    ProviderError,
    ProviderErrorKind,
    QuotaExceeded,
    RequestValidationError,
    RetryExhausted,
    SectionParseError,
)


class TestProviderErrorKind:
    @pytest.mark.parametrize("kind,transient", [
        (ProviderErrorKind.RATE_LIMITED, True),
        (ProviderErrorKind.UNAVAILABLE, True),
        (ProviderErrorKind.UNAUTHORIZED, False),
        (ProviderErrorKind.INVALID_REQUEST, False),
    ])
    def test_transient(self, kind, transient):
        assert kind.is_transient is transient
        assert ProviderError(kind, "openai").is_transient is transient


class TestProviderError:
    def test_attributes(self):
        err = ProviderError(ProviderErrorKind.RATE_LIMITED, "openai", "429 slow down", status_code=429)
        assert err.kind == ProviderErrorKind.RATE_LIMITED
        assert err.provider == "openai"
        assert err.status_code == 429
        assert "rate_limited" in str(err)

    def test_public_message_hides_detail(self):
        err = ProviderError(
            ProviderErrorKind.UNAUTHORIZED, "anthropic", "invalid x-api-key sk-ant-secret",
        )
        assert "sk-ant-secret" not in err.public_message
        assert "credentials" in err.public_message

    def test_every_kind_has_public_message(self):
        for kind in ProviderErrorKind:
            assert ProviderError(kind).public_message


class TestHierarchy:
    @pytest.mark.parametrize("exc", [
        RequestValidationError("bad"),
        QuotaExceeded(),
        ProviderError(ProviderErrorKind.UNAVAILABLE),
        OutlineParseError("x"),
        SectionParseError("x"),
        CacheUnavailable("down"),
        RetryExhausted(3, ProviderError(ProviderErrorKind.UNAVAILABLE)),
        GenerationFailed("outline", "openai", "gpt-4o", "boom"),
        GenerationCancelled("sections"),
    ])
    def test_all_are_docuforge_errors(self, exc):
        assert isinstance(exc, DocuforgeError)

    def test_parse_errors(self):
        assert issubclass(OutlineParseError, ParseError)
        assert issubclass(SectionParseError, ParseError)


class TestPayloads:
    def test_validation_errors_default_empty(self):
        assert RequestValidationError("bad").errors == []
        assert RequestValidationError("bad", ["title: too long"]).errors == ["title: too long"]

    def test_quota_reason(self):
        assert QuotaExceeded().reason == "Cost limit exceeded"
        assert str(QuotaExceeded("over budget")) == "over budget"

    def test_retry_exhausted(self):
        last = ProviderError(ProviderErrorKind.RATE_LIMITED, "gemini")
        err = RetryExhausted(3, last)
        assert err.attempts == 3
        assert err.last_error is last
        assert "3 attempts" in str(err)

    def test_generation_failed_message(self):
        err = GenerationFailed("generating_outline", "openai", "gpt-4o", "provider down")
        assert err.stage == "generating_outline"
        assert "openai/gpt-4o" in str(err)

    def test_generation_cancelled(self):
        assert GenerationCancelled("refining").stage == "refining"
