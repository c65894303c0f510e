# tests/unit/core/test_collaborators.py - v1
"""Tests for core/collaborators.py - admission, preferences and job observers."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from docuforge.config.document_types import DocumentType
from docuforge.core.collaborators import (
    AllowAllAdmission,
    InMemoryPreferenceStore,
    NullJobObserver,
    ProviderPreference,
    RecordingJobObserver,
    StaticCostLimitAdmission,
    UserPreferences,
)


class TestAdmission:
    @pytest.mark.asyncio
    async def test_allow_all(self):
        decision = await AllowAllAdmission().check_cost_limit("anyone")
        assert decision.allowed is True
        assert decision.reason is None

    @pytest.mark.asyncio
    async def test_under_limit(self):
        lookup = AsyncMock(return_value=4.99)
        policy = StaticCostLimitAdmission(5.0, lookup)
        decision = await policy.check_cost_limit("user-1")
        assert decision.allowed is True
        lookup.assert_awaited_once_with("user-1")

    @pytest.mark.asyncio
    async def test_at_limit_denied(self):
        policy = StaticCostLimitAdmission(5.0, AsyncMock(return_value=5.0))
        decision = await policy.check_cost_limit("user-1")
        assert decision.allowed is False
        assert "$5.00" in decision.reason


class TestInMemoryPreferenceStore:
    @pytest.mark.asyncio
    async def test_empty(self):
        store = InMemoryPreferenceStore()
        assert await store.get_provider_for_document_type("u", DocumentType.BIOGRAPHY) is None
        assert await store.get_user_preferences("u") == UserPreferences()

    @pytest.mark.asyncio
    async def test_per_document_type(self):
        store = InMemoryPreferenceStore()
        pref = ProviderPreference(provider="anthropic", model="claude-3-haiku")
        store.set_document_type_preference("u", DocumentType.CASE_SUMMARY, pref)
        assert await store.get_provider_for_document_type("u", DocumentType.CASE_SUMMARY) == pref
        assert await store.get_provider_for_document_type("u", DocumentType.BIOGRAPHY) is None
        assert await store.get_provider_for_document_type("other", DocumentType.CASE_SUMMARY) is None

    @pytest.mark.asyncio
    async def test_user_preferences(self):
        store = InMemoryPreferenceStore()
        store.set_user_preferences("u", UserPreferences(default_provider="gemini"))
        prefs = await store.get_user_preferences("u")
        assert prefs.default_provider == "gemini"


class TestJobObservers:
    @pytest.mark.asyncio
    async def test_null_observer(self):
        observer = NullJobObserver()
        assert await observer.on_progress("j", 10) is None
        assert await observer.on_complete("j", {}) is None
        assert await observer.on_fail("j", {}) is None

    @pytest.mark.asyncio
    async def test_recording_observer(self):
        observer = RecordingJobObserver()
        await observer.on_progress("j", 10)
        await observer.on_progress("j", 50)
        await observer.on_complete("j", {"status": "completed"})
        await observer.on_fail("k", {"status": "failed"})
        assert observer.progress == [("j", 10), ("j", 50)]
        assert observer.completed["j"]["status"] == "completed"
        assert observer.failed["k"]["status"] == "failed"
