# tests/conftest.py - v2
"""Shared test fixtures for all unit and integration tests.

Provides a scripted LLM client, a controllable clock, throwaway cache stores
and a fully wired app. No network access: every provider call is stubbed.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import pytest

from docuforge.api.facade import Docuforge, create_app
from docuforge.cache.json_store import JsonCacheStore
from docuforge.cache.models import CacheEntry, CacheStage
from docuforge.cache.sqlite_store import SqliteCacheStore
from docuforge.config.settings import Settings
from docuforge.llm.base_client import BaseLLMClient, SearchCapable
from docuforge.llm.models import LLMResponse, SearchResponse


# === FIXTURES: Test doubles ===


class StubLLMClient(BaseLLMClient):
    """Replays a script of responses; exceptions in the script are raised.

    Every call is recorded in ``calls`` (prompt, system prompt, model,
    temperature, max_tokens). ``on_call`` runs before each reply, which lets
    tests trigger cancellation mid-run.
    """

    def __init__(
        self,
        script: list[Any] | None = None,
        provider: str = "openai",
        model: str = "gpt-4o",
    ) -> None:
        self._script = list(script or [])
        self._provider = provider
        self._model = model
        self.calls: list[dict[str, Any]] = []
        self.on_call: Callable[[int], None] | None = None

    def queue(self, *items: Any) -> None:
        self._script.extend(items)

    @property
    def remaining(self) -> int:
        return len(self._script)

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def default_model(self) -> str:
        return self._model

    async def generate_completion(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> LLMResponse:
        self.calls.append({
            "prompt": prompt,
            "system_prompt": system_prompt,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.on_call is not None:
            self.on_call(len(self.calls))
        if not self._script:
            raise AssertionError(f"Unexpected provider call #{len(self.calls)}")
        item = self._script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, LLMResponse):
            return item
        return LLMResponse(
            content=str(item),
            prompt_tokens=100,
            completion_tokens=200,
            total_tokens=300,
            model=model or self._model,
            provider=self._provider,
            latency_ms=5,
        )


class SearchStubLLMClient(StubLLMClient, SearchCapable):
    """Stub that also answers search-grounded calls with fixed citations."""

    def __init__(self, *args: Any, citations: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.citations = citations or ["https://example.org/source"]
        self.search_calls = 0

    async def generate_with_search(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        search_domains: list[str] | None = None,
        search_recency: str = "month",
    ) -> SearchResponse:
        self.search_calls += 1
        base = await self.generate_completion(prompt, system_prompt, model, temperature, max_tokens)
        return SearchResponse(**base.model_dump(), citations=list(self.citations))


class FakeClock:
    """Manually advanced UTC clock for cache expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# === FIXTURES: Helpers ===


def _outline_json(
    sections: list[tuple[str, str, int]],
    title: str = "Test Document",
    key_points: list[str] | None = None,
) -> str:
    return json.dumps({
        "title": title,
        "introduction": {"hook": "Hook", "thesis": "Thesis", "preview": "Preview"},
        "sections": {
            sid: {
                "title": section_title,
                "description": f"About {section_title.lower()}",
                "keyPoints": list(key_points or []),
                "estimatedWords": 50,
                "order": order,
            }
            for sid, section_title, order in sections
        },
        "conclusion": {"summary": "Summary"},
        "metadata": {"totalSections": len(sections), "suggestedTone": "formal"},
    })


@pytest.fixture
def outline_json() -> Callable[..., str]:
    """Factory: ``outline_json([(id, title, order), ...], title=...)`` -> JSON text."""
    return _outline_json


def _make_entry(
    key: str = "outline:biography:openai:gpt-4o:abc123",
    stage: CacheStage = CacheStage.OUTLINE,
    document_type: str | None = "biography",
    provider: str = "openai",
    value: Any = None,
    expires_in_s: int = 3600,
    now: datetime | None = None,
) -> CacheEntry:
    now = now or datetime.now(timezone.utc)
    return CacheEntry(
        key=key,
        value=value if value is not None else {"title": "Cached"},
        stage=stage,
        document_type=document_type,
        provider=provider,
        model="gpt-4o",
        input_fingerprint=key.split(":")[4] if key.count(":") >= 4 else "fp",
        stage_cost=0.05,
        created_at=now,
        expires_at=now + timedelta(seconds=expires_in_s),
    )


@pytest.fixture
def make_entry() -> Callable[..., CacheEntry]:
    return _make_entry


# === FIXTURES: Configuration and stores ===


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with no .env, instant retries and refinement switched off."""
    return Settings(
        _env_file=None,
        cache_root=tmp_path / "cache",
        llm_default_provider="openai",
        llm_default_model="gpt-4o",
        retry_base_delay_s=0,
        retry_max_delay_s=0,
        cache_warm_delay_s=0,
        refinement_document_types="",
        log_format="text",
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def json_store(tmp_path: Path) -> JsonCacheStore:
    return JsonCacheStore(tmp_path / "json_cache")


@pytest.fixture
def sqlite_store(tmp_path: Path):
    store = SqliteCacheStore(tmp_path / "sqlite" / "cache.db")
    yield store
    store.close()


@pytest.fixture
def stub_client() -> StubLLMClient:
    return StubLLMClient()


@pytest.fixture
def stub_llm_class() -> type[StubLLMClient]:
    return StubLLMClient


@pytest.fixture
def search_client() -> SearchStubLLMClient:
    return SearchStubLLMClient(provider="perplexity", model="sonar-large")


@pytest.fixture
def app(settings: Settings, stub_client: StubLLMClient, tmp_path: Path):
    """Wired app: JSON cache under tmp_path, every provider served by ``stub_client``."""
    application: Docuforge = create_app(
        settings,
        store=JsonCacheStore(tmp_path / "app_cache"),
        client_factory=lambda provider, model, s: stub_client,
    )
    yield application
    application.close()


@pytest.fixture
def make_app(tmp_path: Path):
    """Factory for apps with a custom client, settings or collaborators."""
    built: list[Docuforge] = []

    def _make(client: BaseLLMClient, settings: Settings, **kwargs: Any) -> Docuforge:
        store = kwargs.pop("store", None) or JsonCacheStore(tmp_path / f"app_cache_{len(built)}")
        application = create_app(
            settings, store=store, client_factory=lambda p, m, s: client, **kwargs,
        )
        built.append(application)
        return application

    yield _make
    for application in built:
        application.close()
