# src/api/facade.py - v2
"""Public API facade: wiring plus the two entry points.

Usage:
    from docuforge.api.facade import create_app, generate_document
    app = create_app()
    record = await generate_document(request, app=app)
    app.close()

Services are built once by ``create_app`` and passed explicitly; nothing
is held in module globals.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from docuforge.api.admin import CacheAdmin
from docuforge.cache.base_cache_store import BaseCacheStore
from docuforge.cache.cache_factory import create_cache_store
from docuforge.cache.manager import CacheManager
from docuforge.cache.service import CacheService, Clock
from docuforge.config.document_types import DocumentType
from docuforge.config.settings import Settings
from docuforge.core.collaborators import (
    BaseAdmissionPolicy,
    BaseJobObserver,
    BasePreferenceStore,
)
from docuforge.core.inputs import canonical_payload
from docuforge.core.models import DocumentRecord, GenerationRequest
from docuforge.events.bus import ProgressBus
from docuforge.jobs.cache_warmer import CacheWarmer
from docuforge.llm.client_factory import create_llm_client
from docuforge.llm.config import DEFAULT_MODELS
from docuforge.llm.token_budget import CostEstimate, estimate_generation_cost
from docuforge.pipeline.orchestrator import ClientFactory, GenerationOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class Docuforge:
    """Explicitly constructed service graph for one process."""

    settings: Settings
    cache: CacheService
    cache_manager: CacheManager
    bus: ProgressBus
    orchestrator: GenerationOrchestrator
    warmer: CacheWarmer
    admin: CacheAdmin

    def close(self) -> None:
        self.cache.close()


def create_app(
    settings: Settings | None = None,
    store: BaseCacheStore | None = None,
    client_factory: ClientFactory | None = None,
    admission: BaseAdmissionPolicy | None = None,
    preferences: BasePreferenceStore | None = None,
    job_observer: BaseJobObserver | None = None,
    clock: Clock | None = None,
) -> Docuforge:
    """Build the cache, bus, orchestrator and admin surface.

    Args:
        settings: Global settings. Loaded from .env if None.
        store: Cache backend. Built from settings if None.
        client_factory: Provider client factory (tests inject stubs).
        admission: Cost-limit collaborator. Allows everything if None.
        preferences: Preference collaborator. Empty in-memory store if None.
        job_observer: Job transport callbacks. No-op if None.
        clock: Time source for cache expiry.
    """
    settings = settings or Settings()
    store = store or create_cache_store(settings)
    cache = CacheService(store, settings=settings, clock=clock)
    manager = CacheManager(cache)
    bus = ProgressBus()
    orchestrator = GenerationOrchestrator(
        settings,
        manager,
        bus=bus,
        admission=admission,
        preferences=preferences,
        job_observer=job_observer,
        client_factory=client_factory,
    )
    warmer = CacheWarmer(manager, delay_s=settings.cache_warm_delay_s)
    admin = CacheAdmin(cache, warmer, backend=settings.cache_backend)
    logger.debug("docuforge app ready (cache backend=%s)", settings.cache_backend)
    return Docuforge(
        settings=settings,
        cache=cache,
        cache_manager=manager,
        bus=bus,
        orchestrator=orchestrator,
        warmer=warmer,
        admin=admin,
    )


async def generate_document(
    request: GenerationRequest,
    app: Docuforge | None = None,
    document_id: str | None = None,
    cancel_event: asyncio.Event | None = None,
) -> DocumentRecord:
    """Generate one document end to end.

    Returns:
        Terminal DocumentRecord; check ``status`` or call ``raise_for_status``.

    Raises:
        RequestValidationError: Input failed its document-type schema.
        QuotaExceeded: Admission check denied the request.
    """
    owned = app is None
    app = app or create_app()
    try:
        return await app.orchestrator.run(request, document_id=document_id, cancel_event=cancel_event)
    finally:
        if owned:
            app.close()


def estimate_cost(
    document_type: DocumentType | str,
    raw_input: dict[str, Any],
    provider: str | None = None,
    model: str | None = None,
    settings: Settings | None = None,
) -> CostEstimate:
    """Upfront token and cost estimate; no provider call is made."""
    settings = settings or Settings()
    provider = provider or settings.llm_default_provider
    if model is None:
        model = (
            settings.llm_default_model
            if provider == settings.llm_default_provider
            else DEFAULT_MODELS.get(provider, settings.llm_default_model)
        )
    payload = canonical_payload(document_type, raw_input)
    client = create_llm_client(provider, model, settings)
    return estimate_generation_cost(payload, client, model)
